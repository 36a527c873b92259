from sanic import Sanic, response
from sanic.exceptions import BadRequest, NotFound
from sanic.log import logger
from aiolimiter import AsyncLimiter
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from tfs_relay import metrics
from tfs_relay.commands import BuildCommand, describe_payload
from tfs_relay.config import Config
from tfs_relay.exceptions import DecodeError, UnknownJobError, UnrecoverableError
from tfs_relay.jobs import JobRegistry
from tfs_relay.queue import BuildQueue
from tfs_relay.servicehooks.utils import decode_team_build_payload
from tfs_relay.utils import parse_delay


def create_app(config: Config | None = None, jobs: JobRegistry | None = None):
    if config is None:
        config = Config()

    app = Sanic("tfs-relay")
    app.update_config(config.model_dump())
    app.config.FALLBACK_ERROR_FORMAT = "json"
    logger.setLevel(config.OVERRIDE_LOGGING)

    if jobs is None:
        jobs = (
            JobRegistry.from_file(config.JOBS_FILE)
            if config.JOBS_FILE
            else JobRegistry()
        )

    app.ctx.settings = config
    app.ctx.jobs = jobs
    app.ctx.queue = BuildQueue()

    limiter = AsyncLimiter(10)

    @app.listener("before_server_start")
    async def init(app, loop):
        app.ctx.settings.print_config()

    @app.route("/")
    async def index(request):
        logger.debug("status check")
        return response.text("ok")

    @app.route("/health")
    async def health(request):
        if not limiter.has_capacity():
            return response.text("Rate limited", status=429)
        await limiter.acquire()

        logger.info("Checking health")
        text = f"Jobs: {len(app.ctx.jobs)}, Queue: {len(app.ctx.queue)}"
        return response.text(text)

    @app.route("/metrics")
    async def prometheus_metrics(request):
        return response.raw(generate_latest(), content_type=CONTENT_TYPE_LATEST)

    @app.route("/team-build/build", methods=["GET"])
    async def build_sample(request):
        return response.json(BuildCommand.sample_request_payload())

    @app.route("/team-build/build/<job_name>", methods=["POST"])
    async def build(request, job_name: str):
        logger.debug("Build request received for job %s", job_name)

        try:
            job = app.ctx.jobs.require(job_name)
        except UnknownJobError as e:
            raise NotFound(str(e)) from e

        request_payload = request.json
        if request_payload is None:
            request_payload = {}
        if not isinstance(request_payload, dict):
            raise BadRequest("The request body must be a JSON object")

        command = BuildCommand(app.ctx.queue, app.ctx.settings)

        try:
            team_build_payload = decode_team_build_payload(
                request_payload, command.options
            )
        except DecodeError as e:
            logger.error("Build request for %s rejected: %s", job_name, e)
            metrics.webhooks_received_total.labels("unknown").inc()
            metrics.dispatch_errors_total.labels("unknown", type(e).__name__).inc()
            raise BadRequest(str(e)) from e

        try:
            with metrics.track_dispatch(describe_payload(team_build_payload)):
                delay = parse_delay(
                    request.args.get("delay"), app.ctx.settings.QUIET_PERIOD
                )
                result = command.perform(
                    job, request_payload, team_build_payload, delay
                )
        except UnrecoverableError as e:
            logger.error("Build request for %s rejected: %s", job_name, e)
            raise BadRequest(str(e)) from e

        return response.json(result)

    @app.route("/queue/item/<item_id:int>/")
    async def queue_item(request, item_id: int):
        item = app.ctx.queue.get(item_id)
        if item is None:
            raise NotFound(f"No such queue item: {item_id}")
        return response.json(item.summary())

    return app
