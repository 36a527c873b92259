import json
from pathlib import Path
from typing import Any, Mapping, Sequence

from sanic.log import logger

from tfs_relay import metrics
from tfs_relay.actions import (
    Action,
    CauseAction,
    UserIdCause,
    contribute_service_hook_actions,
    contribute_team_build_parameter_actions,
)
from tfs_relay.config import Config
from tfs_relay.jobs.models import Job, ReservedValues
from tfs_relay.jobs.utils import contribute_parameters_action
from tfs_relay.queue import BuildQueue
from tfs_relay.servicehooks.models import DecodeOptions, EventType, TeamBuildPayload

SAMPLES_DIR = Path(__file__).parent / "samples"


def describe_payload(team_build_payload: TeamBuildPayload) -> str:
    """Label the payload variant, for logging and metrics."""
    if team_build_payload.build_variables is not None:
        return "build_variables"
    if team_build_payload.service_hook_event is not None:
        try:
            return EventType(team_build_payload.service_hook_event.event_type).value
        except ValueError:
            return "unrecognized"
    return "none"


def schedule_build(
    queue: BuildQueue,
    job: Job,
    delay: float,
    actions: Sequence[Action],
    root_url: str,
    user_id: str = "anonymous",
) -> dict[str, str]:
    cause_action = CauseAction(causes=[UserIdCause(user_id=user_id)])
    result = queue.schedule(job, delay, [*actions, cause_action])

    if result.item is None:
        logger.debug("Job %s was not given a queue item", job.name)
        metrics.builds_scheduled_total.labels(job.name, "accepted").inc()
        return {}

    metrics.builds_scheduled_total.labels(job.name, "created").inc()
    return {"created": root_url + result.item.url}


class BuildCommand:
    def __init__(self, queue: BuildQueue, config: Config):
        self.queue = queue
        self.config = config
        self.options = DecodeOptions(
            ignore_unknown_fields=config.IGNORE_UNKNOWN_FIELDS
        )

    @staticmethod
    def sample_request_payload() -> dict[str, Any]:
        return json.loads((SAMPLES_DIR / "build_command.json").read_text())

    def collect_actions(
        self, team_build_payload: TeamBuildPayload
    ) -> tuple[list[Action], ReservedValues]:
        if team_build_payload.build_variables is not None:
            actions = contribute_team_build_parameter_actions(
                team_build_payload.build_variables
            )
            return actions, ReservedValues()

        if team_build_payload.service_hook_event is not None:
            return contribute_service_hook_actions(
                team_build_payload.service_hook_event, self.options
            )

        return [], ReservedValues()

    def perform(
        self,
        job: Job,
        request_payload: Mapping[str, Any],
        team_build_payload: TeamBuildPayload,
        delay: float,
    ) -> dict[str, str]:
        logger.debug(
            "Building %s from %s payload",
            job.name,
            describe_payload(team_build_payload),
        )

        actions, reserved = self.collect_actions(team_build_payload)

        contribute_parameters_action(job, request_payload, reserved, actions)

        if self.config.STERILE:
            logger.info("Sterile mode: not scheduling %s", job.name)
            metrics.builds_scheduled_total.labels(job.name, "sterile").inc()
            return {}

        return schedule_build(
            self.queue, job, delay, actions, root_url=self.config.ROOT_URL
        )
