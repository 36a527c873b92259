import pytest
from sanic import Sanic
from sanic_testing import TestManager
from sanic.log import logger

from tfs_relay.config import Config
from tfs_relay.jobs import JobRegistry
from tfs_relay.jobs.models import (
    ChoiceParameterDefinition,
    Job,
    MultiChoiceParameterDefinition,
    StringParameterDefinition,
)
from tfs_relay.queue import BuildQueue


@pytest.fixture
def config():
    config = Config(
        ROOT_URL="http://jenkins.example.com/",
        JOBS_FILE=None,
        QUIET_PERIOD=0,
        IGNORE_UNKNOWN_FIELDS=True,
        OVERRIDE_LOGGING="DEBUG",
        STERILE=False,
    )

    logger.setLevel(config.OVERRIDE_LOGGING)

    return config


@pytest.fixture
def job():
    return Job(
        name="fabrikam",
        parameters=[
            ChoiceParameterDefinition(name="mode", choices=["debug", "release"]),
            StringParameterDefinition(name="commitId", default=""),
            StringParameterDefinition(name="pullRequestId", default=""),
            MultiChoiceParameterDefinition(
                name="targets", choices=["linux", "windows", "macos"]
            ),
        ],
    )


@pytest.fixture
def jobs(job):
    return JobRegistry(
        [
            job,
            Job(name="plain"),
            Job(name="disabled", disabled=True, parameters=[]),
        ]
    )


@pytest.fixture
def queue():
    return BuildQueue()


@pytest.fixture(scope="function")
def app(config, jobs) -> Sanic:
    """Create a Sanic app for testing."""
    from tfs_relay.web import create_app

    app = create_app(config=config, jobs=jobs)
    TestManager(app)
    return app
