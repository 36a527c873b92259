from pydantic import BaseModel, ConfigDict
from sanic.log import logger

from tfs_relay import metrics
from tfs_relay.exceptions import DecodeError
from tfs_relay.jobs.models import ParameterValue, ReservedValues
from tfs_relay.servicehooks.models import (
    DecodeOptions,
    Event,
    EventType,
    GitCodePushedEventArgs,
    GitPullRequest,
    PullRequestMergeCommitCreatedEventArgs,
)
from tfs_relay.servicehooks.utils import (
    build_event_args,
    decode_git_push,
    decode_pull_request_model,
    validate_model,
)

BUILD_REPOSITORY_PROVIDER = "Build.Repository.Provider"
BUILD_REPOSITORY_URI = "Build.Repository.Uri"
BUILD_REPOSITORY_NAME = "Build.Repository.Name"
SYSTEM_TEAM_PROJECT = "System.TeamProject"
BUILD_SOURCE_VERSION = "Build.SourceVersion"
BUILD_REQUESTED_FOR = "Build.RequestedFor"
SYSTEM_TEAM_FOUNDATION_COLLECTION_URI = "System.TeamFoundationCollectionUri"

TEAM_GIT_PROVIDERS = ("tfgit", "tfsgit")

UNSUPPORTED_TEMPLATE = (
    "The rich integration with TFS/Team Services is not supported. Reason: %s"
)


def format_unsupported_reason(reason: str) -> str:
    return UNSUPPORTED_TEMPLATE % reason


class Action(BaseModel):
    model_config = ConfigDict(frozen=True)


class UserIdCause(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str = "anonymous"

    @property
    def short_description(self) -> str:
        return f"Started by user {self.user_id}"


class CauseAction(Action):
    causes: list[UserIdCause]


class CommitParameterAction(Action):
    args: GitCodePushedEventArgs


class PullRequestParameterAction(Action):
    args: PullRequestMergeCommitCreatedEventArgs


class TeamBuildDetailsAction(Action):
    build_variables: dict[str, str]


class TeamPullRequestMergedDetailsAction(Action):
    message: str
    detailed_message: str
    collection_uri: str
    pull_request_id: int
    title: str = ""
    source_ref_name: str | None = None
    target_ref_name: str | None = None


class UnsupportedIntegrationAction(Action):
    reason: str

    @classmethod
    def add_to_build(cls, actions: list[Action], reason: str) -> None:
        actions.append(cls(reason=reason))
        metrics.unsupported_integrations_total.inc()


class ParametersAction(Action):
    parameters: list[ParameterValue]


def _require_variable(build_variables: dict[str, str], key: str) -> str:
    value = build_variables.get(key)
    if value is None:
        raise DecodeError(f"There was no value provided for the '{key}' build variable")
    return value


def contribute_team_build_parameter_actions(
    build_variables: dict[str, str],
) -> list[Action]:
    actions: list[Action] = []

    if BUILD_REPOSITORY_PROVIDER not in build_variables:
        reason = (
            f"There was no value provided for the '{BUILD_REPOSITORY_PROVIDER}' "
            "build variable."
        )
        UnsupportedIntegrationAction.add_to_build(actions, reason)
        logger.warning(format_unsupported_reason(reason))
        return actions

    provider = build_variables[BUILD_REPOSITORY_PROVIDER]
    if provider.lower() not in TEAM_GIT_PROVIDERS:
        reason = (
            f"The '{BUILD_REPOSITORY_PROVIDER}' build variable has a value of "
            f"'{provider}', which is not supported."
        )
        UnsupportedIntegrationAction.add_to_build(actions, reason)
        logger.warning(format_unsupported_reason(reason))
        return actions

    args = build_event_args(
        GitCodePushedEventArgs,
        collection_uri=_require_variable(
            build_variables, SYSTEM_TEAM_FOUNDATION_COLLECTION_URI
        ),
        repo_uri=_require_variable(build_variables, BUILD_REPOSITORY_URI),
        project_id=_require_variable(build_variables, SYSTEM_TEAM_PROJECT),
        repo_id=_require_variable(build_variables, BUILD_REPOSITORY_NAME),
        commit=_require_variable(build_variables, BUILD_SOURCE_VERSION),
        pushed_by=_require_variable(build_variables, BUILD_REQUESTED_FOR),
    )
    actions.append(CommitParameterAction(args=args))

    UnsupportedIntegrationAction.add_to_build(
        actions,
        "Posting build status is not supported for builds triggered by the "
        "'Jenkins Queue Job' task.",
    )

    actions.append(TeamBuildDetailsAction(build_variables=dict(build_variables)))
    return actions


def contribute_service_hook_actions(
    event: Event, options: DecodeOptions
) -> tuple[list[Action], ReservedValues]:
    """
    Build the actions for a service hook event.

    Returns the actions together with the reserved parameter values detected
    from the event; only merged pull requests detect any.
    """
    actions: list[Action] = []
    reserved = ReservedValues()

    try:
        event_type = EventType(event.event_type)
    except ValueError:
        logger.info("Ignoring service hook event of type %s", event.event_type)
        return actions, reserved

    if event_type == EventType.git_push:
        args = decode_git_push(event.resource, event, options)
        actions.append(CommitParameterAction(args=args))

    elif event_type == EventType.git_pull_request_merged:
        pull_request = validate_model(GitPullRequest, event.resource, options)
        pr_args = decode_pull_request_model(pull_request, event)
        reserved = ReservedValues(
            commit=pr_args.commit, pull_request=str(pr_args.pull_request_id)
        )
        actions.append(PullRequestParameterAction(args=pr_args))
        actions.append(
            TeamPullRequestMergedDetailsAction(
                message=event.message.text if event.message else "",
                detailed_message=(
                    event.detailed_message.text if event.detailed_message else ""
                ),
                collection_uri=str(pr_args.collection_uri),
                pull_request_id=pull_request.pull_request_id,
                title=pull_request.title,
                source_ref_name=pull_request.source_ref_name,
                target_ref_name=pull_request.target_ref_name,
            )
        )

    return actions, reserved
