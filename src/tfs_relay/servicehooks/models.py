from enum import StrEnum
from typing import Any

from pydantic import AnyUrl, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class EventType(StrEnum):
    git_push = "git.push"
    git_pull_request_merged = "git.pullrequest.merged"


class DecodeOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    ignore_unknown_fields: bool = True


class ServiceHookModel(BaseModel):
    # unknown fields are kept so strict decoding can report them
    model_config = ConfigDict(
        extra="allow", alias_generator=to_camel, validate_by_name=True
    )


class IdentityRef(ServiceHookModel):
    display_name: str
    unique_name: str | None = None
    id: str | None = None


class TeamProjectReference(ServiceHookModel):
    name: str
    id: str | None = None


class GitRepository(ServiceHookModel):
    name: str
    remote_url: str
    project: TeamProjectReference
    id: str | None = None
    url: str | None = None


class GitCommitRef(ServiceHookModel):
    commit_id: str
    comment: str | None = None
    url: str | None = None


class GitRefUpdate(ServiceHookModel):
    name: str
    new_object_id: str | None = None
    old_object_id: str | None = None


class GitPush(ServiceHookModel):
    repository: GitRepository
    pushed_by: IdentityRef
    commits: list[GitCommitRef] = []
    ref_updates: list[GitRefUpdate] = []
    push_id: int | None = None
    url: str | None = None


class GitPullRequest(ServiceHookModel):
    pull_request_id: int
    repository: GitRepository
    created_by: IdentityRef
    last_merge_commit: GitCommitRef | None = None
    title: str = ""
    description: str | None = None
    source_ref_name: str | None = None
    target_ref_name: str | None = None
    status: str | None = None
    url: str | None = None


class FormattedEventMessage(ServiceHookModel):
    text: str = ""
    html: str | None = None
    markdown: str | None = None


class ResourceContainer(ServiceHookModel):
    id: str | None = None
    base_url: str | None = None


class Event(ServiceHookModel):
    event_type: str
    resource: Any = None
    message: FormattedEventMessage | None = None
    detailed_message: FormattedEventMessage | None = None
    resource_containers: dict[str, ResourceContainer] = {}
    id: str | None = None
    publisher_id: str | None = None
    created_date: str | None = None


class TeamBuildPayload(BaseModel):
    """The context of a build request: build variables or a service hook event."""

    model_config = ConfigDict(validate_by_name=True)

    build_variables: dict[str, str] | None = Field(None, alias="BuildVariables")
    service_hook_event: Event | None = Field(None, alias="ServiceHookEvent")

    @model_validator(mode="after")
    def _at_most_one_variant(self):
        if self.build_variables is not None and self.service_hook_event is not None:
            raise ValueError(
                "Only one of 'BuildVariables' and 'ServiceHookEvent' may be provided"
            )
        return self


class GitCodePushedEventArgs(BaseModel):
    model_config = ConfigDict(frozen=True)

    collection_uri: AnyUrl
    repo_uri: AnyUrl
    project_id: str
    repo_id: str
    commit: str
    pushed_by: str


class PullRequestMergeCommitCreatedEventArgs(GitCodePushedEventArgs):
    pull_request_id: int
