from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError
from sanic.log import logger

from tfs_relay.exceptions import DecodeError
from tfs_relay.servicehooks.models import (
    DecodeOptions,
    Event,
    GitCodePushedEventArgs,
    GitPullRequest,
    GitPush,
    GitRepository,
    PullRequestMergeCommitCreatedEventArgs,
    TeamBuildPayload,
)

ModelT = TypeVar("ModelT", bound=BaseModel)


def find_unknown_fields(model: BaseModel, prefix: str = "") -> list[str]:
    """
    Collect the dotted paths of all fields a model received but does not declare.

    Nested models are searched too, including those held in lists and dicts.
    """
    found = [f"{prefix}{key}" for key in (model.model_extra or {})]
    for name in type(model).model_fields:
        value = getattr(model, name)
        if isinstance(value, dict):
            children = list(value.values())
        elif isinstance(value, list):
            children = value
        else:
            children = [value]
        for child in children:
            if isinstance(child, BaseModel):
                found.extend(find_unknown_fields(child, f"{prefix}{name}."))
    return found


def validate_model(
    model_type: type[ModelT], data: Any, options: DecodeOptions
) -> ModelT:
    try:
        model = model_type.model_validate(data)
    except ValidationError as e:
        raise DecodeError(f"Invalid {model_type.__name__}: {e}") from e

    if not options.ignore_unknown_fields:
        unknown = find_unknown_fields(model)
        if unknown:
            raise DecodeError(
                f"Unknown fields in {model_type.__name__}: {', '.join(unknown)}"
            )
    return model


def decode_team_build_payload(
    request_payload: dict[str, Any], options: DecodeOptions
) -> TeamBuildPayload:
    return validate_model(TeamBuildPayload, request_payload, options)


def determine_collection_uri(event: Event, repository: GitRepository) -> str:
    container = event.resource_containers.get("collection")
    if container is not None and container.base_url:
        return container.base_url

    # https://host/Collection/_apis/git/repositories/<id> -> https://host/Collection/
    if repository.url is None:
        raise DecodeError("Cannot determine the collection URI of the event")
    index = repository.url.find("/_apis/")
    if index < 0:
        raise DecodeError(
            f"Cannot determine the collection URI from repository URL {repository.url}"
        )
    return repository.url[: index + 1]


def build_event_args(model_type: type[ModelT], **values) -> ModelT:
    try:
        return model_type(**values)
    except ValidationError as e:
        raise DecodeError(f"Invalid {model_type.__name__}: {e}") from e


def decode_git_push(
    resource: Any, event: Event, options: DecodeOptions
) -> GitCodePushedEventArgs:
    push = validate_model(GitPush, resource, options)

    if push.commits:
        commit = push.commits[0].commit_id
    elif push.ref_updates and push.ref_updates[0].new_object_id:
        commit = push.ref_updates[0].new_object_id
    else:
        raise DecodeError("The git push does not contain a commit id")

    logger.debug("Decoded git push of %s to %s", commit, push.repository.name)

    return build_event_args(
        GitCodePushedEventArgs,
        collection_uri=determine_collection_uri(event, push.repository),
        repo_uri=push.repository.remote_url,
        project_id=push.repository.project.name,
        repo_id=push.repository.name,
        commit=commit,
        pushed_by=push.pushed_by.display_name,
    )


def decode_git_pull_request(
    resource: Any, event: Event, options: DecodeOptions
) -> PullRequestMergeCommitCreatedEventArgs:
    pull_request = validate_model(GitPullRequest, resource, options)
    return decode_pull_request_model(pull_request, event)


def decode_pull_request_model(
    pull_request: GitPullRequest, event: Event
) -> PullRequestMergeCommitCreatedEventArgs:
    if pull_request.last_merge_commit is None:
        raise DecodeError(
            f"Pull request {pull_request.pull_request_id} has no merge commit"
        )

    logger.debug(
        "Decoded pull request %d merged as %s",
        pull_request.pull_request_id,
        pull_request.last_merge_commit.commit_id,
    )

    return build_event_args(
        PullRequestMergeCommitCreatedEventArgs,
        collection_uri=determine_collection_uri(event, pull_request.repository),
        repo_uri=pull_request.repository.remote_url,
        project_id=pull_request.repository.project.name,
        repo_id=pull_request.repository.name,
        commit=pull_request.last_merge_commit.commit_id,
        pushed_by=pull_request.created_by.display_name,
        pull_request_id=pull_request.pull_request_id,
    )
