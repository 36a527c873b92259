from typing import Any, Mapping, Sequence

from sanic.log import logger

from tfs_relay.actions import Action, ParametersAction
from tfs_relay.exceptions import InvalidParameterError
from tfs_relay.jobs.models import (
    Job,
    ParameterDefinition,
    ParameterValue,
    ReservedValues,
)

# request payload key holding the parameter array
PARAMETER = "parameter"

COMMIT_ID = "commitId"
PULL_REQUEST_ID = "pullRequestId"


def _entry_name(entry: Any) -> str:
    if not isinstance(entry, Mapping) or not isinstance(entry.get("name"), str):
        raise InvalidParameterError(f"Parameter entry has no name: {entry!r}")
    return entry["name"]


def _from_literal(definition: ParameterDefinition, literal: str) -> ParameterValue:
    value = definition.from_literal(literal)
    if value is None:
        raise InvalidParameterError(
            f"Cannot retrieve the parameter value: {definition.name}"
        )
    return value


def reconcile_parameters(
    job: Job,
    entries: Sequence[Mapping[str, Any]],
    reserved: ReservedValues,
) -> list[ParameterValue]:
    """
    Build the parameter values of a job from the request's parameter entries.

    Reserved values override whatever the caller supplied for ``commitId`` and
    ``pullRequestId`` and are appended at the end when the caller did not name
    those parameters. A reserved value is only ever used once.

    Raises:
        InvalidParameterError: if an entry names an undefined parameter or a
            definition cannot produce a value.
    """
    values: list[ParameterValue] = []

    for entry in entries:
        name = _entry_name(entry)
        definition = job.get_parameter_definition(name)
        if definition is None:
            raise InvalidParameterError(f"No such parameter definition: {name}")

        if (
            name == COMMIT_ID
            and reserved.commit is not None
            and definition.supports_literal_construction
        ):
            logger.debug("Overriding %s with %s", name, reserved.commit)
            value = definition.from_literal(reserved.commit)
            reserved = reserved._replace(commit=None)
        elif (
            name == PULL_REQUEST_ID
            and reserved.pull_request is not None
            and definition.supports_literal_construction
        ):
            logger.debug("Overriding %s with %s", name, reserved.pull_request)
            value = definition.from_literal(reserved.pull_request)
            reserved = reserved._replace(pull_request=None)
        else:
            value = definition.create_value(entry)

        if value is None:
            raise InvalidParameterError(f"Cannot retrieve the parameter value: {name}")
        values.append(value)

    for name, pending in (
        (COMMIT_ID, reserved.commit),
        (PULL_REQUEST_ID, reserved.pull_request),
    ):
        if pending is None:
            continue
        definition = job.get_parameter_definition(name)
        if definition is None or not definition.supports_literal_construction:
            continue
        logger.debug("Adding %s=%s detected from the event", name, pending)
        values.append(_from_literal(definition, pending))

    return values


def contribute_parameters_action(
    job: Job,
    request_payload: Mapping[str, Any],
    reserved: ReservedValues,
    actions: list[Action],
) -> None:
    if job.parameters is None or PARAMETER not in request_payload:
        logger.debug("Job %s takes no parameters from this request", job.name)
        return

    entries = request_payload[PARAMETER]
    if not isinstance(entries, list):
        raise InvalidParameterError(f"'{PARAMETER}' must be an array")

    values = reconcile_parameters(job, entries, reserved)
    actions.append(ParametersAction(parameters=values))
