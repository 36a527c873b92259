import pytest

from tfs_relay.actions import ParametersAction
from tfs_relay.exceptions import InvalidParameterError
from tfs_relay.jobs.models import (
    BooleanParameterDefinition,
    ChoiceParameterDefinition,
    Job,
    MultiChoiceParameterDefinition,
    ParameterValue,
    ReservedValues,
    StringParameterDefinition,
    TextParameterDefinition,
)
from tfs_relay.jobs.utils import contribute_parameters_action, reconcile_parameters


pull_request_merged = ReservedValues(commit="abc123", pull_request="42")


def as_pairs(values):
    return [(value.name, value.value) for value in values]


def test_reserved_values_are_appended(job):
    values = reconcile_parameters(
        job, [{"name": "mode", "value": "release"}], pull_request_merged
    )

    assert as_pairs(values) == [
        ("mode", "release"),
        ("commitId", "abc123"),
        ("pullRequestId", "42"),
    ]


def test_reserved_values_with_empty_payload(job):
    values = reconcile_parameters(job, [], pull_request_merged)

    assert as_pairs(values) == [("commitId", "abc123"), ("pullRequestId", "42")]


def test_reserved_commit_overrides_caller_value(job):
    values = reconcile_parameters(
        job,
        [{"name": "commitId", "value": "zzz"}, {"name": "mode", "value": "debug"}],
        pull_request_merged,
    )

    assert as_pairs(values) == [
        ("commitId", "abc123"),
        ("mode", "debug"),
        ("pullRequestId", "42"),
    ]
    assert [value.name for value in values].count("commitId") == 1


def test_reserved_pull_request_overrides_caller_value(job):
    values = reconcile_parameters(
        job,
        [{"name": "pullRequestId", "value": "7"}, {"name": "commitId", "value": "zzz"}],
        pull_request_merged,
    )

    assert as_pairs(values) == [("pullRequestId", "42"), ("commitId", "abc123")]


def test_reserved_value_is_used_once(job):
    values = reconcile_parameters(
        job,
        [{"name": "commitId", "value": "zzz"}, {"name": "commitId", "value": "yyy"}],
        ReservedValues(commit="abc123"),
    )

    assert as_pairs(values) == [("commitId", "abc123"), ("commitId", "yyy")]


def test_caller_values_without_reserved_values(job):
    values = reconcile_parameters(
        job,
        [{"name": "commitId", "value": "zzz"}, {"name": "targets", "value": ["linux"]}],
        ReservedValues(),
    )

    assert as_pairs(values) == [("commitId", "zzz"), ("targets", ["linux"])]


def test_unknown_parameter(job):
    with pytest.raises(
        InvalidParameterError, match="No such parameter definition: nope"
    ):
        reconcile_parameters(job, [{"name": "nope", "value": "x"}], ReservedValues())


def test_unresolvable_parameter(job):
    with pytest.raises(
        InvalidParameterError, match="Cannot retrieve the parameter value: mode"
    ):
        reconcile_parameters(job, [{"name": "mode", "value": "fast"}], ReservedValues())


@pytest.mark.parametrize("entry", [{"value": "x"}, {"name": 3}, "mode", None])
def test_entry_without_name(job, entry):
    with pytest.raises(InvalidParameterError, match="has no name"):
        reconcile_parameters(job, [entry], ReservedValues())


def test_reserved_values_ignored_when_job_does_not_define_them():
    job = Job(
        name="release",
        parameters=[ChoiceParameterDefinition(name="mode", choices=["debug"])],
    )

    values = reconcile_parameters(job, [], pull_request_merged)

    assert values == []


def test_reserved_name_with_non_literal_definition():
    job = Job(
        name="multi",
        parameters=[
            MultiChoiceParameterDefinition(name="commitId", choices=["a", "b"]),
            StringParameterDefinition(name="pullRequestId"),
        ],
    )

    values = reconcile_parameters(
        job, [{"name": "commitId", "value": ["a"]}], pull_request_merged
    )

    # the caller value is kept and the reserved commit is not added a second time
    assert as_pairs(values) == [("commitId", ["a"]), ("pullRequestId", "42")]


def test_reserved_value_rejected_by_definition():
    job = Job(
        name="choosy",
        parameters=[ChoiceParameterDefinition(name="commitId", choices=["main"])],
    )

    with pytest.raises(
        InvalidParameterError, match="Cannot retrieve the parameter value: commitId"
    ):
        reconcile_parameters(job, [], ReservedValues(commit="abc123"))


def test_contribute_parameters_action(job):
    actions = []

    contribute_parameters_action(
        job,
        {"parameter": [{"name": "mode", "value": "release"}]},
        pull_request_merged,
        actions,
    )

    assert len(actions) == 1
    assert isinstance(actions[0], ParametersAction)
    assert as_pairs(actions[0].parameters) == [
        ("mode", "release"),
        ("commitId", "abc123"),
        ("pullRequestId", "42"),
    ]


def test_contribute_parameters_action_without_parameter_key(job):
    actions = []

    contribute_parameters_action(job, {}, pull_request_merged, actions)

    assert actions == []


def test_contribute_parameters_action_without_definitions():
    actions = []

    contribute_parameters_action(
        Job(name="plain"),
        {"parameter": [{"name": "nope", "value": "x"}]},
        pull_request_merged,
        actions,
    )

    assert actions == []


def test_contribute_parameters_action_with_empty_definitions():
    actions = []

    contribute_parameters_action(
        Job(name="empty", parameters=[]), {"parameter": []}, ReservedValues(), actions
    )

    assert actions == [ParametersAction(parameters=[])]


def test_contribute_parameters_action_not_an_array(job):
    with pytest.raises(InvalidParameterError, match="must be an array"):
        contribute_parameters_action(
            job, {"parameter": {"name": "mode"}}, ReservedValues(), []
        )


def test_string_definition():
    definition = StringParameterDefinition(name="branch", default="main", trim=True)

    assert definition.supports_literal_construction
    assert definition.create_value({"name": "branch"}) == ParameterValue(
        name="branch", value="main"
    )
    assert definition.create_value({"name": "branch", "value": " dev "}).value == "dev"
    assert definition.create_value({"name": "branch", "value": 12}).value == "12"
    assert definition.create_value({"name": "branch", "value": {"a": 1}}) is None
    assert definition.from_literal("topic").value == "topic"


def test_string_definition_without_default():
    definition = TextParameterDefinition(name="notes")

    assert definition.create_value({"name": "notes"}) is None


def test_boolean_definition():
    definition = BooleanParameterDefinition(name="clean", default=True)

    assert definition.create_value({"name": "clean"}).value is True
    assert definition.create_value({"name": "clean", "value": False}).value is False
    assert definition.from_literal("TRUE").value is True
    assert definition.from_literal("yes").value is False
    assert definition.create_value({"name": "clean", "value": 1}) is None


def test_choice_definition():
    definition = ChoiceParameterDefinition(name="mode", choices=["debug", "release"])

    assert definition.create_value({"name": "mode"}).value == "debug"
    assert definition.from_literal("release").value == "release"
    assert definition.from_literal("fast") is None


def test_multi_choice_definition():
    definition = MultiChoiceParameterDefinition(
        name="targets", choices=["linux", "windows"], default=["linux"]
    )

    assert not definition.supports_literal_construction
    assert definition.create_value({"name": "targets"}).value == ["linux"]
    assert definition.create_value({"name": "targets", "value": "windows"}).value == [
        "windows"
    ]
    assert definition.create_value({"name": "targets", "value": ["macos"]}) is None
    with pytest.raises(TypeError):
        definition.from_literal("linux")


def test_job_rejects_duplicate_parameter_names():
    with pytest.raises(ValueError, match="more than once: mode"):
        Job(
            name="dup",
            parameters=[
                StringParameterDefinition(name="mode"),
                BooleanParameterDefinition(name="mode"),
            ],
        )


def test_job_parameters_from_json():
    job = Job.model_validate(
        {
            "name": "from-json",
            "parameters": [
                {"type": "string", "name": "commitId"},
                {"type": "choice", "name": "mode", "choices": ["a", "b"]},
                {"type": "multi-choice", "name": "targets", "choices": ["x"]},
            ],
        }
    )

    assert isinstance(job.get_parameter_definition("commitId"), StringParameterDefinition)
    assert isinstance(job.get_parameter_definition("mode"), ChoiceParameterDefinition)
    assert isinstance(
        job.get_parameter_definition("targets"), MultiChoiceParameterDefinition
    )
    assert job.get_parameter_definition("missing") is None
