from typing import Annotated, Any, ClassVar, Literal, Mapping, NamedTuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ReservedValues(NamedTuple):
    """Service-detected values for the reserved parameters, None once consumed."""

    commit: str | None = None
    pull_request: str | None = None


class ParameterValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    value: str | bool | list[str]
    description: str = ""


class ParameterDefinition(BaseModel):
    """
    A named build parameter of a job.

    Every definition can build a value from a request fragment, i.e. one
    ``{"name": ..., "value": ...}`` entry of the request's parameter array.
    Definitions that set ``supports_literal_construction`` can also build a
    value straight from a plain string, which is how service-detected values
    are injected.
    """

    supports_literal_construction: ClassVar[bool] = False

    name: str
    description: str = ""

    def create_value(self, fragment: Mapping[str, Any]) -> ParameterValue | None:
        raise NotImplementedError

    def from_literal(self, value: str) -> ParameterValue | None:
        raise TypeError(f"{type(self).__name__} cannot be built from a literal")

    def default_value(self) -> ParameterValue | None:
        return None

    def _make(self, value: str | bool | list[str]) -> ParameterValue:
        return ParameterValue(name=self.name, value=value, description=self.description)


class SimpleParameterDefinition(ParameterDefinition):
    supports_literal_construction: ClassVar[bool] = True

    def create_value(self, fragment: Mapping[str, Any]) -> ParameterValue | None:
        if "value" not in fragment:
            return self.default_value()
        return self._coerce(fragment["value"])

    def from_literal(self, value: str) -> ParameterValue | None:
        return self._coerce(value)

    def _coerce(self, raw: Any) -> ParameterValue | None:
        raise NotImplementedError


class StringParameterDefinition(SimpleParameterDefinition):
    type: Literal["string"] = "string"
    default: str | None = None
    trim: bool = False

    def default_value(self) -> ParameterValue | None:
        if self.default is None:
            return None
        return self._coerce(self.default)

    def _coerce(self, raw: Any) -> ParameterValue | None:
        if isinstance(raw, (dict, list)) or raw is None:
            return None
        value = raw if isinstance(raw, str) else str(raw)
        if self.trim:
            value = value.strip()
        return self._make(value)


class TextParameterDefinition(StringParameterDefinition):
    type: Literal["text"] = "text"


class BooleanParameterDefinition(SimpleParameterDefinition):
    type: Literal["boolean"] = "boolean"
    default: bool = False

    def default_value(self) -> ParameterValue | None:
        return self._make(self.default)

    def _coerce(self, raw: Any) -> ParameterValue | None:
        if isinstance(raw, bool):
            return self._make(raw)
        if isinstance(raw, str):
            return self._make(raw.strip().lower() == "true")
        return None


class ChoiceParameterDefinition(SimpleParameterDefinition):
    type: Literal["choice"] = "choice"
    choices: list[str] = Field(min_length=1)

    def default_value(self) -> ParameterValue | None:
        return self._make(self.choices[0])

    def _coerce(self, raw: Any) -> ParameterValue | None:
        if not isinstance(raw, str) or raw not in self.choices:
            return None
        return self._make(raw)


class MultiChoiceParameterDefinition(ParameterDefinition):
    type: Literal["multi-choice"] = "multi-choice"
    choices: list[str] = Field(min_length=1)
    default: list[str] = []

    def default_value(self) -> ParameterValue | None:
        return self._make(list(self.default))

    def create_value(self, fragment: Mapping[str, Any]) -> ParameterValue | None:
        if "value" not in fragment:
            return self.default_value()
        raw = fragment["value"]
        if isinstance(raw, str):
            raw = [raw]
        if not isinstance(raw, list):
            return None
        if not all(isinstance(item, str) and item in self.choices for item in raw):
            return None
        return self._make(raw)


ParameterDefinitionType = Annotated[
    Union[
        StringParameterDefinition,
        TextParameterDefinition,
        BooleanParameterDefinition,
        ChoiceParameterDefinition,
        MultiChoiceParameterDefinition,
    ],
    Field(discriminator="type"),
]


class Job(BaseModel):
    name: str
    disabled: bool = False
    # None means the job takes no parameters at all
    parameters: list[ParameterDefinitionType] | None = None

    @model_validator(mode="after")
    def _unique_parameter_names(self):
        names = [definition.name for definition in self.parameters or []]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(
                f"Job {self.name} defines parameters more than once: "
                f"{', '.join(duplicates)}"
            )
        return self

    def get_parameter_definition(self, name: str) -> ParameterDefinition | None:
        for definition in self.parameters or []:
            if definition.name == name:
                return definition
        return None


class JobsFile(BaseModel):
    jobs: list[Job] = []
