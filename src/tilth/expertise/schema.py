"""Pydantic schemas validating untrusted record dicts (file lines, edits, CLI input).

Every line read from a domain file passes through :func:`parse_record` before
it becomes an :data:`~tilth.expertise.models.ExpertiseRecord`.
"""
from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from tilth.expertise.errors import RecordValidationError
from tilth.expertise.models import ExpertiseRecord, parse_timestamp, record_from_dict

RECORD_ID_PATTERN = r"^mx-[0-9a-f]{6}$"

NonEmptyStr = Annotated[str, Field(min_length=1)]
RecordId = Annotated[str, Field(pattern=RECORD_ID_PATTERN)]


class _Strict(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)


def _check_timestamp(value: str) -> str:
    try:
        parse_timestamp(value)
    except ValueError as exc:
        raise ValueError(f"not an ISO-8601 timestamp: {value!r}") from exc
    return value


class EvidenceSchema(_Strict):
    commit: str | None = None
    date: str | None = None
    issue: str | None = None
    file: str | None = None


class OutcomeSchema(_Strict):
    status: Literal["success", "failure", "partial"]
    recorded_at: str
    duration: float | None = Field(default=None, ge=0)
    agent: str | None = None
    notes: str | None = None
    test_results: str | None = None

    @field_validator("recorded_at")
    @classmethod
    def _recorded_at_is_iso(cls, value: str) -> str:
        return _check_timestamp(value)


class _RecordSchema(_Strict):
    id: RecordId | None = None
    classification: Literal["foundational", "tactical", "observational"]
    recorded_at: NonEmptyStr
    evidence: EvidenceSchema | None = None
    tags: list[str] | None = None
    relates_to: list[str] | None = None
    supersedes: list[str] | None = None
    outcomes: list[OutcomeSchema] | None = None

    @field_validator("recorded_at")
    @classmethod
    def _recorded_at_is_iso(cls, value: str) -> str:
        return _check_timestamp(value)


class ConventionSchema(_RecordSchema):
    type: Literal["convention"]
    content: NonEmptyStr


class PatternSchema(_RecordSchema):
    type: Literal["pattern"]
    name: NonEmptyStr
    description: NonEmptyStr
    files: list[str] | None = None


class FailureSchema(_RecordSchema):
    type: Literal["failure"]
    description: NonEmptyStr
    resolution: NonEmptyStr


class DecisionSchema(_RecordSchema):
    type: Literal["decision"]
    title: NonEmptyStr
    rationale: NonEmptyStr
    date: str | None = None


class ReferenceSchema(_RecordSchema):
    type: Literal["reference"]
    name: NonEmptyStr
    description: NonEmptyStr
    files: list[str] | None = None


class GuideSchema(_RecordSchema):
    type: Literal["guide"]
    name: NonEmptyStr
    description: NonEmptyStr


RecordSchema = Annotated[
    Union[
        ConventionSchema,
        PatternSchema,
        FailureSchema,
        DecisionSchema,
        ReferenceSchema,
        GuideSchema,
    ],
    Field(discriminator="type"),
]

_RECORD_ADAPTER: TypeAdapter[Any] = TypeAdapter(RecordSchema)


def _format_errors(exc: ValidationError) -> list[str]:
    messages = []
    for err in exc.errors():
        # Drop the union tag pydantic inserts as the first location element
        loc = [str(part) for part in err["loc"]]
        if loc and loc[0] in {"convention", "pattern", "failure", "decision", "reference", "guide"}:
            loc = loc[1:]
        where = "/" + "/".join(loc) if loc else "/"
        messages.append(f"{where} {err['msg']}")
    return messages


def schema_errors(data: Any) -> list[str]:
    """Return every schema violation in *data*; empty when valid."""
    try:
        _RECORD_ADAPTER.validate_python(data)
    except ValidationError as exc:
        return _format_errors(exc)
    return []


def parse_record(data: Any) -> ExpertiseRecord:
    """Validate *data* and convert it into a record dataclass.

    Raises:
        RecordValidationError: If *data* does not match the record schema
    """
    try:
        model = _RECORD_ADAPTER.validate_python(data)
    except ValidationError as exc:
        raise RecordValidationError("; ".join(_format_errors(exc))) from exc
    return record_from_dict(model.model_dump(exclude_unset=True))


def validate_record(record: ExpertiseRecord) -> ExpertiseRecord:
    """Check a record built in code against the same schema as file lines."""
    errors = schema_errors(record.to_dict())
    if errors:
        raise RecordValidationError(
            f"Invalid {record.type.value} record: " + "; ".join(errors)
        )
    return record
