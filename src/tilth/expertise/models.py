"""Expertise data models: a tagged union of six record kinds."""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Union


class RecordType(str, Enum):
    """Discriminant of the record union."""

    CONVENTION = "convention"
    PATTERN = "pattern"
    FAILURE = "failure"
    DECISION = "decision"
    REFERENCE = "reference"
    GUIDE = "guide"


class Classification(str, Enum):
    """Durability tier; controls staleness."""

    FOUNDATIONAL = "foundational"
    TACTICAL = "tactical"
    OBSERVATIONAL = "observational"


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    PARTIAL = "partial"


class RecordAction(str, Enum):
    """Outcome of a record operation."""

    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class Evidence:
    commit: str | None = None
    date: str | None = None
    issue: str | None = None
    file: str | None = None

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Evidence:
        return cls(
            commit=d.get("commit"),
            date=d.get("date"),
            issue=d.get("issue"),
            file=d.get("file"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}


@dataclass
class Outcome:
    """One recorded application of a record's guidance."""

    status: OutcomeStatus
    recorded_at: str = field(default_factory=utcnow_iso)
    duration: float | None = None  # milliseconds
    agent: str | None = None
    notes: str | None = None
    test_results: str | None = None

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Outcome:
        return cls(
            status=OutcomeStatus(d["status"]),
            recorded_at=d["recorded_at"],
            duration=d.get("duration"),
            agent=d.get("agent"),
            notes=d.get("notes"),
            test_results=d.get("test_results"),
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"status": self.status.value, "recorded_at": self.recorded_at}
        for name in ("duration", "agent", "notes", "test_results"):
            value = getattr(self, name)
            if value is not None:
                d[name] = value
        return d


@dataclass(kw_only=True)
class BaseRecord:
    """Fields shared by every record kind.

    Subclasses declare ``type`` (the discriminant), ``key_field`` (the field
    the id is derived from) and ``type_fields`` (their own fields, in
    serialization order).
    """

    type: ClassVar[RecordType]
    key_field: ClassVar[str]
    type_fields: ClassVar[tuple[str, ...]]

    classification: Classification
    recorded_at: str = field(default_factory=utcnow_iso)
    id: str | None = None
    evidence: Evidence | None = None
    tags: list[str] | None = None
    relates_to: list[str] | None = None
    supersedes: list[str] | None = None
    outcomes: list[Outcome] | None = None

    @property
    def key(self) -> str:
        """Value of the defining field."""
        return getattr(self, self.key_field)

    @property
    def is_named(self) -> bool:
        return self.type in NAMED_TYPES

    @property
    def recorded_at_datetime(self) -> datetime:
        return parse_timestamp(self.recorded_at)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {}
        if self.id is not None:
            d["id"] = self.id
        d["type"] = self.type.value
        for name in self.type_fields:
            value = getattr(self, name)
            if value is not None:
                d[name] = value
        d["classification"] = self.classification.value
        d["recorded_at"] = self.recorded_at
        if self.evidence is not None:
            d["evidence"] = self.evidence.to_dict()
        for name in ("tags", "relates_to", "supersedes"):
            value = getattr(self, name)
            if value is not None:
                d[name] = list(value)
        if self.outcomes is not None:
            d["outcomes"] = [o.to_dict() for o in self.outcomes]
        return d


@dataclass(kw_only=True)
class ConventionRecord(BaseRecord):
    type: ClassVar[RecordType] = RecordType.CONVENTION
    key_field: ClassVar[str] = "content"
    type_fields: ClassVar[tuple[str, ...]] = ("content",)

    content: str


@dataclass(kw_only=True)
class PatternRecord(BaseRecord):
    type: ClassVar[RecordType] = RecordType.PATTERN
    key_field: ClassVar[str] = "name"
    type_fields: ClassVar[tuple[str, ...]] = ("name", "description", "files")

    name: str
    description: str
    files: list[str] | None = None


@dataclass(kw_only=True)
class FailureRecord(BaseRecord):
    type: ClassVar[RecordType] = RecordType.FAILURE
    key_field: ClassVar[str] = "description"
    type_fields: ClassVar[tuple[str, ...]] = ("description", "resolution")

    description: str
    resolution: str


@dataclass(kw_only=True)
class DecisionRecord(BaseRecord):
    type: ClassVar[RecordType] = RecordType.DECISION
    key_field: ClassVar[str] = "title"
    type_fields: ClassVar[tuple[str, ...]] = ("title", "rationale", "date")

    title: str
    rationale: str
    date: str | None = None


@dataclass(kw_only=True)
class ReferenceRecord(BaseRecord):
    type: ClassVar[RecordType] = RecordType.REFERENCE
    key_field: ClassVar[str] = "name"
    type_fields: ClassVar[tuple[str, ...]] = ("name", "description", "files")

    name: str
    description: str
    files: list[str] | None = None


@dataclass(kw_only=True)
class GuideRecord(BaseRecord):
    type: ClassVar[RecordType] = RecordType.GUIDE
    key_field: ClassVar[str] = "name"
    type_fields: ClassVar[tuple[str, ...]] = ("name", "description")

    name: str
    description: str


ExpertiseRecord = Union[
    ConventionRecord,
    PatternRecord,
    FailureRecord,
    DecisionRecord,
    ReferenceRecord,
    GuideRecord,
]

RECORD_CLASSES: dict[RecordType, type[BaseRecord]] = {
    RecordType.CONVENTION: ConventionRecord,
    RecordType.PATTERN: PatternRecord,
    RecordType.FAILURE: FailureRecord,
    RecordType.DECISION: DecisionRecord,
    RecordType.REFERENCE: ReferenceRecord,
    RecordType.GUIDE: GuideRecord,
}

# Upserted on matching key instead of being skipped as duplicates
NAMED_TYPES: frozenset[RecordType] = frozenset(
    {RecordType.PATTERN, RecordType.DECISION, RecordType.REFERENCE, RecordType.GUIDE}
)


def record_class(record_type: RecordType | str) -> type[BaseRecord]:
    return RECORD_CLASSES[RecordType(record_type)]


def make_record(record_type: RecordType | str, **kwargs: Any) -> ExpertiseRecord:
    """Build a record of *record_type*; ``classification`` may be a plain string."""
    if "classification" in kwargs:
        kwargs["classification"] = Classification(kwargs["classification"])
    return record_class(record_type)(**kwargs)  # type: ignore[return-value]


def record_from_dict(d: dict[str, Any]) -> ExpertiseRecord:
    """Build a record from an already schema-validated dict."""
    cls = record_class(d["type"])
    kwargs: dict[str, Any] = {name: d[name] for name in cls.type_fields if name in d}
    kwargs["classification"] = Classification(d["classification"])
    kwargs["recorded_at"] = d["recorded_at"]
    kwargs["id"] = d.get("id")
    if d.get("evidence") is not None:
        kwargs["evidence"] = Evidence.from_dict(d["evidence"])
    for name in ("tags", "relates_to", "supersedes"):
        if d.get(name) is not None:
            kwargs[name] = list(d[name])
    if d.get("outcomes") is not None:
        kwargs["outcomes"] = [Outcome.from_dict(o) for o in d["outcomes"]]
    return cls(**kwargs)  # type: ignore[return-value]


@dataclass
class RecordResult:
    """Outcome of recording new expertise."""

    action: RecordAction
    record: ExpertiseRecord
    domain: str
