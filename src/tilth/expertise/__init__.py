"""File-backed expertise records: models, storage, locking, ids and ranking."""
from tilth.expertise.errors import (
    AmbiguousIdError,
    DomainNotFoundError,
    ExpertiseError,
    LockTimeoutError,
    MalformedRecordError,
    NotFoundError,
    ProjectConfigError,
    RecordNotFoundError,
    RecordValidationError,
    StoreIOError,
    StoreNotInitializedError,
)
from tilth.expertise.models import (
    Classification,
    Evidence,
    ExpertiseRecord,
    Outcome,
    OutcomeStatus,
    RecordAction,
    RecordResult,
    RecordType,
)

__all__ = [
    "AmbiguousIdError",
    "Classification",
    "DomainNotFoundError",
    "Evidence",
    "ExpertiseError",
    "ExpertiseRecord",
    "LockTimeoutError",
    "MalformedRecordError",
    "NotFoundError",
    "Outcome",
    "OutcomeStatus",
    "ProjectConfigError",
    "RecordAction",
    "RecordNotFoundError",
    "RecordResult",
    "RecordType",
    "RecordValidationError",
    "StoreIOError",
    "StoreNotInitializedError",
]
