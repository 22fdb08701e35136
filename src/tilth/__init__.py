from __future__ import annotations

__version__ = "0.3.0"
__author__ = "tilth Contributors"

from tilth.expertise.models import (
    Classification,
    ExpertiseRecord,
    Outcome,
    OutcomeStatus,
    RecordType,
)

__all__ = [
    "Classification",
    "ExpertiseRecord",
    "Outcome",
    "OutcomeStatus",
    "RecordType",
    "ExpertiseService",
]


def __getattr__(name: str):
    if name == "ExpertiseService":
        from tilth.expertise.service import ExpertiseService

        return ExpertiseService
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
