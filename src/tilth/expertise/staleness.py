"""Shelf-life staleness, pruning and compaction analysis."""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from tilth.config.project import ShelfLifeConfig
from tilth.expertise.models import Classification, ExpertiseRecord, RecordType


def record_age_days(record: ExpertiseRecord, now: datetime | None = None) -> int:
    """Whole days since the record was recorded; never negative."""
    now = now or datetime.now(timezone.utc)
    seconds = (now - record.recorded_at_datetime).total_seconds()
    return max(int(seconds // 86400), 0)


def shelf_life_days(classification: Classification, shelf_life: ShelfLifeConfig) -> int | None:
    """Shelf life for *classification*, or ``None`` if it never expires."""
    if classification == Classification.TACTICAL:
        return shelf_life.tactical
    if classification == Classification.OBSERVATIONAL:
        return shelf_life.observational
    return None


def is_stale(
    record: ExpertiseRecord,
    shelf_life: ShelfLifeConfig,
    now: datetime | None = None,
) -> bool:
    """True once the record's age in whole days exceeds its shelf life.

    Foundational records never go stale.
    """
    limit = shelf_life_days(record.classification, shelf_life)
    if limit is None:
        return False
    return record_age_days(record, now) > limit


def find_stale_records(
    records: Iterable[ExpertiseRecord],
    shelf_life: ShelfLifeConfig,
    now: datetime | None = None,
) -> list[ExpertiseRecord]:
    now = now or datetime.now(timezone.utc)
    return [r for r in records if is_stale(r, shelf_life, now)]


@dataclass
class PruneResult:
    domain: str
    pruned: list[ExpertiseRecord] = field(default_factory=list)
    kept: int = 0
    dry_run: bool = False

    @property
    def total_evaluated(self) -> int:
        return len(self.pruned) + self.kept


@dataclass
class CompactCandidate:
    """A same-type group in one domain worth merging into a single record."""

    domain: str
    type: RecordType
    records: list[ExpertiseRecord]
    stale_ids: list[str] = field(default_factory=list)

    @property
    def ids(self) -> list[str]:
        return [r.id or "" for r in self.records]


def find_compaction_candidates(
    domain: str,
    records: Iterable[ExpertiseRecord],
    shelf_life: ShelfLifeConfig,
    now: datetime | None = None,
) -> list[CompactCandidate]:
    """Group *records* by type; keep groups of 2+ with a stale member or 3+ members.

    Groups come out in order of each type's first appearance in *records*.
    """
    now = now or datetime.now(timezone.utc)
    by_type: dict[RecordType, list[ExpertiseRecord]] = {}
    for record in records:
        by_type.setdefault(record.type, []).append(record)

    candidates = []
    for record_type, group in by_type.items():
        if len(group) < 2:
            continue
        stale = [r for r in group if is_stale(r, shelf_life, now)]
        if stale or len(group) >= 3:
            candidates.append(
                CompactCandidate(
                    domain=domain,
                    type=record_type,
                    records=group,
                    stale_ids=[r.id or "" for r in stale],
                )
            )
    return candidates
