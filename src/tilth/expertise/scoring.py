"""Confirmation-frequency scoring from a record's outcome history.

A success counts 1, a partial 0.5 and a failure 0. Records without outcomes
score 0 and are never boosted.
"""
from __future__ import annotations

from collections.abc import Iterable
from typing import TypeVar

from tilth.config.constants import DEFAULT_CONFIRMATION_BOOST_FACTOR
from tilth.expertise.models import ExpertiseRecord, OutcomeStatus

R = TypeVar("R", bound=ExpertiseRecord)


def _count(record: ExpertiseRecord, status: OutcomeStatus) -> int:
    return sum(1 for o in record.outcomes or [] if o.status == status)


def get_success_count(record: ExpertiseRecord) -> int:
    return _count(record, OutcomeStatus.SUCCESS)


def get_failure_count(record: ExpertiseRecord) -> int:
    return _count(record, OutcomeStatus.FAILURE)


def get_partial_count(record: ExpertiseRecord) -> int:
    return _count(record, OutcomeStatus.PARTIAL)


def get_total_applications(record: ExpertiseRecord) -> int:
    return len(record.outcomes or [])


def compute_confirmation_score(record: ExpertiseRecord) -> float:
    return get_success_count(record) + 0.5 * get_partial_count(record)


def get_success_rate(record: ExpertiseRecord) -> float:
    """Confirmation score over total applications, in ``[0, 1]``; 0 with no outcomes."""
    total = get_total_applications(record)
    if total == 0:
        return 0.0
    return compute_confirmation_score(record) / total


def apply_confirmation_boost(
    base_score: float,
    record: ExpertiseRecord,
    boost_factor: float = DEFAULT_CONFIRMATION_BOOST_FACTOR,
) -> float:
    """Scale *base_score* by ``1 + boost_factor * confirmation_score``."""
    confirmation = compute_confirmation_score(record)
    if confirmation == 0:
        return base_score
    return base_score * (1 + boost_factor * confirmation)


def sort_by_confirmation_score(records: Iterable[R]) -> list[R]:
    """Highest confirmation score first; ``sorted`` is stable so ties keep input order."""
    return sorted(records, key=compute_confirmation_score, reverse=True)
