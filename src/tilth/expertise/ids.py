"""Deterministic record ids and ambiguity-aware prefix resolution."""
from __future__ import annotations

import hashlib
from collections.abc import Sequence

from tilth.expertise.errors import AmbiguousIdError, RecordNotFoundError
from tilth.expertise.models import ExpertiseRecord

ID_PREFIX = "mx-"
ID_HASH_LENGTH = 6


def generate_record_id(record: ExpertiseRecord) -> str:
    """Return ``mx-`` plus 6 hex chars hashed from the record's type and defining field.

    Only the defining field takes part: a pattern keeps its id when its
    description, classification or tags change.
    """
    digest = hashlib.sha256(f"{record.type.value}:{record.key}".encode("utf-8")).hexdigest()
    return f"{ID_PREFIX}{digest[:ID_HASH_LENGTH]}"


def ensure_record_id(record: ExpertiseRecord) -> ExpertiseRecord:
    """Assign a generated id in place when the record has none."""
    if not record.id:
        record.id = generate_record_id(record)
    return record


def _strip_prefix(value: str) -> str:
    return value[len(ID_PREFIX):] if value.startswith(ID_PREFIX) else value


def resolve_record_id(records: Sequence[ExpertiseRecord], identifier: str) -> int:
    """Return the index of the single record whose id starts with *identifier*.

    *identifier* may be a full id (``mx-abc123``), a bare hash (``abc123``)
    or any prefix of the hash, with or without ``mx-``.

    Raises:
        RecordNotFoundError: If nothing matches
        AmbiguousIdError: If more than one record matches; lists every match
    """
    needle = _strip_prefix(identifier.strip().lower())
    if not needle:
        raise RecordNotFoundError(identifier)

    matches = [
        i for i, record in enumerate(records)
        if record.id and _strip_prefix(record.id).startswith(needle)
    ]
    if not matches:
        raise RecordNotFoundError(identifier)
    if len(matches) > 1:
        raise AmbiguousIdError(identifier, [records[i].id or "" for i in matches])
    return matches[0]
