"""Newline-delimited JSON persistence for one domain file.

Each domain is a ``.jsonl`` file holding one compact JSON object per line.
Writers hold the domain lock (see :mod:`tilth.expertise.lock`); readers take
no lock and rely on :func:`write_expertise_file` replacing the file
atomically, so they see either the old or the new content, never a mix.
"""
from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Iterable, Iterator
from datetime import datetime, timezone
from pathlib import Path

from tilth.core.logging_config import get_logger
from tilth.expertise.errors import (
    MalformedRecordError,
    RecordValidationError,
    StoreIOError,
    StoreNotInitializedError,
)
from tilth.expertise.ids import ensure_record_id
from tilth.expertise.models import (
    Classification,
    ExpertiseRecord,
    OutcomeStatus,
    RecordType,
)
from tilth.expertise.schema import parse_record

logger = get_logger(__name__)


def domain_for_path(path: Path | str) -> str:
    return Path(path).stem


def serialize_record(record: ExpertiseRecord) -> str:
    """One compact JSON line, without the trailing newline."""
    return json.dumps(record.to_dict(), ensure_ascii=False, separators=(",", ":"))


def iter_raw_lines(path: Path | str) -> Iterator[tuple[int, bytes]]:
    """Yield ``(line_number, raw_bytes)`` for each non-blank line; nothing if the file is missing.

    Lines are left undecoded so one bad byte sequence only spoils its own line.
    """
    try:
        with open(path, "rb") as f:
            for number, line in enumerate(f, start=1):
                raw = line.strip()
                if raw:
                    yield number, raw
    except FileNotFoundError:
        return
    except OSError as exc:
        raise StoreIOError(path, exc) from exc


def read_expertise_file(path: Path | str) -> list[ExpertiseRecord]:
    """Load every record in *path*; a missing file is an empty domain.

    Raises:
        MalformedRecordError: On the first line that is not UTF-8, is not
            valid JSON or does not match the record schema
        StoreIOError: If the file exists but cannot be read
    """
    domain = domain_for_path(path)
    records: list[ExpertiseRecord] = []
    for number, raw in iter_raw_lines(path):
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedRecordError(domain, number, "Invalid UTF-8") from exc
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise MalformedRecordError(domain, number, f"Invalid JSON: {exc.msg}") from exc
        try:
            records.append(parse_record(data))
        except RecordValidationError as exc:
            raise MalformedRecordError(domain, number, f"Schema validation failed: {exc}") from exc
    return records


def _require_parent(path: Path) -> None:
    if not path.parent.is_dir():
        raise StoreNotInitializedError(
            f"Expertise directory {path.parent} does not exist. Run `tilth init` first."
        )


def create_expertise_file(path: Path | str) -> None:
    """Create an empty domain file, leaving an existing one untouched."""
    path = Path(path)
    _require_parent(path)
    try:
        with open(path, "a", encoding="utf-8"):
            pass
    except OSError as exc:
        raise StoreIOError(path, exc) from exc


def append_record(path: Path | str, record: ExpertiseRecord) -> ExpertiseRecord:
    """Assign an id if needed and append *record* as one line.

    Callers must hold the domain lock so the append cannot interleave with a
    rewrite by :func:`write_expertise_file`.
    """
    path = Path(path)
    _require_parent(path)
    ensure_record_id(record)
    line = serialize_record(record) + "\n"
    try:
        with open(path, "a+b") as f:
            # A hand-edited file may lack its final newline
            if f.seek(0, os.SEEK_END) > 0:
                f.seek(-1, os.SEEK_END)
                if f.read(1) != b"\n":
                    line = "\n" + line
            f.write(line.encode("utf-8"))
            f.flush()
            os.fsync(f.fileno())
    except OSError as exc:
        raise StoreIOError(path, exc) from exc
    logger.debug("Appended %s to %s", record.id, path)
    return record


def write_expertise_file(path: Path | str, records: Iterable[ExpertiseRecord]) -> None:
    """Replace the whole file with *records*, atomically.

    Records without an id get one (lazy migration); existing ids are kept.
    Content goes to a temp file in the same directory that is then renamed
    over the target.
    """
    path = Path(path)
    _require_parent(path)
    lines = []
    migrated = 0
    for record in records:
        if not record.id:
            migrated += 1
        ensure_record_id(record)
        lines.append(serialize_record(record) + "\n")
    content = "".join(lines)

    try:
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    except OSError as exc:
        raise StoreIOError(path.parent, exc) from exc
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except OSError as exc:
        Path(tmp_name).unlink(missing_ok=True)
        raise StoreIOError(path, exc) from exc
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    if migrated:
        logger.debug("Assigned ids to %d record(s) in %s", migrated, path)
    logger.debug("Rewrote %s with %d record(s)", path, len(lines))


def get_file_mod_time(path: Path | str) -> datetime | None:
    try:
        return datetime.fromtimestamp(os.stat(path).st_mtime, tz=timezone.utc)
    except OSError:
        return None


# ----------------------------------------------------------------------------
# Duplicate detection and filters
# ----------------------------------------------------------------------------


def find_duplicate(
    records: list[ExpertiseRecord], candidate: ExpertiseRecord
) -> tuple[int, ExpertiseRecord] | None:
    """Find the record *candidate* would collide with: same type and same defining field."""
    for index, existing in enumerate(records):
        if existing.type == candidate.type and existing.key == candidate.key:
            return index, existing
    return None


def filter_by_type(records: list[ExpertiseRecord], record_type: RecordType | str) -> list[ExpertiseRecord]:
    wanted = RecordType(record_type)
    return [r for r in records if r.type == wanted]


def filter_by_classification(
    records: list[ExpertiseRecord], classification: Classification | str
) -> list[ExpertiseRecord]:
    wanted = Classification(classification)
    return [r for r in records if r.classification == wanted]


def filter_by_tag(records: list[ExpertiseRecord], tag: str) -> list[ExpertiseRecord]:
    needle = tag.lower()
    return [r for r in records if any(t.lower() == needle for t in r.tags or [])]


def filter_by_file(records: list[ExpertiseRecord], file: str) -> list[ExpertiseRecord]:
    """Records with an associated file path containing *file*."""
    matched = []
    for r in records:
        files = getattr(r, "files", None) or []
        if any(file in f for f in files):
            matched.append(r)
    return matched


def filter_by_outcome_status(
    records: list[ExpertiseRecord], status: OutcomeStatus | str
) -> list[ExpertiseRecord]:
    wanted = OutcomeStatus(status)
    return [r for r in records if any(o.status == wanted for o in r.outcomes or [])]
