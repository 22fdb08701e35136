"""Project-level expertise operations over a ``.tilth/`` store.

:class:`ExpertiseService` is the only layer that knows about both the project
config and the domain files. Every mutation runs inside the domain's file
lock, from the read through the atomic write. Reads take no lock.
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from tilth.config.project import (
    ProjectConfig,
    get_config_path,
    get_expertise_dir,
    get_expertise_path,
    get_project_dir,
    validate_domain_name,
)
from tilth.config.settings import LockConfig, Settings
from tilth.core.logging_config import get_logger
from tilth.expertise.bm25 import search_bm25
from tilth.expertise.errors import (
    AmbiguousIdError,
    DomainNotFoundError,
    RecordNotFoundError,
    RecordValidationError,
)
from tilth.expertise.ids import generate_record_id, resolve_record_id
from tilth.expertise.lock import FileLock
from tilth.expertise.models import (
    Classification,
    Evidence,
    ExpertiseRecord,
    Outcome,
    OutcomeStatus,
    RecordAction,
    RecordResult,
    RecordType,
    record_class,
    utcnow_iso,
)
from tilth.expertise.schema import parse_record, schema_errors, validate_record
from tilth.expertise.scoring import apply_confirmation_boost, sort_by_confirmation_score
from tilth.expertise.staleness import (
    CompactCandidate,
    PruneResult,
    find_compaction_candidates,
    is_stale,
)
from tilth.expertise.store import (
    append_record,
    create_expertise_file,
    filter_by_classification,
    filter_by_file,
    filter_by_outcome_status,
    filter_by_tag,
    filter_by_type,
    find_duplicate,
    get_file_mod_time,
    iter_raw_lines,
    read_expertise_file,
    write_expertise_file,
)

logger = get_logger(__name__)

_COMMON_UPDATE_FIELDS = ("classification", "tags", "relates_to", "supersedes", "evidence")


@dataclass
class RecordUpdates:
    """Fields to change on an existing record; ``None`` means leave as is.

    Pass an empty list to clear a list field.
    """

    classification: Classification | None = None
    tags: list[str] | None = None
    relates_to: list[str] | None = None
    supersedes: list[str] | None = None
    evidence: Evidence | None = None
    content: str | None = None
    name: str | None = None
    description: str | None = None
    resolution: str | None = None
    title: str | None = None
    rationale: str | None = None
    date: str | None = None
    files: list[str] | None = None

    def provided(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}


@dataclass
class DomainExpertise:
    domain: str
    records: list[ExpertiseRecord]
    last_updated: datetime | None = None


@dataclass
class SearchHit:
    record: ExpertiseRecord
    score: float = 0.0
    matched_fields: list[str] = field(default_factory=list)


@dataclass
class DomainSearchResult:
    domain: str
    hits: list[SearchHit]

    @property
    def records(self) -> list[ExpertiseRecord]:
        return [h.record for h in self.hits]


@dataclass
class OutcomeResult:
    domain: str
    record: ExpertiseRecord
    outcome: Outcome

    @property
    def total(self) -> int:
        return len(self.record.outcomes or [])


@dataclass
class CompactResult:
    domain: str
    removed: list[ExpertiseRecord]
    replacement: ExpertiseRecord


@dataclass
class DomainStatus:
    domain: str
    count: int
    last_updated: datetime | None
    health: str  # ok | approaching | warn | over


@dataclass
class ValidationIssue:
    domain: str
    line: int
    message: str

    def __str__(self) -> str:
        return f"{self.domain}:{self.line} - {self.message}"


@dataclass
class ValidationReport:
    issues: list[ValidationIssue] = field(default_factory=list)
    total_records: int = 0
    domains_checked: int = 0

    @property
    def ok(self) -> bool:
        return not self.issues


class ExpertiseService:
    """Expertise operations for the project rooted at *root* (default: cwd)."""

    def __init__(
        self,
        root: Path | str | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.root = Path(root) if root is not None else Path.cwd()
        self._settings = settings

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = Settings.load()
        return self._settings

    @property
    def lock_config(self) -> LockConfig:
        return self.settings.lock

    def load_config(self) -> ProjectConfig:
        return ProjectConfig.load(self.root)

    def _lock(self, path: Path) -> FileLock:
        cfg = self.lock_config
        return FileLock(
            path,
            timeout=cfg.timeout_seconds,
            stale_seconds=cfg.stale_seconds,
            poll_interval=cfg.poll_interval_seconds,
        )

    def _domain_path(self, domain: str, config: ProjectConfig) -> Path:
        if not config.has_domain(domain):
            raise DomainNotFoundError(domain, config.domains)
        return get_expertise_path(domain, self.root)

    def _select_domains(self, domain: str | None, config: ProjectConfig) -> list[str]:
        if domain is None:
            return list(config.domains)
        self._domain_path(domain, config)
        return [domain]

    # ------------------------------------------------------------------
    # Project setup
    # ------------------------------------------------------------------

    def init(self) -> bool:
        """Create ``.tilth/`` and a default config; return False if a config already existed."""
        get_expertise_dir(self.root).mkdir(parents=True, exist_ok=True)
        if get_config_path(self.root).exists():
            logger.debug("Config already present in %s", get_project_dir(self.root))
            return False
        ProjectConfig().save(self.root)
        logger.info("Initialized tilth store in %s", get_project_dir(self.root))
        return True

    def add_domain(self, name: str) -> Path:
        validate_domain_name(name)
        config = self.load_config()
        if config.has_domain(name):
            raise RecordValidationError(f'Domain "{name}" already exists.')
        path = get_expertise_path(name, self.root)
        create_expertise_file(path)
        config.domains.append(name)
        config.save(self.root)
        logger.info("Added domain %s", name)
        return path

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def record(self, domain: str, record: ExpertiseRecord, force: bool = False) -> RecordResult:
        """Store *record* in *domain*.

        A named record (pattern, decision, reference, guide) whose key already
        exists replaces that record and keeps its outcomes. Any other
        duplicate is skipped and the existing record returned. ``force``
        appends regardless.
        """
        validate_record(record)
        path = self._domain_path(domain, self.load_config())

        with self._lock(path):
            existing = read_expertise_file(path)
            dup = None if force else find_duplicate(existing, record)

            if dup is None:
                append_record(path, record)
                logger.info("Created %s %s in %s", record.type.value, record.id, domain)
                return RecordResult(action=RecordAction.CREATED, record=record, domain=domain)

            index, current = dup
            if not record.is_named:
                logger.info("Skipped duplicate %s %s in %s", record.type.value, current.id, domain)
                return RecordResult(action=RecordAction.SKIPPED, record=current, domain=domain)

            if current.outcomes:
                record.outcomes = list(current.outcomes) + list(record.outcomes or [])
            existing[index] = record
            write_expertise_file(path, existing)
            logger.info("Updated %s %s in %s", record.type.value, record.id, domain)
            return RecordResult(action=RecordAction.UPDATED, record=record, domain=domain)

    def edit(self, domain: str, identifier: str, updates: RecordUpdates) -> ExpertiseRecord:
        """Apply *updates* to one record, keeping its id.

        Raises:
            RecordValidationError: If an update names a field the record's
                type does not have, or the result fails the schema
        """
        changes = updates.provided()
        path = self._domain_path(domain, self.load_config())

        with self._lock(path):
            records = read_expertise_file(path)
            index = resolve_record_id(records, identifier)
            current = records[index]

            allowed = set(_COMMON_UPDATE_FIELDS) | set(current.type_fields)
            rejected = sorted(set(changes) - allowed)
            if rejected:
                raise RecordValidationError(
                    f"Cannot set {', '.join(rejected)} on a {current.type.value} record."
                )

            data = current.to_dict()
            for name, value in changes.items():
                if name == "classification":
                    data[name] = Classification(value).value
                elif name == "evidence":
                    data[name] = value.to_dict()
                else:
                    data[name] = list(value) if isinstance(value, list) else value
            updated = parse_record(data)

            records[index] = updated
            write_expertise_file(path, records)
        logger.info("Edited %s in %s (%s)", updated.id, domain, ", ".join(sorted(changes)) or "no changes")
        return updated

    def delete(self, domain: str, identifier: str) -> ExpertiseRecord:
        path = self._domain_path(domain, self.load_config())
        with self._lock(path):
            records = read_expertise_file(path)
            index = resolve_record_id(records, identifier)
            removed = records.pop(index)
            write_expertise_file(path, records)
        logger.info("Deleted %s %s from %s", removed.type.value, removed.id, domain)
        return removed

    def append_outcome(self, domain: str, identifier: str, outcome: Outcome) -> OutcomeResult:
        path = self._domain_path(domain, self.load_config())
        with self._lock(path):
            records = read_expertise_file(path)
            index = resolve_record_id(records, identifier)
            record = records[index]
            record.outcomes = list(record.outcomes or []) + [outcome]
            validate_record(record)
            write_expertise_file(path, records)
        logger.info("Recorded %s outcome for %s in %s", outcome.status.value, record.id, domain)
        return OutcomeResult(domain=domain, record=record, outcome=outcome)

    def compact(
        self,
        domain: str,
        identifiers: list[str],
        replacement: ExpertiseRecord,
    ) -> CompactResult:
        """Replace two or more records with one foundational summary record.

        The replacement lists the removed ids in ``supersedes`` and takes the
        position after the surviving records.
        """
        path = self._domain_path(domain, self.load_config())
        with self._lock(path):
            records = read_expertise_file(path)
            indices: list[int] = []
            for identifier in identifiers:
                index = resolve_record_id(records, identifier)
                if index not in indices:
                    indices.append(index)
            if len(indices) < 2:
                raise RecordValidationError("Compaction requires at least 2 records.")

            removed = [records[i] for i in indices]
            replacement.classification = Classification.FOUNDATIONAL
            superseded = [r.id for r in removed if r.id]
            if superseded:
                replacement.supersedes = superseded
            replacement.id = generate_record_id(replacement)
            validate_record(replacement)

            remaining = [r for i, r in enumerate(records) if i not in indices]
            remaining.append(replacement)
            write_expertise_file(path, remaining)
        logger.info(
            "Compacted %d %s records into %s in %s",
            len(removed), replacement.type.value, replacement.id, domain,
        )
        return CompactResult(domain=domain, removed=removed, replacement=replacement)

    def prune(self, domain: str | None = None, dry_run: bool = False) -> list[PruneResult]:
        """Remove stale tactical and observational records, one domain at a time.

        A dry run reads without locking and leaves every file untouched.
        """
        config = self.load_config()
        now = datetime.now(timezone.utc)
        results = []
        for name in self._select_domains(domain, config):
            path = get_expertise_path(name, self.root)
            if dry_run:
                records = read_expertise_file(path)
                stale = [r for r in records if is_stale(r, config.shelf_life, now)]
                results.append(PruneResult(name, stale, len(records) - len(stale), dry_run=True))
                continue

            with self._lock(path):
                records = read_expertise_file(path)
                stale, keep = [], []
                for record in records:
                    (stale if is_stale(record, config.shelf_life, now) else keep).append(record)
                if stale:
                    write_expertise_file(path, keep)
            if stale:
                logger.info("Pruned %d stale record(s) from %s", len(stale), name)
            results.append(PruneResult(name, stale, len(keep)))
        return results

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_record(self, domain: str, identifier: str) -> ExpertiseRecord:
        records = read_expertise_file(self._domain_path(domain, self.load_config()))
        return records[resolve_record_id(records, identifier)]

    def list_outcomes(self, domain: str, identifier: str) -> list[Outcome]:
        return list(self.get_record(domain, identifier).outcomes or [])

    @staticmethod
    def _apply_filters(
        records: list[ExpertiseRecord],
        record_type: RecordType | str | None = None,
        classification: Classification | str | None = None,
        tag: str | None = None,
        file: str | None = None,
        outcome_status: OutcomeStatus | str | None = None,
    ) -> list[ExpertiseRecord]:
        if record_type:
            records = filter_by_type(records, record_type)
        if classification:
            records = filter_by_classification(records, classification)
        if tag:
            records = filter_by_tag(records, tag)
        if file:
            records = filter_by_file(records, file)
        if outcome_status:
            records = filter_by_outcome_status(records, outcome_status)
        return records

    def query(
        self,
        domain: str | None = None,
        *,
        record_type: RecordType | str | None = None,
        classification: Classification | str | None = None,
        file: str | None = None,
        outcome_status: OutcomeStatus | str | None = None,
        sort_by_score: bool = False,
    ) -> list[DomainExpertise]:
        """Records per domain, filtered; every selected domain is returned, even if empty."""
        config = self.load_config()
        results = []
        for name in self._select_domains(domain, config):
            path = get_expertise_path(name, self.root)
            records = self._apply_filters(
                read_expertise_file(path),
                record_type=record_type,
                classification=classification,
                file=file,
                outcome_status=outcome_status,
            )
            if sort_by_score:
                records = sort_by_confirmation_score(records)
            results.append(DomainExpertise(name, records, get_file_mod_time(path)))
        return results

    def search(
        self,
        query: str = "",
        *,
        domain: str | None = None,
        record_type: RecordType | str | None = None,
        tag: str | None = None,
        classification: Classification | str | None = None,
        file: str | None = None,
        outcome_status: OutcomeStatus | str | None = None,
        sort_by_score: bool = False,
    ) -> list[DomainSearchResult]:
        """BM25-rank records per domain, boosted by confirmed outcomes.

        With a blank *query* the filters alone select records, in file order.
        Domains without hits are left out.
        """
        config = self.load_config()
        results = []
        for name in self._select_domains(domain, config):
            records = self._apply_filters(
                read_expertise_file(get_expertise_path(name, self.root)),
                record_type=record_type,
                classification=classification,
                tag=tag,
                file=file,
                outcome_status=outcome_status,
            )
            if query.strip():
                hits = [
                    SearchHit(r.record, apply_confirmation_boost(r.score, r.record), r.matched_fields)
                    for r in search_bm25(records, query)
                ]
                hits.sort(key=lambda h: h.score, reverse=True)
            else:
                hits = [SearchHit(r) for r in records]
            if sort_by_score:
                by_record = {id(h.record): h for h in hits}
                hits = [by_record[id(r)] for r in sort_by_confirmation_score([h.record for h in hits])]
            if hits:
                results.append(DomainSearchResult(name, hits))
        return results

    def compact_candidates(self) -> list[CompactCandidate]:
        config = self.load_config()
        candidates: list[CompactCandidate] = []
        for name in config.domains:
            records = read_expertise_file(get_expertise_path(name, self.root))
            if len(records) < 2:
                continue
            candidates.extend(find_compaction_candidates(name, records, config.shelf_life))
        return candidates

    def status(self) -> list[DomainStatus]:
        config = self.load_config()
        gov = config.governance
        statuses = []
        for name in config.domains:
            path = get_expertise_path(name, self.root)
            count = len(read_expertise_file(path))
            if count >= gov.hard_limit:
                health = "over"
            elif count >= gov.warn_entries:
                health = "warn"
            elif count >= gov.max_entries:
                health = "approaching"
            else:
                health = "ok"
            statuses.append(DomainStatus(name, count, get_file_mod_time(path), health))
        return statuses

    def validate(self) -> ValidationReport:
        """Check every line of every domain file, reporting all problems found."""
        config = self.load_config()
        report = ValidationReport()
        for name in config.domains:
            report.domains_checked += 1
            first_seen: dict[str, int] = {}
            for number, raw in iter_raw_lines(get_expertise_path(name, self.root)):
                report.total_records += 1
                try:
                    text = raw.decode("utf-8")
                except UnicodeDecodeError:
                    report.issues.append(ValidationIssue(name, number, "Invalid UTF-8"))
                    continue
                try:
                    data = json.loads(text)
                except json.JSONDecodeError as exc:
                    report.issues.append(ValidationIssue(name, number, f"Invalid JSON: {exc.msg}"))
                    continue
                errors = schema_errors(data)
                if errors:
                    report.issues.append(
                        ValidationIssue(name, number, "Schema validation failed: " + "; ".join(errors))
                    )
                    continue
                record_id = data.get("id")
                if record_id is None:
                    continue
                if record_id in first_seen:
                    report.issues.append(
                        ValidationIssue(
                            name, number,
                            f"Duplicate id {record_id} (first seen on line {first_seen[record_id]})",
                        )
                    )
                else:
                    first_seen[record_id] = number
        return report

    def prime(self, domains: list[str] | None = None) -> list[DomainExpertise]:
        config = self.load_config()
        names = list(config.domains) if not domains else domains
        results = []
        for name in names:
            path = self._domain_path(name, config)
            results.append(DomainExpertise(name, read_expertise_file(path), get_file_mod_time(path)))
        return results

    def resolve_reference(self, token: str) -> tuple[str, ExpertiseRecord]:
        """Find the record a ``relates_to`` or ``supersedes`` entry points at.

        *token* is an id (or id prefix), optionally qualified as
        ``domain:id``. Unqualified tokens are looked up in every domain.
        """
        config = self.load_config()
        if ":" in token:
            domain, identifier = token.split(":", 1)
            return domain, self.get_record(domain, identifier)

        matches: list[tuple[str, ExpertiseRecord]] = []
        for name in config.domains:
            records = read_expertise_file(get_expertise_path(name, self.root))
            try:
                matches.append((name, records[resolve_record_id(records, token)]))
            except RecordNotFoundError:
                continue
        if not matches:
            raise RecordNotFoundError(token)
        if len(matches) > 1:
            raise AmbiguousIdError(token, [f"{d}:{r.id}" for d, r in matches])
        return matches[0]


def build_record(record_type: RecordType | str, **kwargs: Any) -> ExpertiseRecord:
    """Build a record from keyword fields, validated against the schema.

    Fields the type does not define are rejected. Blank list fields are dropped.
    """
    cls = record_class(record_type)
    data: dict[str, Any] = {"type": cls.type.value}
    allowed = set(cls.type_fields) | {
        "classification", "recorded_at", "id", "evidence", "tags", "relates_to", "supersedes", "outcomes",
    }
    unknown = sorted(set(kwargs) - allowed)
    if unknown:
        raise RecordValidationError(f"Cannot set {', '.join(unknown)} on a {cls.type.value} record.")
    for name, value in kwargs.items():
        if value is None or (isinstance(value, list) and not value):
            continue
        if isinstance(value, Evidence):
            value = value.to_dict()
        elif isinstance(value, (Classification, RecordType)):
            value = value.value
        elif name == "outcomes":
            value = [o.to_dict() for o in value]
        data[name] = value
    data.setdefault("recorded_at", utcnow_iso())
    return parse_record(data)
