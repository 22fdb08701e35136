"""Plain-text and markdown rendering of expertise records."""
from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone

from tilth.config.constants import APP_NAME
from tilth.config.project import GovernanceConfig
from tilth.expertise.models import ExpertiseRecord, RecordType


# Section headings in prime and markdown output, in display order
SECTION_TITLES: dict[RecordType, str] = {
    RecordType.CONVENTION: "Conventions",
    RecordType.PATTERN: "Patterns",
    RecordType.FAILURE: "Known Failures",
    RecordType.DECISION: "Decisions",
    RecordType.REFERENCE: "References",
    RecordType.GUIDE: "Guides",
}

HEALTH_NOTES: dict[str, str] = {
    "ok": "",
    "approaching": " - approaching limit",
    "warn": " ! consider splitting domain",
    "over": " ! OVER HARD LIMIT, must decompose",
}


def format_time_ago(when: datetime, now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    seconds = (now - when).total_seconds()
    minutes = int(seconds // 60)
    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    return f"{hours // 24}d ago"


def record_summary(record: ExpertiseRecord) -> str:
    """One-line description: the defining field, plus the name's description for named kinds."""
    if record.type == RecordType.CONVENTION:
        return record.content
    if record.type == RecordType.FAILURE:
        return record.description
    if record.type == RecordType.DECISION:
        return record.title
    return f"{record.name}: {record.description}"


def format_compact_line(record: ExpertiseRecord) -> str:
    tags = f" [{', '.join(record.tags)}]" if record.tags else ""
    return f"{record.id or '(no id)'} {record.type.value}: {record_summary(record)}{tags}"


def format_ids(records: Sequence[ExpertiseRecord]) -> str:
    return "\n".join(r.id or "" for r in records)


def _format_record_lines(record: ExpertiseRecord) -> list[str]:
    suffix = f" ({record.id})" if record.id else ""
    if record.type == RecordType.CONVENTION:
        lines = [f"- {record.content}{suffix}"]
    elif record.type == RecordType.FAILURE:
        lines = [f"- {record.description}{suffix}", f"  -> {record.resolution}"]
    elif record.type == RecordType.DECISION:
        lines = [f"- **{record.title}**: {record.rationale}{suffix}"]
    else:
        line = f"- **{record.name}**: {record.description}"
        files = getattr(record, "files", None)
        if files:
            line += f" ({', '.join(files)})"
        lines = [line + suffix]
    if record.outcomes:
        successes = sum(1 for o in record.outcomes if o.status.value == "success")
        lines.append(f"  outcomes: {successes}/{len(record.outcomes)} successful")
    return lines


def format_records_markdown(records: Sequence[ExpertiseRecord]) -> str:
    """Records grouped into one ``###`` section per type; empty types are omitted."""
    sections = []
    for record_type, title in SECTION_TITLES.items():
        group = [r for r in records if r.type == record_type]
        if not group:
            continue
        lines = [f"### {title}"]
        for record in group:
            lines.extend(_format_record_lines(record))
        sections.append("\n".join(lines))
    return "\n\n".join(sections)


def format_domain_expertise(
    domain: str,
    records: Sequence[ExpertiseRecord],
    last_updated: datetime | None = None,
) -> str:
    updated = f", updated {format_time_ago(last_updated)}" if last_updated else ""
    header = f"## {domain} ({len(records)} entries{updated})"
    body = format_records_markdown(records)
    return f"{header}\n\n{body}" if body else header


def format_prime_output(domain_sections: Sequence[str]) -> str:
    lines = [f"# Project Expertise (via {APP_NAME})", ""]
    if domain_sections:
        lines.append("\n\n".join(domain_sections))
    else:
        lines.append(
            f"No expertise recorded yet. Use `{APP_NAME} add <domain>` to create a domain, "
            f"then `{APP_NAME} record` to add entries."
        )
    lines.extend([
        "",
        "## Recording New Learnings",
        "",
        "When you discover a pattern, convention, failure, or make an architectural decision:",
        "",
        "```bash",
        f'{APP_NAME} record <domain> --type convention "description"',
        f'{APP_NAME} record <domain> --type failure --description "..." --resolution "..."',
        f'{APP_NAME} record <domain> --type decision --title "..." --rationale "..."',
        f'{APP_NAME} record <domain> --type pattern --name "..." --description "..." --files "..."',
        "```",
    ])
    return "\n".join(lines)


def format_status_line(
    domain: str,
    count: int,
    last_updated: datetime | None,
    health: str,
) -> str:
    updated = format_time_ago(last_updated) if last_updated else "never"
    return f"  {domain}: {count} entries (updated {updated}){HEALTH_NOTES.get(health, '')}"


def format_status_output(statuses: Sequence, governance: GovernanceConfig) -> str:
    """Status report; *statuses* are :class:`~tilth.expertise.service.DomainStatus` values."""
    lines = [f"{APP_NAME} status", "============", ""]
    if not statuses:
        lines.append(f"No domains configured. Run `{APP_NAME} add <domain>` to get started.")
        return "\n".join(lines)
    for s in statuses:
        lines.append(format_status_line(s.domain, s.count, s.last_updated, s.health))
    lines.append("")
    lines.append(
        f"Governance: max {governance.max_entries}, warn {governance.warn_entries}, "
        f"hard limit {governance.hard_limit}"
    )
    return "\n".join(lines)
