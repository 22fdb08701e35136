"""CLI commands: tilth record / edit / delete."""
from __future__ import annotations

import argparse

from rich.markup import escape

from tilth.cli.output import CommandContext, command_parser, report_error, report_success, split_list
from tilth.expertise.formatting import record_summary
from tilth.expertise.models import Classification, Evidence, RecordAction, RecordType
from tilth.expertise.service import RecordUpdates, build_record

_TYPE_CHOICES = [t.value for t in RecordType]
_CLASSIFICATION_CHOICES = [c.value for c in Classification]


def _add_field_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--content", default=None, help="Convention text")
    parser.add_argument("--name", default=None, help="Name (pattern, reference, guide)")
    parser.add_argument("--description", default=None, help="Description")
    parser.add_argument("--resolution", default=None, help="How the failure was resolved")
    parser.add_argument("--title", default=None, help="Decision title")
    parser.add_argument("--rationale", default=None, help="Decision rationale")
    parser.add_argument("--date", default=None, help="Decision date")
    parser.add_argument("--files", default=None, help="Comma-separated related files")
    parser.add_argument("--tags", default=None, help="Comma-separated tags")
    parser.add_argument("--relates-to", default=None, help="Comma-separated related record ids")
    parser.add_argument("--supersedes", default=None, help="Comma-separated superseded record ids")
    parser.add_argument(
        "--classification",
        choices=_CLASSIFICATION_CHOICES,
        default=None,
        help="foundational, tactical or observational",
    )
    parser.add_argument("--evidence-commit", default=None, help="Commit backing this record")
    parser.add_argument("--evidence-date", default=None, help="Date of the evidence")
    parser.add_argument("--evidence-issue", default=None, help="Issue backing this record")
    parser.add_argument("--evidence-file", default=None, help="File backing this record")


def _evidence(args: argparse.Namespace) -> Evidence | None:
    evidence = Evidence(
        commit=args.evidence_commit,
        date=args.evidence_date,
        issue=args.evidence_issue,
        file=args.evidence_file,
    )
    return evidence if evidence.to_dict() else None


def run_record(argv: list[str], ctx: CommandContext) -> int:
    """Entry point for `tilth record`."""
    parser = command_parser("record", "Record an expertise entry in a domain.")
    parser.add_argument("domain", help="Expertise domain")
    parser.add_argument(
        "text",
        nargs="?",
        default=None,
        help="Convention content, or the description for other types",
    )
    parser.add_argument("--type", dest="type_", required=True, choices=_TYPE_CHOICES, help="Record type")
    parser.add_argument("--force", action="store_true", help="Record even if a duplicate exists")
    _add_field_arguments(parser)
    args = parser.parse_args(argv)
    ctx = ctx.with_args(args)

    record_type = RecordType(args.type_)
    fields = {
        "content": args.content,
        "name": args.name,
        "description": args.description,
        "resolution": args.resolution,
        "title": args.title,
        "rationale": args.rationale,
        "date": args.date,
        "files": split_list(args.files),
    }
    if args.text is not None:
        target = "content" if record_type == RecordType.CONVENTION else "description"
        if fields[target] is None:
            fields[target] = args.text
    fields = {k: v for k, v in fields.items() if v is not None}

    record = build_record(
        record_type,
        classification=args.classification or Classification.TACTICAL.value,
        tags=split_list(args.tags),
        relates_to=split_list(args.relates_to),
        supersedes=split_list(args.supersedes),
        evidence=_evidence(args),
        **fields,
    )

    result = ctx.service().record(args.domain, record, force=args.force)
    messages = {
        RecordAction.CREATED: f"[green]✔ Recorded {record_type.value} {result.record.id} in {args.domain}[/green]",
        RecordAction.UPDATED: f"[green]✔ Updated {record_type.value} {result.record.id} in {args.domain}[/green]",
        RecordAction.SKIPPED: (
            f"[yellow]Duplicate {record_type.value} already exists in {args.domain} "
            f"({result.record.id}). Use --force to record anyway.[/yellow]"
        ),
    }
    report_success(
        ctx,
        "record",
        messages[result.action],
        action=result.action.value,
        domain=args.domain,
        record=result.record.to_dict(),
    )
    return 0


def run_edit(argv: list[str], ctx: CommandContext) -> int:
    """Entry point for `tilth edit`."""
    parser = command_parser("edit", "Edit fields of an existing record.")
    parser.add_argument("domain", help="Expertise domain")
    parser.add_argument("id", help="Record id (mx-abc123, abc123 or a unique prefix)")
    _add_field_arguments(parser)
    args = parser.parse_args(argv)
    ctx = ctx.with_args(args)

    updates = RecordUpdates(
        classification=Classification(args.classification) if args.classification else None,
        tags=split_list(args.tags),
        relates_to=split_list(args.relates_to),
        supersedes=split_list(args.supersedes),
        evidence=_evidence(args),
        content=args.content,
        name=args.name,
        description=args.description,
        resolution=args.resolution,
        title=args.title,
        rationale=args.rationale,
        date=args.date,
        files=split_list(args.files),
    )
    if not updates.provided():
        return report_error(ctx, "edit", "Nothing to change: pass at least one field option.")

    record = ctx.service().edit(args.domain, args.id, updates)
    report_success(
        ctx,
        "edit",
        f"[green]✔ Updated {record.type.value} {record.id} in {args.domain}[/green]",
        domain=args.domain,
        record=record.to_dict(),
    )
    return 0


def run_delete(argv: list[str], ctx: CommandContext) -> int:
    """Entry point for `tilth delete`."""
    parser = command_parser("delete", "Delete a record from a domain.")
    parser.add_argument("domain", help="Expertise domain")
    parser.add_argument("id", help="Record id (mx-abc123, abc123 or a unique prefix)")
    args = parser.parse_args(argv)
    ctx = ctx.with_args(args)

    removed = ctx.service().delete(args.domain, args.id)
    report_success(
        ctx,
        "delete",
        f"[green]✔ Deleted {removed.type.value} {removed.id} from {args.domain}:[/green] "
        f"{escape(record_summary(removed))}",
        domain=args.domain,
        id=removed.id,
        type=removed.type.value,
        summary=record_summary(removed),
    )
    return 0
