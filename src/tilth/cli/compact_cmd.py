"""CLI command: tilth compact. Find and merge overlapping records."""
from __future__ import annotations

from rich.markup import escape

from tilth.cli.output import CommandContext, command_parser, emit_json, report_error, report_success, split_list
from tilth.expertise.formatting import record_summary
from tilth.expertise.models import Classification, RecordType, record_class
from tilth.expertise.service import build_record


def run_compact(argv: list[str], ctx: CommandContext) -> int:
    """Entry point for `tilth compact`."""
    parser = command_parser("compact", "Analyze compaction candidates or merge records into one.")
    parser.add_argument("domain", nargs="?", default=None, help="Expertise domain (required for --apply)")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--analyze", action="store_true", help="Show compaction candidates")
    mode.add_argument("--apply", action="store_true", help="Replace --records with one summary record")
    parser.add_argument("--records", default=None, help="Comma-separated record ids to compact")
    parser.add_argument("--type", dest="type_", choices=[t.value for t in RecordType], default=None,
                        help="Type of the replacement (default: type of the first record)")
    parser.add_argument("--content", default=None)
    parser.add_argument("--name", default=None)
    parser.add_argument("--description", default=None)
    parser.add_argument("--resolution", default=None)
    parser.add_argument("--title", default=None)
    parser.add_argument("--rationale", default=None)
    args = parser.parse_args(argv)
    ctx = ctx.with_args(args)

    if args.analyze:
        return _analyze(ctx)
    if args.apply:
        if not args.domain:
            return report_error(ctx, "compact", "Domain is required for --apply.")
        return _apply(ctx, args)
    return report_error(ctx, "compact", "Specify --analyze or --apply.")


def _analyze(ctx: CommandContext) -> int:
    candidates = ctx.service().compact_candidates()
    if ctx.output.json_mode:
        emit_json({
            "success": True,
            "command": "compact",
            "action": "analyze",
            "candidates": [
                {
                    "domain": c.domain,
                    "type": c.type.value,
                    "stale_ids": c.stale_ids,
                    "records": [
                        {"id": r.id, "summary": record_summary(r), "recorded_at": r.recorded_at}
                        for r in c.records
                    ],
                }
                for c in candidates
            ],
        })
        return 0

    if not candidates:
        ctx.console.print("[green]No compaction candidates found.[/green]")
        return 0

    ctx.console.print("[bold]Compaction candidates:[/bold]\n")
    for c in candidates:
        ctx.console.print(f"[cyan]{c.domain}/{c.type.value}[/cyan] ({len(c.records)} records)")
        for r in c.records:
            stale = " [yellow](stale)[/yellow]" if r.id in c.stale_ids else ""
            ctx.console.print(f"  {r.id or '(no id)'}: {escape(record_summary(r))}{stale}")
        ctx.console.print()
    ctx.console.print(
        escape("To compact, run: tilth compact <domain> --apply --records <ids> --type <type> [fields...]"),
        style="dim",
    )
    return 0


def _apply(ctx: CommandContext, args) -> int:
    identifiers = split_list(args.records) or []
    if not identifiers:
        return report_error(ctx, "compact", "--records is required for --apply.")

    service = ctx.service()
    record_type = RecordType(args.type_) if args.type_ else service.get_record(args.domain, identifiers[0]).type

    fields = {
        "content": args.content,
        "name": args.name,
        "description": args.description,
        "resolution": args.resolution,
        "title": args.title,
        "rationale": args.rationale,
    }
    if record_type == RecordType.CONVENTION and fields["content"] is None:
        fields["content"] = fields.pop("description")
    allowed = set(record_class(record_type).type_fields)
    fields = {k: v for k, v in fields.items() if v is not None and k in allowed}

    replacement = build_record(record_type, classification=Classification.FOUNDATIONAL, **fields)
    result = service.compact(args.domain, identifiers, replacement)
    report_success(
        ctx,
        "compact",
        f"[green]✔ Compacted {len(result.removed)} {record_type.value} records into 1 "
        f"({result.replacement.id}) in {args.domain}[/green]",
        action="applied",
        domain=args.domain,
        removed=len(result.removed),
        replacement=result.replacement.to_dict(),
    )
    return 0
