"""CLI command: tilth prune. Remove records past their shelf life."""
from __future__ import annotations

from rich.markup import escape
from rich.table import Table

from tilth.cli.output import CommandContext, command_parser, emit_json
from tilth.expertise.formatting import record_summary
from tilth.expertise.staleness import record_age_days


def run_prune(argv: list[str], ctx: CommandContext) -> int:
    """Entry point for `tilth prune`."""
    parser = command_parser(
        "prune",
        "Remove stale tactical and observational records. Foundational records are never pruned.",
    )
    parser.add_argument("--domain", default=None, help="Limit to one domain")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Show what would be pruned without deleting",
    )
    args = parser.parse_args(argv)
    ctx = ctx.with_args(args)

    results = ctx.service().prune(domain=args.domain, dry_run=args.dry_run)
    total = sum(len(r.pruned) for r in results)

    if ctx.output.json_mode:
        emit_json({
            "success": True,
            "command": "prune",
            "dry_run": args.dry_run,
            "total_pruned": total,
            "domains": [
                {
                    "domain": r.domain,
                    "pruned": [p.to_dict() for p in r.pruned],
                    "kept": r.kept,
                }
                for r in results
            ],
        })
        return 0

    if total == 0:
        if not ctx.output.quiet:
            ctx.console.print("[green]No stale records found.[/green]")
        return 0

    verb = "Would prune" if args.dry_run else "Pruned"
    table = Table(title=f"{verb} {total} stale record(s)", show_lines=False)
    table.add_column("Domain", style="magenta")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Class", style="cyan")
    table.add_column("Age (d)", justify="right")
    table.add_column("Summary", no_wrap=False, max_width=60)
    for result in results:
        for record in result.pruned:
            table.add_row(
                result.domain,
                record.id or "",
                record.classification.value,
                str(record_age_days(record)),
                escape(record_summary(record)),
            )
    if not ctx.output.quiet or args.dry_run:
        ctx.console.print(table)
    if args.dry_run and not ctx.output.quiet:
        ctx.console.print("[yellow]Dry run: no records were removed.[/yellow]")
    return 0
