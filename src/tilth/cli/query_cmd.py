"""CLI commands: tilth query / search."""
from __future__ import annotations

import argparse

from rich.markup import escape
from rich.table import Table

from tilth.cli.output import CommandContext, command_parser, emit_json, report_error
from tilth.expertise.formatting import (
    format_compact_line,
    format_domain_expertise,
    format_ids,
    record_summary,
)
from tilth.expertise.models import Classification, ExpertiseRecord, OutcomeStatus, RecordType


def _add_filter_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--type", dest="type_", choices=[t.value for t in RecordType], help="Filter by record type")
    parser.add_argument(
        "--classification",
        choices=[c.value for c in Classification],
        help="Filter by classification",
    )
    parser.add_argument("--file", default=None, help="Filter by file path substring")
    parser.add_argument(
        "--outcome-status",
        choices=[s.value for s in OutcomeStatus],
        help="Only records with at least one outcome of this status",
    )
    parser.add_argument("--sort-by-score", action="store_true", help="Order by confirmed outcomes")
    parser.add_argument(
        "--format",
        dest="format_",
        choices=["markdown", "compact", "ids", "table"],
        default="markdown",
        help="Output format (default: markdown)",
    )


def _print_records(
    ctx: CommandContext,
    format_: str,
    domain: str,
    records: list[ExpertiseRecord],
    scores: list[float] | None = None,
) -> None:
    if format_ == "ids":
        if records:
            print(format_ids(records))
    elif format_ == "compact":
        for record in records:
            print(format_compact_line(record))
    elif format_ == "table":
        table = Table(title=f"{domain} ({len(records)})", show_lines=False)
        table.add_column("ID", style="dim", no_wrap=True)
        table.add_column("Type", style="cyan")
        table.add_column("Class", style="magenta")
        if scores is not None:
            table.add_column("Score", justify="right")
        table.add_column("Summary", no_wrap=False, max_width=60)
        for i, record in enumerate(records):
            row = [record.id or "", record.type.value, record.classification.value]
            if scores is not None:
                row.append(f"{scores[i]:.2f}")
            row.append(escape(record_summary(record)))
            table.add_row(*row)
        ctx.console.print(table)
    else:
        print(format_domain_expertise(domain, records))
        print()


def run_query(argv: list[str], ctx: CommandContext) -> int:
    """Entry point for `tilth query`."""
    parser = command_parser("query", "Show the records of a domain.")
    parser.add_argument("domain", nargs="?", default=None, help="Expertise domain")
    parser.add_argument("--all", action="store_true", help="Query every domain")
    _add_filter_arguments(parser)
    args = parser.parse_args(argv)
    ctx = ctx.with_args(args)

    service = ctx.service()
    domain = args.domain
    if domain is None and not args.all:
        domains = service.load_config().domains
        if len(domains) != 1:
            return report_error(ctx, "query", "Please specify a domain or use --all.")
        domain = domains[0]

    results = service.query(
        domain,
        record_type=args.type_,
        classification=args.classification,
        file=args.file,
        outcome_status=args.outcome_status,
        sort_by_score=args.sort_by_score,
    )

    if ctx.output.json_mode:
        emit_json({
            "success": True,
            "command": "query",
            "domains": [
                {"domain": r.domain, "records": [rec.to_dict() for rec in r.records]}
                for r in results
            ],
        })
        return 0

    for result in results:
        _print_records(ctx, args.format_, result.domain, result.records)
    return 0


def run_search(argv: list[str], ctx: CommandContext) -> int:
    """Entry point for `tilth search`."""
    parser = command_parser("search", "Search records across domains with BM25 ranking.")
    parser.add_argument("query", nargs="?", default="", help="Search text")
    parser.add_argument("--domain", default=None, help="Limit to one domain")
    parser.add_argument("--tag", default=None, help="Filter by tag (case-insensitive)")
    _add_filter_arguments(parser)
    args = parser.parse_args(argv)
    ctx = ctx.with_args(args)

    has_filter = any([args.type_, args.classification, args.file, args.outcome_status, args.tag])
    if not args.query.strip() and not has_filter:
        return report_error(ctx, "search", "Provide a search query or at least one filter.")

    results = ctx.service().search(
        args.query,
        domain=args.domain,
        record_type=args.type_,
        tag=args.tag,
        classification=args.classification,
        file=args.file,
        outcome_status=args.outcome_status,
        sort_by_score=args.sort_by_score,
    )

    if ctx.output.json_mode:
        emit_json({
            "success": True,
            "command": "search",
            "query": args.query,
            "domains": [
                {
                    "domain": r.domain,
                    "matches": [
                        {"score": h.score, "matched_fields": h.matched_fields, "record": h.record.to_dict()}
                        for h in r.hits
                    ],
                }
                for r in results
            ],
        })
        return 0

    if not results:
        if not ctx.output.quiet:
            ctx.console.print("[yellow]No matching records.[/yellow]")
        return 0

    for result in results:
        _print_records(
            ctx,
            args.format_,
            result.domain,
            result.records,
            scores=[h.score for h in result.hits],
        )
    return 0
