"""CLI commands: tilth status / prime."""
from __future__ import annotations

from rich.markup import escape

from tilth.cli.output import CommandContext, command_parser, emit_json
from tilth.expertise.formatting import (
    format_domain_expertise,
    format_prime_output,
    format_status_line,
    format_status_output,
)

_HEALTH_STYLES = {"ok": "green", "approaching": "yellow", "warn": "yellow", "over": "red"}


def run_status(argv: list[str], ctx: CommandContext) -> int:
    """Entry point for `tilth status`."""
    parser = command_parser("status", "Show record counts and governance health per domain.")
    args = parser.parse_args(argv)
    ctx = ctx.with_args(args)

    service = ctx.service()
    config = service.load_config()
    statuses = service.status()

    if ctx.output.json_mode:
        emit_json({
            "success": True,
            "command": "status",
            "governance": {
                "max_entries": config.governance.max_entries,
                "warn_entries": config.governance.warn_entries,
                "hard_limit": config.governance.hard_limit,
            },
            "domains": [
                {
                    "domain": s.domain,
                    "count": s.count,
                    "last_updated": s.last_updated.isoformat() if s.last_updated else None,
                    "health": s.health,
                }
                for s in statuses
            ],
        })
        return 0

    if not statuses:
        print(format_status_output(statuses, config.governance))
        return 0

    ctx.console.print("[bold]tilth status[/bold]\n")
    for s in statuses:
        line = format_status_line(s.domain, s.count, s.last_updated, s.health)
        ctx.console.print(escape(line), style=_HEALTH_STYLES[s.health], highlight=False)
    gov = config.governance
    ctx.console.print(
        f"\nGovernance: max {gov.max_entries}, warn {gov.warn_entries}, hard limit {gov.hard_limit}",
        style="dim",
    )
    return 0


def run_prime(argv: list[str], ctx: CommandContext) -> int:
    """Entry point for `tilth prime`."""
    parser = command_parser("prime", "Print all expertise as a markdown document for agent context.")
    parser.add_argument("--domain", action="append", dest="domains", default=None,
                        help="Domain to include (repeatable; default: all)")
    args = parser.parse_args(argv)
    ctx = ctx.with_args(args)

    domains = ctx.service().prime(args.domains)

    if ctx.output.json_mode:
        emit_json({
            "success": True,
            "command": "prime",
            "domains": [
                {
                    "domain": d.domain,
                    "entry_count": len(d.records),
                    "records": [r.to_dict() for r in d.records],
                }
                for d in domains
            ],
        })
        return 0

    sections = [format_domain_expertise(d.domain, d.records, d.last_updated) for d in domains]
    print(format_prime_output(sections))
    return 0
