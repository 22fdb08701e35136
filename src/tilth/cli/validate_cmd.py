"""CLI command: tilth validate. Check every domain file against the record schema."""
from __future__ import annotations

from rich.markup import escape
from rich.panel import Panel

from tilth.cli.output import CommandContext, command_parser, emit_json


def run_validate(argv: list[str], ctx: CommandContext) -> int:
    """Entry point for `tilth validate`. Exits 1 when any line is invalid."""
    parser = command_parser("validate", "Validate every record line and check for duplicate ids.")
    args = parser.parse_args(argv)
    ctx = ctx.with_args(args)

    report = ctx.service().validate()

    if ctx.output.json_mode:
        emit_json({
            "success": report.ok,
            "command": "validate",
            "valid": report.ok,
            "total_records": report.total_records,
            "domains_checked": report.domains_checked,
            "errors": [
                {"domain": i.domain, "line": i.line, "message": i.message}
                for i in report.issues
            ],
        })
        return 0 if report.ok else 1

    if report.ok:
        if not ctx.output.quiet:
            ctx.console.print(
                f"[green]✔ {report.total_records} records in {report.domains_checked} "
                f"domain(s) are valid.[/green]"
            )
        return 0

    ctx.err_console.print(
        Panel(
            f"[bold]Validation failed[/bold]\n{len(report.issues)} problem(s) in "
            f"{report.total_records} record line(s)",
            expand=False,
            border_style="red",
        )
    )
    for issue in report.issues:
        ctx.err_console.print(f"  [red]✘[/red] {escape(str(issue))}")
    return 1
