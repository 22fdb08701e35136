"""CLI command: tilth outcome. Record or list outcomes of a record."""
from __future__ import annotations

from rich.markup import escape

from tilth.cli.output import CommandContext, command_parser, emit_json, report_success
from tilth.expertise.models import Outcome, OutcomeStatus

_STATUS_STYLES = {
    OutcomeStatus.SUCCESS: "green",
    OutcomeStatus.FAILURE: "red",
    OutcomeStatus.PARTIAL: "yellow",
}


def run_outcome(argv: list[str], ctx: CommandContext) -> int:
    """Entry point for `tilth outcome`. Without --status, lists existing outcomes."""
    parser = command_parser("outcome", "Append an outcome to a record, or list its outcomes.")
    parser.add_argument("domain", help="Expertise domain")
    parser.add_argument("id", help="Record id (mx-abc123, abc123 or a unique prefix)")
    parser.add_argument("--status", choices=[s.value for s in OutcomeStatus], default=None)
    parser.add_argument("--duration", type=float, default=None, help="Duration in milliseconds")
    parser.add_argument("--agent", default=None, help="Agent that applied the record")
    parser.add_argument("--notes", default=None, help="Free-form notes")
    parser.add_argument("--test-results", default=None, help="Test results summary")
    args = parser.parse_args(argv)
    ctx = ctx.with_args(args)
    service = ctx.service()

    if args.status is None:
        record = service.get_record(args.domain, args.id)
        outcomes = list(record.outcomes or [])
        if ctx.output.json_mode:
            emit_json({
                "success": True,
                "command": "outcome",
                "domain": args.domain,
                "id": record.id,
                "outcomes": [o.to_dict() for o in outcomes],
            })
            return 0
        if ctx.output.quiet:
            return 0
        if not outcomes:
            ctx.console.print("[dim]No outcomes recorded for this record.[/dim]")
            return 0
        ctx.console.print(f"[bold]Outcomes[/bold] for [cyan]{record.id}[/cyan] ({len(outcomes)}):")
        for i, o in enumerate(outcomes, start=1):
            agent = f" [dim]({escape(o.agent)})[/dim]" if o.agent else ""
            ctx.console.print(f"  [dim]{i}.[/dim] [{_STATUS_STYLES[o.status]}]{o.status.value}[/]{agent}")
            if o.duration is not None:
                ctx.console.print(f"     [dim]duration: {o.duration:g}ms[/dim]")
            if o.test_results:
                ctx.console.print(f"     [dim]tests: {escape(o.test_results)}[/dim]")
            if o.notes:
                ctx.console.print(f"     [dim]notes: {escape(o.notes)}[/dim]")
            ctx.console.print(f"     [dim]recorded: {o.recorded_at}[/dim]")
        return 0

    outcome = Outcome(
        status=OutcomeStatus(args.status),
        duration=args.duration,
        agent=args.agent,
        notes=args.notes,
        test_results=args.test_results,
    )
    result = service.append_outcome(args.domain, args.id, outcome)
    report_success(
        ctx,
        "outcome",
        f"[green]✔ Recorded {outcome.status.value} outcome for {result.record.id} "
        f"in {args.domain} ({result.total} total)[/green]",
        action="appended",
        domain=args.domain,
        id=result.record.id,
        outcome=outcome.to_dict(),
        total_outcomes=result.total,
    )
    return 0
