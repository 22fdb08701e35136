"""CLI commands: tilth init / add."""
from __future__ import annotations

from tilth.cli.output import CommandContext, command_parser, report_success
from tilth.config.project import get_project_dir


def run_init(argv: list[str], ctx: CommandContext) -> int:
    """Entry point for `tilth init`."""
    parser = command_parser("init", "Create a .tilth/ expertise store in the current project.")
    args = parser.parse_args(argv)
    ctx = ctx.with_args(args)

    service = ctx.service()
    created = service.init()
    project_dir = get_project_dir(service.root)
    message = (
        f"[green]✔ Initialized {project_dir}[/green]"
        if created
        else f"[yellow]Already initialized: {project_dir}[/yellow]"
    )
    report_success(ctx, "init", message, created=created, path=str(project_dir))
    return 0


def run_add(argv: list[str], ctx: CommandContext) -> int:
    """Entry point for `tilth add`."""
    parser = command_parser("add", "Add an expertise domain.")
    parser.add_argument("domain", help="Domain name (letters, digits, '-' and '_')")
    args = parser.parse_args(argv)
    ctx = ctx.with_args(args)

    path = ctx.service().add_domain(args.domain)
    report_success(
        ctx,
        "add",
        f"[green]✔ Added domain {args.domain}[/green]",
        domain=args.domain,
        path=str(path),
    )
    return 0
