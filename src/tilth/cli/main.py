"""tilth command-line entry point.

Global options come before the command name; everything after it is parsed by
the command itself::

    tilth [--json] [--quiet] [--root DIR] [--verbose] <command> [args...]
"""
from __future__ import annotations

import argparse
import sys
from collections.abc import Callable
from pathlib import Path

import tomli

from tilth import __version__
from tilth.cli.compact_cmd import run_compact
from tilth.cli.init_cmd import run_add, run_init
from tilth.cli.outcome_cmd import run_outcome
from tilth.cli.output import CommandContext, OutputOptions, report_error
from tilth.cli.prune import run_prune
from tilth.cli.query_cmd import run_query, run_search
from tilth.cli.record_cmd import run_delete, run_edit, run_record
from tilth.cli.status_cmd import run_prime, run_status
from tilth.cli.validate_cmd import run_validate
from tilth.config.settings import Settings
from tilth.core.logging_config import get_logger, setup_logging
from tilth.expertise.errors import ExpertiseError

logger = get_logger(__name__)

Handler = Callable[[list[str], CommandContext], int]

COMMANDS: dict[str, tuple[Handler, str]] = {
    "init": (run_init, "Create a .tilth/ store in the project"),
    "add": (run_add, "Add an expertise domain"),
    "record": (run_record, "Record an expertise entry"),
    "query": (run_query, "Show the records of a domain"),
    "search": (run_search, "Search records with BM25 ranking"),
    "edit": (run_edit, "Edit fields of a record"),
    "delete": (run_delete, "Delete a record"),
    "outcome": (run_outcome, "Append or list outcomes of a record"),
    "compact": (run_compact, "Find or merge overlapping records"),
    "prune": (run_prune, "Remove stale records"),
    "status": (run_status, "Show domain counts and health"),
    "validate": (run_validate, "Validate every domain file"),
    "prime": (run_prime, "Print expertise for agent context"),
}

# Global options that consume the following token
_VALUE_OPTIONS = {"--root", "--settings"}


def _build_parser() -> argparse.ArgumentParser:
    width = max(len(name) for name in COMMANDS)
    listing = "\n".join(f"  {name:<{width}}  {help_}" for name, (_, help_) in COMMANDS.items())
    parser = argparse.ArgumentParser(
        prog="tilth",
        description="File-backed expertise records for coding agents.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"commands:\n{listing}\n\nRun `tilth <command> --help` for command options.",
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    parser.add_argument("--quiet", "-q", action="store_true", help="Suppress success messages")
    parser.add_argument("--root", type=Path, default=None, help="Project root (default: current directory)")
    parser.add_argument("--settings", type=Path, default=None, help="User settings file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log at DEBUG level")
    return parser


def _split_argv(argv: list[str]) -> tuple[list[str], list[str]]:
    """Split into (global options, command and its arguments)."""
    i = 0
    while i < len(argv) and argv[i].startswith("-"):
        i += 2 if argv[i] in _VALUE_OPTIONS else 1
    return argv[:i], argv[i:]


def main(argv: list[str] | None = None) -> int:
    """Entry point for the ``tilth`` console script."""
    argv = list(sys.argv[1:] if argv is None else argv)
    head, rest = _split_argv(argv)
    parser = _build_parser()
    args = parser.parse_args(head)

    if not rest:
        parser.print_help()
        return 0

    command, command_argv = rest[0], rest[1:]
    output = OutputOptions(json_mode=args.json or "--json" in command_argv, quiet=args.quiet)
    ctx = CommandContext(output=OutputOptions(json_mode=args.json, quiet=args.quiet), root=args.root)
    error_ctx = CommandContext(output=output, root=args.root)

    if command not in COMMANDS:
        return report_error(error_ctx, command, f"Unknown command '{command}'. Run `tilth --help`.")

    try:
        settings = Settings.load(args.settings)
    except (FileNotFoundError, tomli.TOMLDecodeError) as exc:
        return report_error(error_ctx, command, f"Cannot load settings: {exc}".strip())
    if args.verbose:
        settings.logging.level = "DEBUG"
    settings.logging.quiet = args.quiet
    setup_logging(settings.logging)
    ctx.settings = settings

    handler, _ = COMMANDS[command]
    try:
        return handler(command_argv, ctx)
    except ExpertiseError as exc:
        logger.debug("%s failed", command, exc_info=True)
        return report_error(error_ctx, command, exc)
    except KeyboardInterrupt:
        error_ctx.err_console.print("[yellow]Interrupted.[/yellow]")
        return 130


if __name__ == "__main__":
    sys.exit(main())
