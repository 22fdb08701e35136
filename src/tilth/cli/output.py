"""Presentation options and shared helpers for tilth commands.

Commands never read global state to decide how to print: the ``--json`` and
``--quiet`` flags travel in an :class:`OutputOptions` value.
"""
from __future__ import annotations

import argparse
import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape

from tilth.config.settings import Settings
from tilth.expertise.errors import ExpertiseError, StoreNotInitializedError
from tilth.expertise.service import ExpertiseService


@dataclass(frozen=True)
class OutputOptions:
    json_mode: bool = False
    quiet: bool = False

    def merged(self, args: argparse.Namespace) -> OutputOptions:
        """Combine with ``--json`` / ``--quiet`` given after the subcommand."""
        return replace(
            self,
            json_mode=self.json_mode or bool(getattr(args, "json", False)),
            quiet=self.quiet or bool(getattr(args, "quiet", False)),
        )


@dataclass
class CommandContext:
    output: OutputOptions = field(default_factory=OutputOptions)
    root: Path | None = None
    settings: Settings | None = None
    console: Console = field(default_factory=Console)
    err_console: Console = field(default_factory=lambda: Console(stderr=True))

    def service(self) -> ExpertiseService:
        return ExpertiseService(self.root, self.settings)

    def with_args(self, args: argparse.Namespace) -> CommandContext:
        return replace(self, output=self.output.merged(args))


def command_parser(command: str, description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=f"tilth {command}", description=description)
    parser.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    parser.add_argument("--quiet", "-q", action="store_true", help="Suppress success messages")
    return parser


def split_list(value: str | None) -> list[str] | None:
    """Comma-separated CLI value to a list; ``None`` when the flag was not given."""
    if value is None:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


def emit_json(payload: dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2, default=str, ensure_ascii=False))


def report_success(ctx: CommandContext, command: str, message: str, **payload: Any) -> None:
    if ctx.output.json_mode:
        emit_json({"success": True, "command": command, **payload})
    elif not ctx.output.quiet:
        ctx.console.print(message)


def report_error(ctx: CommandContext, command: str, error: ExpertiseError | str) -> int:
    """Print *error* and return the failing exit code."""
    message = str(error)
    if isinstance(error, StoreNotInitializedError) and "tilth init" not in message:
        message += " Run `tilth init` first."
    if ctx.output.json_mode:
        emit_json({"success": False, "command": command, "error": message})
    else:
        ctx.err_console.print(f"[red]Error: {escape(message)}[/red]")
    return 1
