"""Typed errors raised by the expertise store.

The store never prints or exits; callers decide how each error is shown.
"""
from __future__ import annotations

from pathlib import Path


class ExpertiseError(Exception):
    """Base class for every error raised by tilth."""


class NotFoundError(ExpertiseError):
    """An addressed domain or record does not exist."""


class DomainNotFoundError(NotFoundError):
    def __init__(self, domain: str, available: list[str]) -> None:
        self.domain = domain
        self.available = list(available)
        listing = ", ".join(self.available) or "(none)"
        super().__init__(f'Domain "{domain}" not found in config. Available domains: {listing}')


class RecordNotFoundError(NotFoundError):
    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f'Record "{identifier}" not found.')


class AmbiguousIdError(ExpertiseError):
    """An id prefix matched more than one record."""

    def __init__(self, identifier: str, candidates: list[str]) -> None:
        self.identifier = identifier
        self.candidates = list(candidates)
        super().__init__(
            f'Ambiguous identifier "{identifier}" matches {len(self.candidates)} records: '
            f"{', '.join(self.candidates)}. Use more characters to disambiguate."
        )


class LockTimeoutError(ExpertiseError):
    def __init__(self, path: Path | str, timeout: float) -> None:
        self.path = str(path)
        self.timeout = timeout
        super().__init__(f"Timed out after {timeout:g}s waiting for lock on {self.path}")


class MalformedRecordError(ExpertiseError):
    """A line of a domain file is not valid JSON or does not match the record schema."""

    def __init__(self, domain: str, line: int, message: str) -> None:
        self.domain = domain
        self.line = line
        self.reason = message
        super().__init__(f"{domain}:{line} - {message}")


class StoreIOError(ExpertiseError):
    """Permission or other filesystem failure on an existing path."""

    def __init__(self, path: Path | str, cause: OSError) -> None:
        self.path = str(path)
        self.cause = cause
        super().__init__(f"I/O error on {self.path}: {cause.strerror or cause}")


class StoreNotInitializedError(ExpertiseError):
    """The project has no .tilth/ store yet; recoverable by running init."""


class ProjectConfigError(ExpertiseError):
    """The project config file exists but cannot be used."""


class RecordValidationError(ExpertiseError, ValueError):
    """Caller-supplied record data is incomplete or inconsistent."""
