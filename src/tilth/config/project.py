"""Per-project configuration stored in ``.tilth/tilth.config.toml``."""
from __future__ import annotations

import os
import re
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

import tomli

from tilth.config.constants import (
    DEFAULT_CONFIG_VERSION,
    DEFAULT_GOVERNANCE_HARD_LIMIT,
    DEFAULT_GOVERNANCE_MAX_ENTRIES,
    DEFAULT_GOVERNANCE_WARN_ENTRIES,
    DEFAULT_SHELF_LIFE_OBSERVATIONAL,
    DEFAULT_SHELF_LIFE_TACTICAL,
    DOMAIN_NAME_PATTERN,
    ERROR_NOT_INITIALIZED,
    EXPERTISE_FILE_SUFFIX,
    EXPERTISE_SUBDIR,
    PROJECT_CONFIG_FILE,
    PROJECT_DIR_NAME,
)
from tilth.expertise.errors import (
    ProjectConfigError,
    RecordValidationError,
    StoreNotInitializedError,
)

_DOMAIN_RE = re.compile(DOMAIN_NAME_PATTERN)


def get_project_dir(root: Path | str | None = None) -> Path:
    return Path(root if root is not None else Path.cwd()) / PROJECT_DIR_NAME


def get_config_path(root: Path | str | None = None) -> Path:
    return get_project_dir(root) / PROJECT_CONFIG_FILE


def get_expertise_dir(root: Path | str | None = None) -> Path:
    return get_project_dir(root) / EXPERTISE_SUBDIR


def validate_domain_name(name: str) -> str:
    """Return *name* unchanged if it is a safe single path segment."""
    if not isinstance(name, str) or not _DOMAIN_RE.match(name):
        raise RecordValidationError(
            f'Invalid domain name "{name}": use letters, digits, "-" and "_" only.'
        )
    return name


def get_expertise_path(domain: str, root: Path | str | None = None) -> Path:
    return get_expertise_dir(root) / f"{validate_domain_name(domain)}{EXPERTISE_FILE_SUFFIX}"


@dataclass
class GovernanceConfig:
    max_entries: int = DEFAULT_GOVERNANCE_MAX_ENTRIES
    warn_entries: int = DEFAULT_GOVERNANCE_WARN_ENTRIES
    hard_limit: int = DEFAULT_GOVERNANCE_HARD_LIMIT

    @classmethod
    def from_dict(cls, data: dict) -> "GovernanceConfig":
        return cls(
            max_entries=int(data.get("max_entries", DEFAULT_GOVERNANCE_MAX_ENTRIES)),
            warn_entries=int(data.get("warn_entries", DEFAULT_GOVERNANCE_WARN_ENTRIES)),
            hard_limit=int(data.get("hard_limit", DEFAULT_GOVERNANCE_HARD_LIMIT)),
        )


@dataclass
class ShelfLifeConfig:
    """Days before a record of each expiring classification goes stale."""

    tactical: int = DEFAULT_SHELF_LIFE_TACTICAL
    observational: int = DEFAULT_SHELF_LIFE_OBSERVATIONAL

    @classmethod
    def from_dict(cls, data: dict) -> "ShelfLifeConfig":
        return cls(
            tactical=int(data.get("tactical", DEFAULT_SHELF_LIFE_TACTICAL)),
            observational=int(data.get("observational", DEFAULT_SHELF_LIFE_OBSERVATIONAL)),
        )


@dataclass
class ProjectConfig:
    version: str = DEFAULT_CONFIG_VERSION
    domains: list[str] = field(default_factory=list)
    governance: GovernanceConfig = field(default_factory=GovernanceConfig)
    shelf_life: ShelfLifeConfig = field(default_factory=ShelfLifeConfig)

    @classmethod
    def from_dict(cls, data: dict) -> "ProjectConfig":
        domains = data.get("domains", [])
        if not isinstance(domains, list) or not all(isinstance(d, str) for d in domains):
            raise ProjectConfigError("`domains` must be a list of strings.")
        defaults = data.get("classification_defaults", {})
        return cls(
            version=str(data.get("version", DEFAULT_CONFIG_VERSION)),
            domains=list(domains),
            governance=GovernanceConfig.from_dict(data.get("governance", {})),
            shelf_life=ShelfLifeConfig.from_dict(defaults.get("shelf_life", {})),
        )

    @classmethod
    def load(cls, root: Path | str | None = None) -> "ProjectConfig":
        """
        Read the project config.

        Raises:
            StoreNotInitializedError: If ``.tilth/`` or its config file is missing
            ProjectConfigError: If the file is not valid TOML
        """
        path = get_config_path(root)
        try:
            with open(path, "rb") as f:
                data = tomli.load(f)
        except FileNotFoundError as exc:
            raise StoreNotInitializedError(ERROR_NOT_INITIALIZED) from exc
        except tomli.TOMLDecodeError as exc:
            raise ProjectConfigError(f"Invalid {path.name}: {exc}") from exc
        return cls.from_dict(data)

    def has_domain(self, domain: str) -> bool:
        return domain in self.domains

    def to_toml(self) -> str:
        domains = ", ".join(_toml_quote(d) for d in self.domains)
        lines = [
            f"version = {_toml_quote(self.version)}",
            f"domains = [{domains}]",
            "",
            "[governance]",
            f"max_entries = {self.governance.max_entries}",
            f"warn_entries = {self.governance.warn_entries}",
            f"hard_limit = {self.governance.hard_limit}",
            "",
            "[classification_defaults.shelf_life]",
            f"tactical = {self.shelf_life.tactical}",
            f"observational = {self.shelf_life.observational}",
        ]
        return "\n".join(lines) + "\n"

    def save(self, root: Path | str | None = None) -> Path:
        """Atomically write the config, refusing to write anything tomli cannot read back."""
        path = get_config_path(root)
        content = self.to_toml()
        try:
            tomli.loads(content)
        except tomli.TOMLDecodeError as exc:
            raise ProjectConfigError(f"Refusing to write invalid {path.name}: {exc}") from exc

        if not path.parent.is_dir():
            raise StoreNotInitializedError(ERROR_NOT_INITIALIZED)

        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return path


def _toml_quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'
