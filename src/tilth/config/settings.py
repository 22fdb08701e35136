"""
User settings with environment variable and .env support.

Settings precedence (highest to lowest):
1. Environment variables (TILTH_*)
2. User settings file (~/.tilth/config/settings.toml)
3. Hardcoded constants (constants.py)

Per-project configuration (domains, governance, shelf life) lives in
``tilth.config.project`` instead.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import overload

import tomli
from dotenv import load_dotenv

from ..core.logging_config import LogConfig
from .constants import (
    DEFAULT_CONFIG_SUBDIR,
    DEFAULT_DATA_DIR,
    DEFAULT_LOG_FILE,
    DEFAULT_LOG_LEVEL,
    ENV_DATA_DIR,
    ENV_FILE,
    ENV_LOCK_POLL,
    ENV_LOCK_STALE,
    ENV_LOCK_TIMEOUT,
    ENV_LOG_FILE_ENABLED,
    ENV_LOG_LEVEL,
    ERROR_NO_SETTINGS,
    LOCK_POLL_INTERVAL_SECONDS,
    LOCK_STALE_SECONDS,
    LOCK_TIMEOUT_SECONDS,
    SETTINGS_FILE,
)


# Search order: ./.env, ~/.tilth/.env, ~/.tilth/config/.env
def _load_env_files():
    """Load .env files from standard locations."""
    env_locations = [
        Path.cwd() / ENV_FILE,
        DEFAULT_DATA_DIR / ENV_FILE,
        DEFAULT_DATA_DIR / DEFAULT_CONFIG_SUBDIR / ENV_FILE,
    ]

    for env_path in env_locations:
        if env_path.exists():
            load_dotenv(env_path, override=False)  # Don't override already-set vars


_load_env_files()


@overload
def _get_env_str(key: str, default: str) -> str: ...


@overload
def _get_env_str(key: str, default: None = None) -> str | None: ...


def _get_env_str(key: str, default: str | None = None) -> str | None:
    """Get string value from environment variable. Empty strings are treated as missing."""
    value = os.getenv(key)
    if value is None or value == "":
        return default
    return value


def _get_env_bool(key: str, default: bool) -> bool:
    """Get boolean value from environment variable."""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _get_env_float(key: str, default: float) -> float:
    """Get float value from environment variable."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass
class LockConfig:
    timeout_seconds: float
    stale_seconds: float
    poll_interval_seconds: float

    @classmethod
    def from_dict(cls, data: dict) -> "LockConfig":
        """Create LockConfig from dict with environment variable overrides."""
        return cls(
            timeout_seconds=_get_env_float(
                ENV_LOCK_TIMEOUT,
                float(data.get("timeout_seconds", LOCK_TIMEOUT_SECONDS)),
            ),
            stale_seconds=_get_env_float(
                ENV_LOCK_STALE,
                float(data.get("stale_seconds", LOCK_STALE_SECONDS)),
            ),
            poll_interval_seconds=_get_env_float(
                ENV_LOCK_POLL,
                float(data.get("poll_interval_seconds", LOCK_POLL_INTERVAL_SECONDS)),
            ),
        )


def _log_config_from_dict(data: dict) -> LogConfig:
    fields = dict(data)
    fields["level"] = _get_env_str(ENV_LOG_LEVEL, str(data.get("level", DEFAULT_LOG_LEVEL)))
    fields["file_enabled"] = _get_env_bool(ENV_LOG_FILE_ENABLED, bool(data.get("file_enabled", False)))
    fields.setdefault("file_path", DEFAULT_LOG_FILE)
    return LogConfig(**fields)


@dataclass
class Settings:
    lock: LockConfig
    logging: LogConfig

    @classmethod
    def load(cls, settings_path: Path | None = None) -> "Settings":
        """
        Load user settings with proper precedence.

        Args:
            settings_path: Optional explicit settings file path

        Returns:
            Loaded Settings object

        Raises:
            FileNotFoundError: If an explicit settings path does not exist
        """
        if settings_path is not None:
            candidate = settings_path
        else:
            base_data_dir = Path(os.getenv(ENV_DATA_DIR, str(DEFAULT_DATA_DIR))).expanduser()
            candidate = base_data_dir / DEFAULT_CONFIG_SUBDIR / SETTINGS_FILE

        data: dict = {}
        if candidate.exists():
            with open(candidate, "rb") as f:
                data = tomli.load(f)
        elif settings_path is not None:
            raise FileNotFoundError(
                ERROR_NO_SETTINGS.format(
                    path=settings_path,
                    config_dir=DEFAULT_DATA_DIR / DEFAULT_CONFIG_SUBDIR,
                    settings_file=SETTINGS_FILE,
                )
            )

        return cls(
            lock=LockConfig.from_dict(data.get("lock", {})),
            logging=_log_config_from_dict(data.get("logging", {})),
        )
