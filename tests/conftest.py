"""Pytest configuration and fixtures for tilth tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from tilth.config.settings import LockConfig, Settings
from tilth.core.logging_config import LogConfig
from tilth.expertise.service import ExpertiseService


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Point user settings at an empty temp dir and clear TILTH_* overrides."""
    monkeypatch.setenv("TILTH_DATA_DIR", str(tmp_path / "user-data"))
    for name in (
        "TILTH_LOG_LEVEL",
        "TILTH_LOG_FILE_ENABLED",
        "TILTH_LOCK_TIMEOUT_SECONDS",
        "TILTH_LOCK_STALE_SECONDS",
        "TILTH_LOCK_POLL_SECONDS",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with a short lock timeout so contention tests finish quickly."""
    return Settings(
        lock=LockConfig(timeout_seconds=1.0, stale_seconds=30.0, poll_interval_seconds=0.01),
        logging=LogConfig(use_rich_console=False),
    )


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def service(project_root: Path, fast_settings: Settings) -> ExpertiseService:
    """An initialized store with a single ``testing`` domain."""
    svc = ExpertiseService(project_root, settings=fast_settings)
    svc.init()
    svc.add_domain("testing")
    return svc
