"""
Constants and default values for tilth.

Centralizes magic numbers and strings to improve maintainability.
"""

from pathlib import Path

# ============================================================================
# Application Metadata
# ============================================================================

APP_NAME = "tilth"
CONFIG_DIR_NAME = ".tilth"

# ============================================================================
# Path Defaults
# ============================================================================

# Per-user settings directory
DEFAULT_DATA_DIR = Path.home() / CONFIG_DIR_NAME
DEFAULT_CONFIG_SUBDIR = "config"
DEFAULT_LOGS_SUBDIR = "logs"

# Config file names
SETTINGS_FILE = "settings.toml"
ENV_FILE = ".env"

# Per-project store layout: <root>/.tilth/{tilth.config.toml,expertise/<domain>.jsonl}
PROJECT_DIR_NAME = ".tilth"
PROJECT_CONFIG_FILE = "tilth.config.toml"
EXPERTISE_SUBDIR = "expertise"
EXPERTISE_FILE_SUFFIX = ".jsonl"

# ============================================================================
# Project Config Defaults
# ============================================================================

DEFAULT_CONFIG_VERSION = "1"

# Governance: entries per domain before status starts warning
DEFAULT_GOVERNANCE_MAX_ENTRIES = 100
DEFAULT_GOVERNANCE_WARN_ENTRIES = 150
DEFAULT_GOVERNANCE_HARD_LIMIT = 200

# Shelf life in days before tactical/observational records go stale
DEFAULT_SHELF_LIFE_TACTICAL = 14
DEFAULT_SHELF_LIFE_OBSERVATIONAL = 30

# Domain names become file names
DOMAIN_NAME_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9_-]*$"

# ============================================================================
# Locking Defaults
# ============================================================================

# A lock marker older than this is assumed to belong to a crashed process
LOCK_STALE_SECONDS = 30.0
LOCK_TIMEOUT_SECONDS = 5.0
LOCK_POLL_INTERVAL_SECONDS = 0.05
LOCK_SUFFIX = ".lock"

# ============================================================================
# Search & Scoring Defaults
# ============================================================================

DEFAULT_BM25_K1 = 1.5
DEFAULT_BM25_B = 0.75
DEFAULT_CONFIRMATION_BOOST_FACTOR = 0.1

# ============================================================================
# Logging Defaults
# ============================================================================

DEFAULT_LOG_LEVEL = "WARNING"
DEFAULT_LOG_FILE = str(DEFAULT_DATA_DIR / DEFAULT_LOGS_SUBDIR / "tilth.log")

# ============================================================================
# Environment Variable Names
# ============================================================================

ENV_DATA_DIR = "TILTH_DATA_DIR"
ENV_LOG_LEVEL = "TILTH_LOG_LEVEL"
ENV_LOG_FILE_ENABLED = "TILTH_LOG_FILE_ENABLED"
ENV_LOCK_TIMEOUT = "TILTH_LOCK_TIMEOUT_SECONDS"
ENV_LOCK_STALE = "TILTH_LOCK_STALE_SECONDS"
ENV_LOCK_POLL = "TILTH_LOCK_POLL_SECONDS"

# ============================================================================
# Error Messages
# ============================================================================

ERROR_NOT_INITIALIZED = "No .tilth/ directory found. Run `tilth init` first."

ERROR_NO_SETTINGS = """
Settings file not found: {path}

Create it, or drop the explicit path to fall back to defaults:
    mkdir -p {config_dir}
    touch {config_dir}/{settings_file}
"""
