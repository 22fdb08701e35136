"""Process-level plumbing shared by the library and the CLI."""
from tilth.core.logging_config import LogConfig, get_logger, setup_logging

__all__ = [
    "LogConfig",
    "get_logger",
    "setup_logging",
]
