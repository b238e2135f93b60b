"""Utility functions for LaunchOS."""

from launchos.utils.logging import configure_logging, get_diagnostic_log, get_logger

__all__ = [
    "configure_logging",
    "get_diagnostic_log",
    "get_logger",
]
