"""Utility helpers exposed by tssync."""

from .logbook import audit_log, get_logger, info, log_file
from .paths import state_dir, state_file

__all__ = [
    "audit_log",
    "get_logger",
    "info",
    "log_file",
    "state_dir",
    "state_file",
]
