"""Filesystem path helpers for tssync state."""

from __future__ import annotations

import os
from pathlib import Path


def state_dir() -> Path:
    """Return the directory used for persistent tssync state.

    The location defaults to ``~/.tssync`` but can be overridden via the
    ``TSSYNC_STATE_DIR`` environment variable. The path is expanded and
    resolved so callers always receive an absolute location.
    """

    override = os.environ.get("TSSYNC_STATE_DIR")
    if override:
        return Path(override).expanduser().resolve()
    return Path.home() / ".tssync"


def state_file() -> Path:
    return state_dir() / "state.enc"
