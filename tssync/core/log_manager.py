"""Structured lifecycle events routed into the signed audit trail."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from ..utils import logbook


def log_event(action: str, *, ok: bool = True, **payload: Any) -> Dict[str, Any]:
    """Append a signed JSON event describing *action* and return it."""

    entry: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "action": action,
        "ok": bool(ok),
        **payload,
    }
    logbook.info(entry)
    return entry


__all__ = ["log_event"]
