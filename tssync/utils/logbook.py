"""Rotating operational logger plus a tamper-evident audit trail.

Every audit record is appended to ``audit.jsonl`` as a JSON line chained to
its predecessor by SHA-256 and signed with the local Ed25519 audit key.
Secret values must never be handed to :func:`info`.
"""

from __future__ import annotations

import base64
import hashlib
import json
import logging
import os
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from .paths import state_dir

LOGGER_NAME = "tssync"


def log_file() -> Path:
    return state_dir() / "logs" / "tssync.log"


def audit_log() -> Path:
    return state_dir() / "audit.jsonl"


def audit_key() -> Path:
    return state_dir() / "audit_ed25519.pem"


def get_logger() -> logging.Logger:
    """Return the package logger, attaching the rotating file handler once."""

    logger = logging.getLogger(LOGGER_NAME)
    if logger.handlers:
        return logger

    path = log_file()
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(path, maxBytes=1_000_000, backupCount=5, encoding="utf-8")
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    logger.setLevel(logging.INFO)
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger


def _load_or_create_key() -> ed25519.Ed25519PrivateKey:
    path = audit_key()
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists():
        return serialization.load_pem_private_key(path.read_bytes(), password=None)
    key = ed25519.Ed25519PrivateKey.generate()
    pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    path.write_bytes(pem)
    os.chmod(path, 0o600)
    return key


def _last_hash() -> Optional[str]:
    path = audit_log()
    if not path.exists():
        return None
    lines = path.read_text(encoding="utf-8").strip().splitlines()
    if not lines:
        return None
    try:
        payload = json.loads(lines[-1])
    except json.JSONDecodeError:
        return None
    return payload.get("hash")


def _write_audit_record(record: Dict[str, object]) -> None:
    key = _load_or_create_key()
    entry = {
        "ts": time.time(),
        "prev": _last_hash(),
        "record": record,
    }
    canonical = json.dumps(entry, sort_keys=True, separators=(",", ":")).encode("utf-8")
    digest = hashlib.sha256(canonical).digest()
    entry["hash"] = hashlib.sha256(canonical).hexdigest()
    entry["signature"] = base64.b64encode(key.sign(digest)).decode("ascii")
    entry["public_key"] = base64.b64encode(
        key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
    ).decode("ascii")
    with audit_log().open("a", encoding="utf-8") as fh:
        fh.write(json.dumps(entry, sort_keys=True) + "\n")


def info(record: Dict[str, object]) -> None:
    """Write *record* to the rotating log and the signed audit trail."""

    level = logging.INFO if record.get("ok", True) else logging.ERROR
    get_logger().log(level, json.dumps(record, sort_keys=True))
    _write_audit_record(record)


__all__ = ["LOGGER_NAME", "audit_log", "get_logger", "info", "log_file"]
