"""Local state of managed resources, sealed with :class:`EncryptedJSONStore`."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import keyring
from keyring.errors import KeyringError

from ..security import EncryptedJSONStore, EncryptedStoreError
from .models import GeneratedPasswordState, SecretState

logger = logging.getLogger(__name__)

KEYRING_SERVICE = "tssync"
PASSPHRASE_KEY = "state-passphrase"
PASSPHRASE_ENV = "TSSYNC_STATE_PASSPHRASE"
STATE_VERSION = 1


def resolve_passphrase() -> str:
    """Return the state passphrase from the keyring, else from the environment."""

    secret: Optional[str] = None
    try:
        secret = keyring.get_password(KEYRING_SERVICE, PASSPHRASE_KEY)
    except KeyringError as exc:
        logger.warning("keyring lookup for the state passphrase failed: %s", exc)
    if not secret:
        secret = os.getenv(PASSPHRASE_ENV)
    if not secret:
        raise EncryptedStoreError(
            f"no state passphrase in the keyring ({KEYRING_SERVICE}/{PASSPHRASE_KEY}) or {PASSPHRASE_ENV}"
        )
    return secret


class StateStore:
    """Read and write the per-resource state document."""

    def __init__(self, *, path: Optional[Path] = None, store: Optional[EncryptedJSONStore] = None) -> None:
        self._store = store or EncryptedJSONStore(path=path, passphrase_resolver=resolve_passphrase)
        self._document: Optional[Dict[str, Any]] = None

    def _load(self) -> Dict[str, Any]:
        if self._document is None:
            document = self._store.load({})
            if document and document.get("version") != STATE_VERSION:
                raise EncryptedStoreError(f"unsupported state version {document.get('version')!r}")
            document.setdefault("version", STATE_VERSION)
            document.setdefault("secrets", {})
            document.setdefault("generated_passwords", {})
            self._document = document
        return self._document

    def save(self) -> None:
        self._store.save(self._load())

    # -- secrets -----------------------------------------------------------
    def secret_names(self) -> List[str]:
        return sorted(self._load()["secrets"])

    def get_secret(self, name: str) -> Optional[SecretState]:
        payload = self._load()["secrets"].get(name)
        return SecretState.from_dict(payload) if payload is not None else None

    def put_secret(self, name: str, state: SecretState) -> None:
        self._load()["secrets"][name] = state.to_dict()

    def remove_secret(self, name: str) -> None:
        self._load()["secrets"].pop(name, None)

    # -- generated passwords -----------------------------------------------
    def password_names(self) -> List[str]:
        return sorted(self._load()["generated_passwords"])

    def get_password(self, name: str) -> Optional[GeneratedPasswordState]:
        payload = self._load()["generated_passwords"].get(name)
        return GeneratedPasswordState.from_dict(payload) if payload is not None else None

    def put_password(self, name: str, state: GeneratedPasswordState) -> None:
        self._load()["generated_passwords"][name] = state.to_dict()

    def remove_password(self, name: str) -> None:
        self._load()["generated_passwords"].pop(name, None)


__all__ = ["StateStore", "resolve_passphrase"]
