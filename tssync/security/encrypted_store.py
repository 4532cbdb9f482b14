"""Encrypted persistence helpers backed by AES-GCM."""

from __future__ import annotations

import base64
import json
import os
import secrets
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TypeVar

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..utils.paths import state_file

T = TypeVar("T")


class EncryptedStoreError(RuntimeError):
    """Raised when encrypted persistence fails."""


@dataclass
class EncryptedJSONStore:
    """Persist JSON serialisable payloads encrypted at rest.

    The store derives an AES-256 key from a passphrase using PBKDF2-HMAC-SHA256
    and seals payloads using AES-GCM. Stored secret state holds field values in
    clear text once decrypted, so it never touches disk unsealed.
    """

    path: Optional[Path] = None
    passphrase_resolver: Callable[[], str] = lambda: ""  # type: ignore[assignment]
    iterations: int = 200_000
    kdf_salt_bytes: int = 16
    nonce_bytes: int = 12
    associated_data: Optional[bytes] = None
    _resolved_path: Path = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._resolved_path = self.path or state_file()
        self._resolved_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def resolved_path(self) -> Path:
        return self._resolved_path

    # -- public API -----------------------------------------------------
    def load(self, default: Optional[T] = None) -> T:
        """Decrypt and return the stored payload, or *default* when nothing is stored."""

        if not self._resolved_path.exists():
            return default if default is not None else {}  # type: ignore[return-value]
        try:
            payload = json.loads(self._resolved_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise EncryptedStoreError("encrypted payload is not valid JSON") from exc
        salt = _b64decode_field(payload, "salt")
        nonce = _b64decode_field(payload, "nonce")
        ciphertext = _b64decode_field(payload, "ciphertext")
        iterations = int(payload.get("iterations", self.iterations))
        key = self._derive_key(self._get_passphrase(), salt, iterations)
        try:
            plaintext = AESGCM(key).decrypt(nonce, ciphertext, self.associated_data)
        except InvalidTag as exc:
            raise EncryptedStoreError("decryption failed (invalid tag)") from exc
        try:
            return json.loads(plaintext.decode("utf-8"))
        except json.JSONDecodeError as exc:
            raise EncryptedStoreError("decrypted payload is not valid JSON") from exc

    def save(self, payload: Dict[str, Any]) -> None:
        """Encrypt *payload* and persist it to disk."""

        encoded = json.dumps(payload, sort_keys=True).encode("utf-8")
        salt = os.urandom(self.kdf_salt_bytes)
        nonce = secrets.token_bytes(self.nonce_bytes)
        key = self._derive_key(self._get_passphrase(), salt, self.iterations)
        ciphertext = AESGCM(key).encrypt(nonce, encoded, self.associated_data)
        envelope = {
            "version": 1,
            "kdf": "pbkdf2-hmac-sha256",
            "iterations": self.iterations,
            "salt": base64.b64encode(salt).decode("ascii"),
            "nonce": base64.b64encode(nonce).decode("ascii"),
            "ciphertext": base64.b64encode(ciphertext).decode("ascii"),
        }
        self._resolved_path.write_text(json.dumps(envelope, indent=2), encoding="utf-8")
        os.chmod(self._resolved_path, 0o600)

    def rotate_passphrase(self, new_passphrase: str) -> None:
        """Re-encrypt the payload with *new_passphrase* while preserving data."""

        if not new_passphrase:
            raise EncryptedStoreError("new passphrase must not be empty")
        data = self.load({})
        original_resolver = self.passphrase_resolver
        try:
            self.passphrase_resolver = lambda: new_passphrase
            self.save(data)
        finally:
            self.passphrase_resolver = original_resolver

    # -- helpers --------------------------------------------------------
    @staticmethod
    def _derive_key(passphrase: str, salt: bytes, iterations: int) -> bytes:
        if not passphrase:
            raise EncryptedStoreError("state passphrase is not configured")
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=iterations,
        )
        return kdf.derive(passphrase.encode("utf-8"))

    def _get_passphrase(self) -> str:
        try:
            return self.passphrase_resolver()
        except EncryptedStoreError:
            raise
        except Exception as exc:
            raise EncryptedStoreError("failed to resolve passphrase") from exc


def _b64decode_field(payload: Dict[str, Any], name: str) -> bytes:
    if name not in payload:
        raise EncryptedStoreError(f"missing field {name!r} in encrypted payload")
    try:
        return base64.b64decode(payload[name])
    except (TypeError, ValueError) as exc:
        raise EncryptedStoreError(f"failed to decode field {name!r}") from exc
