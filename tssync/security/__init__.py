"""Security primitives used by tssync."""

from .encrypted_store import EncryptedJSONStore, EncryptedStoreError

__all__ = ["EncryptedJSONStore", "EncryptedStoreError"]
