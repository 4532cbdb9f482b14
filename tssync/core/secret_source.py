"""Read a single field of an existing secret without managing it."""

from __future__ import annotations

import logging
from typing import Optional

from ..errors import ConfigurationError
from ..server.protocol import RemoteClient
from .field_reconciler import field_value
from .log_manager import log_event

logger = logging.getLogger(__name__)


class SecretSource:
    def __init__(self, client: RemoteClient) -> None:
        self._client = client

    def read(self, field: str, *, secret_id: Optional[int] = None, path: Optional[str] = None) -> str:
        """Return the value of *field* on the secret found by id, or else by path.

        When both are given the id wins.
        """

        if secret_id:
            logger.debug("getting secret with id %d", secret_id)
            secret = self._client.get_secret(secret_id)
        elif path:
            logger.debug("getting secret at path %s", path)
            secret = self._client.get_secret_by_path(path)
        else:
            raise ConfigurationError("either a secret id or a secret path must be given")

        value = field_value(secret, field)
        if value is None:
            log_event("secret.lookup", ok=False, secret_id=secret.id, field=field)
            raise ConfigurationError(f"the secret does not contain a '{field}' field")
        log_event("secret.lookup", secret_id=secret.id, field=field)
        return value


__all__ = ["SecretSource"]
