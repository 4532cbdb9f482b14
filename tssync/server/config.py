"""Connection settings for the Secret Server API."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import keyring
from dotenv import load_dotenv
from keyring.errors import KeyringError

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

KEYRING_SERVICE = "tssync"
SERVER_URL_ENV = "TSS_SERVER_URL"
TENANT_ENV = "TSS_TENANT"
TLD_ENV = "TSS_TLD"
USERNAME_ENV = "TSS_USERNAME"
PASSWORD_ENV = "TSS_PASSWORD"
DEFAULT_TLD = "com"
CLOUD_URL_TEMPLATE = "https://{tenant}.secretservercloud.{tld}"


def _keyring_secret(username: str) -> Optional[str]:
    try:
        return keyring.get_password(KEYRING_SERVICE, username)
    except KeyringError as exc:
        logger.warning("keyring lookup for %s failed: %s", username, exc)
        return None


@dataclass(frozen=True)
class ServerConfiguration:
    """Where the server lives and how to authenticate against it."""

    username: str
    password: str
    server_url: str = ""
    tenant: str = ""
    tld: str = DEFAULT_TLD

    @property
    def base_url(self) -> str:
        if self.server_url:
            return self.server_url.rstrip("/")
        if self.tenant:
            return CLOUD_URL_TEMPLATE.format(tenant=self.tenant, tld=self.tld or DEFAULT_TLD)
        raise ConfigurationError(f"either {SERVER_URL_ENV} or {TENANT_ENV} must be set")

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "ServerConfiguration":
        """Build the configuration from the environment and an optional ``.env`` file.

        The password is taken from the system keyring (service ``tssync``, keyed
        by username) before falling back to :envvar:`TSS_PASSWORD`.
        """

        load_dotenv(env_file or Path(".env"), override=False)
        username = os.getenv(USERNAME_ENV, "")
        if not username:
            raise ConfigurationError(f"{USERNAME_ENV} is not set")
        password = _keyring_secret(username) or os.getenv(PASSWORD_ENV, "")
        if not password:
            raise ConfigurationError(f"no password for {username} in the keyring or {PASSWORD_ENV}")
        server_url = os.getenv(SERVER_URL_ENV, "")
        tenant = os.getenv(TENANT_ENV, "")
        if not server_url and not tenant:
            raise ConfigurationError(f"either {SERVER_URL_ENV} or {TENANT_ENV} must be set")
        return cls(
            username=username,
            password=password,
            server_url=server_url,
            tenant=tenant,
            tld=os.getenv(TLD_ENV, DEFAULT_TLD),
        )


__all__ = ["ServerConfiguration"]
