"""Secret Server API access."""

from .client import SecretServerClient
from .config import ServerConfiguration
from .protocol import RemoteClient

__all__ = ["RemoteClient", "SecretServerClient", "ServerConfiguration"]
