"""Interface every Secret Server client implementation satisfies."""

from __future__ import annotations

from typing import Protocol

from ..core.models import Secret, Template


class RemoteClient(Protocol):
    """Protocol implemented by the HTTP client and by in-memory test doubles."""

    def get_template(self, template_id: int) -> Template:
        ...

    def get_secret(self, secret_id: int) -> Secret:
        ...

    def get_secret_by_path(self, path: str) -> Secret:
        ...

    def create_secret(self, secret: Secret) -> Secret:
        ...

    def update_secret(self, secret: Secret) -> Secret:
        ...

    def delete_secret(self, secret_id: int) -> None:
        ...

    def generate_password(self, field_id: int) -> str:
        ...


__all__ = ["RemoteClient"]
