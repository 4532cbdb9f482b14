"""Error hierarchy shared by the reconciler, the managers and the CLI."""

from __future__ import annotations

from typing import Optional


class ReconcileError(RuntimeError):
    """Base class for every failure surfaced by tssync."""


class ConfigurationError(ReconcileError):
    """The declared configuration cannot be reconciled as written."""


class TemplateNotFound(ConfigurationError):
    def __init__(self, template_id: int) -> None:
        super().__init__(f"secret template {template_id} does not exist")
        self.template_id = template_id


class UnknownFieldSlug(ConfigurationError):
    def __init__(self, slug: str, secret_name: str = "", *, template_name: str = "") -> None:
        if template_name:
            message = f"the secret template '{template_name}' has no field named '{slug}'"
        else:
            message = f"an item on the secret named '{secret_name}' has an unrecognized field name '{slug}'"
        super().__init__(message)
        self.slug = slug
        self.secret_name = secret_name
        self.template_name = template_name


class MissingFieldSlug(ConfigurationError):
    def __init__(self, secret_name: str = "") -> None:
        super().__init__(f"an item on the secret named '{secret_name}' is missing a field name")
        self.secret_name = secret_name


class MissingFieldValue(ConfigurationError):
    def __init__(self, slug: str, secret_name: str = "") -> None:
        super().__init__(
            f"the '{slug}' item on the secret named '{secret_name}' is missing a value. To remove an "
            "optional field from a secret, remove the item from the secret's item list in the configuration"
        )
        self.slug = slug
        self.secret_name = secret_name


class DuplicateFieldSlug(ConfigurationError):
    def __init__(self, slug: str, secret_name: str = "") -> None:
        super().__init__(f"the field '{slug}' is declared more than once on the secret named '{secret_name}'")
        self.slug = slug
        self.secret_name = secret_name


class EncodingError(ReconcileError):
    """A value flagged as base64 could not be decoded."""


class InvalidEncoding(EncodingError):
    def __init__(self, slug: str, reason: str) -> None:
        super().__init__(f"the value of the file item '{slug}' is not valid base64: {reason}")
        self.slug = slug


class RemoteError(ReconcileError):
    """The Secret Server API call failed."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StateConsistencyError(ReconcileError):
    """Stored state names a field the server no longer returns."""

    def __init__(self, slug: str, secret_name: str = "") -> None:
        super().__init__(
            f"the secret named '{secret_name}' has no field '{slug}' on the server although the "
            "configuration declares it"
        )
        self.slug = slug
        self.secret_name = secret_name


__all__ = [
    "ConfigurationError",
    "DuplicateFieldSlug",
    "EncodingError",
    "InvalidEncoding",
    "MissingFieldSlug",
    "MissingFieldValue",
    "ReconcileError",
    "RemoteError",
    "StateConsistencyError",
    "TemplateNotFound",
    "UnknownFieldSlug",
]
