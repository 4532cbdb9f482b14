"""Typed records exchanged between the configuration, the reconciler and the server."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type, TypeVar

from ..errors import ConfigurationError

T = TypeVar("T")

DEFAULT_FILENAME = "File.txt"


def _from_mapping(cls: Type[T], data: Mapping[str, Any]) -> T:
    known = {f.name for f in fields(cls)}  # type: ignore[arg-type]
    return cls(**{key: value for key, value in data.items() if key in known})


@dataclass(frozen=True)
class TemplateField:
    """One field definition on a secret template."""

    field_id: int
    slug: str
    display_name: str = ""
    description: str = ""
    name: str = ""
    is_file: bool = False
    is_notes: bool = False
    is_password: bool = False
    is_required: bool = False
    is_url: bool = False


@dataclass(frozen=True)
class Template:
    """Read-only schema of a class of secrets."""

    template_id: int
    name: str = ""
    fields: Tuple[TemplateField, ...] = ()

    def __post_init__(self) -> None:
        seen = set()
        for definition in self.fields:
            if definition.slug in seen:
                raise ConfigurationError(
                    f"secret template {self.template_id} declares the field '{definition.slug}' twice"
                )
            seen.add(definition.slug)

    def get_field(self, slug: str) -> Optional[TemplateField]:
        for definition in self.fields:
            if definition.slug == slug:
                return definition
        return None

    @property
    def slugs(self) -> List[str]:
        return [definition.slug for definition in self.fields]


@dataclass(frozen=True)
class SshKeyArgs:
    """One-shot key generation directive, honoured by the server on create only."""

    generate_ssh_keys: bool = False
    generate_passphrase: bool = False

    @property
    def active(self) -> bool:
        return self.generate_ssh_keys or self.generate_passphrase


@dataclass
class DesiredItem:
    """A user-authored ``item`` entry."""

    slug: str
    value: Optional[str] = None
    filename: Optional[str] = None
    file_encoded: bool = False


@dataclass
class StoredItem(DesiredItem):
    """An item as kept in local state, enriched with server-only read attributes."""

    field_id: int = 0
    field_name: str = ""
    field_description: str = ""
    file_attachment_id: int = 0
    is_file: bool = False
    is_notes: bool = False
    is_password: bool = False
    item_id: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StoredItem":
        return _from_mapping(cls, data)


@dataclass
class SecretField:
    """The unit exchanged with the server for one templated field."""

    slug: str
    field_id: int
    value: str = ""
    filename: str = ""
    field_name: str = ""
    field_description: str = ""
    file_attachment_id: int = 0
    is_file: bool = False
    is_notes: bool = False
    is_password: bool = False
    item_id: int = 0

    @property
    def has_value(self) -> bool:
        if self.is_file:
            return self.filename != ""
        return self.value != ""


@dataclass
class SecretSettings:
    """Scalar attributes copied 1:1 between configuration, server and state."""

    name: str = ""
    secret_template_id: int = 0
    site_id: int = 1
    folder_id: int = -1
    secret_policy_id: int = -1
    auto_change_enabled: bool = False
    check_out_change_password_enabled: bool = False
    check_out_enabled: bool = False
    check_out_interval_minutes: int = -1
    delay_indexing: bool = False
    enable_inherit_permissions: bool = True
    enable_inherit_secret_policy: bool = False
    proxy_enabled: bool = False
    requires_comment: bool = False
    session_recording_enabled: bool = False
    web_launcher_requires_incognito_mode: bool = False

    def settings(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(SecretSettings)}


SETTING_NAMES: Tuple[str, ...] = tuple(f.name for f in fields(SecretSettings))


@dataclass
class Secret(SecretSettings):
    """A secret as sent to or returned by the server."""

    id: int = 0
    active: bool = True
    fields: Optional[List[SecretField]] = None
    ssh_key_args: Optional[SshKeyArgs] = None

    def field(self, slug: str) -> Optional[SecretField]:
        for candidate in self.fields or []:
            if candidate.slug == slug:
                return candidate
        return None


@dataclass
class DesiredSecret(SecretSettings):
    """A ``secrets`` entry from the configuration file."""

    items: List[DesiredItem] = field(default_factory=list)
    generate_ssh_keys: bool = False
    generate_ssh_passphrase: bool = False

    @property
    def ssh_key_args(self) -> SshKeyArgs:
        return SshKeyArgs(
            generate_ssh_keys=self.generate_ssh_keys,
            generate_passphrase=self.generate_ssh_passphrase,
        )


@dataclass
class SecretState(SecretSettings):
    """What tssync remembers about a managed secret between runs."""

    id: int = 0
    active: bool = True
    items: List[StoredItem] = field(default_factory=list)
    generate_ssh_keys: bool = False
    generate_ssh_passphrase: bool = False

    @property
    def ssh_key_args(self) -> SshKeyArgs:
        return SshKeyArgs(
            generate_ssh_keys=self.generate_ssh_keys,
            generate_passphrase=self.generate_ssh_passphrase,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SecretState":
        payload = dict(data)
        payload["items"] = [StoredItem.from_dict(item) for item in payload.get("items", [])]
        return _from_mapping(cls, payload)


@dataclass
class GeneratedPassword:
    """A ``generated_passwords`` entry from the configuration file."""

    template_id: int
    field: str


@dataclass
class GeneratedPasswordState:
    id: str
    template_id: int
    field: str
    value: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GeneratedPasswordState":
        return _from_mapping(cls, data)


__all__ = [
    "DEFAULT_FILENAME",
    "DesiredItem",
    "DesiredSecret",
    "GeneratedPassword",
    "GeneratedPasswordState",
    "SETTING_NAMES",
    "Secret",
    "SecretField",
    "SecretSettings",
    "SecretState",
    "SshKeyArgs",
    "StoredItem",
    "Template",
    "TemplateField",
]
