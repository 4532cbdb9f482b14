"""Parse the JSON configuration file into typed desired resources.

Validation happens once here; every type mismatch is reported as a
:class:`ConfigurationError` naming the offending path.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping

from ..errors import ConfigurationError
from .models import DesiredItem, DesiredSecret, GeneratedPassword, SecretSettings

_SETTING_TYPES = {f.name: f.type for f in fields(SecretSettings)}
_REQUIRED_SETTINGS = ("name", "secret_template_id")
_ITEM_KEYS = {"field", "value", "filename", "file_encoded"}
_SECRET_KEYS = set(_SETTING_TYPES) | {"item", "generate_ssh_keys", "generate_ssh_passphrase"}


@dataclass
class Configuration:
    secrets: Dict[str, DesiredSecret] = field(default_factory=dict)
    generated_passwords: Dict[str, GeneratedPassword] = field(default_factory=dict)


def _typed(value: Any, expected: str, where: str) -> Any:
    if expected == "bool":
        ok = isinstance(value, bool)
    elif expected == "int":
        ok = isinstance(value, int) and not isinstance(value, bool)
    else:
        ok = isinstance(value, str)
    if not ok:
        raise ConfigurationError(f"{where} must be of type {expected}, got {type(value).__name__}")
    return value


def _mapping(value: Any, where: str) -> Mapping[str, Any]:
    if not isinstance(value, dict):
        raise ConfigurationError(f"{where} must be an object")
    return value


def parse_item(data: Any, where: str) -> DesiredItem:
    entry = _mapping(data, where)
    unknown = set(entry) - _ITEM_KEYS
    if unknown:
        raise ConfigurationError(f"{where} has unknown attributes: {', '.join(sorted(unknown))}")
    slug = entry.get("field")
    value = entry.get("value")
    filename = entry.get("filename")
    return DesiredItem(
        slug=_typed(slug, "str", f"{where}.field") if slug is not None else "",
        value=_typed(value, "str", f"{where}.value") if value is not None else None,
        filename=_typed(filename, "str", f"{where}.filename") if filename is not None else None,
        file_encoded=_typed(entry.get("file_encoded", False), "bool", f"{where}.file_encoded"),
    )


def parse_secret(data: Any, where: str) -> DesiredSecret:
    entry = _mapping(data, where)
    unknown = set(entry) - _SECRET_KEYS
    if unknown:
        raise ConfigurationError(f"{where} has unknown attributes: {', '.join(sorted(unknown))}")
    for name in _REQUIRED_SETTINGS:
        if name not in entry:
            raise ConfigurationError(f"{where}.{name} is required")
    settings = {}
    for name, expected in _SETTING_TYPES.items():
        if name in entry:
            settings[name] = _typed(entry[name], str(expected), f"{where}.{name}")

    raw_items = entry.get("item")
    if not isinstance(raw_items, list):
        raise ConfigurationError(f"{where}.item must be a list")
    items = [parse_item(item, f"{where}.item.{index}") for index, item in enumerate(raw_items)]

    generate_keys = _typed(entry.get("generate_ssh_keys", False), "bool", f"{where}.generate_ssh_keys")
    generate_passphrase = _typed(
        entry.get("generate_ssh_passphrase", False), "bool", f"{where}.generate_ssh_passphrase"
    )
    if generate_passphrase and not generate_keys:
        raise ConfigurationError(f"{where}.generate_ssh_passphrase requires generate_ssh_keys")

    return DesiredSecret(
        **settings,
        items=items,
        generate_ssh_keys=generate_keys,
        generate_ssh_passphrase=generate_passphrase,
    )


def parse_generated_password(data: Any, where: str) -> GeneratedPassword:
    entry = _mapping(data, where)
    for name in ("template_id", "field"):
        if name not in entry:
            raise ConfigurationError(f"{where}.{name} is required")
    return GeneratedPassword(
        template_id=_typed(entry["template_id"], "int", f"{where}.template_id"),
        field=_typed(entry["field"], "str", f"{where}.field"),
    )


def parse_configuration(document: Any) -> Configuration:
    root = _mapping(document, "configuration")
    secrets = _mapping(root.get("secrets", {}), "secrets")
    passwords = _mapping(root.get("generated_passwords", {}), "generated_passwords")
    return Configuration(
        secrets={name: parse_secret(body, f"secrets.{name}") for name, body in secrets.items()},
        generated_passwords={
            name: parse_generated_password(body, f"generated_passwords.{name}") for name, body in passwords.items()
        },
    )


def load_configuration(path: Path) -> Configuration:
    try:
        document = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigurationError(f"configuration file {path} does not exist") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"configuration file {path} is not valid JSON: {exc}") from exc
    return parse_configuration(document)


__all__ = [
    "Configuration",
    "load_configuration",
    "parse_configuration",
    "parse_generated_password",
    "parse_item",
    "parse_secret",
]
