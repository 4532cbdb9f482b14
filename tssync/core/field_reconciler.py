"""Bidirectional mapping between the configured item list and server fields.

Outbound, an ordered list of :class:`DesiredItem` is bound to a
:class:`Template` and expanded into one :class:`SecretField` per template
definition. Inbound, the fields returned by the server are folded back into
an item list that keeps the previous configuration order, followed by any
field that gained a value outside of the configuration.
"""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import replace
from typing import Dict, List, Optional, Sequence

from ..errors import (
    DuplicateFieldSlug,
    InvalidEncoding,
    MissingFieldSlug,
    MissingFieldValue,
    StateConsistencyError,
    UnknownFieldSlug,
)
from .models import (
    DEFAULT_FILENAME,
    DesiredItem,
    DesiredSecret,
    Secret,
    SecretField,
    StoredItem,
    Template,
)

logger = logging.getLogger(__name__)


def decode_file_value(slug: str, encoded: str) -> str:
    """Decode base64 file content into the string carried by :class:`SecretField`.

    Non UTF-8 bytes survive as surrogate escapes so :func:`encode_file_value`
    reproduces the original text exactly.
    """

    try:
        raw = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidEncoding(slug, str(exc)) from exc
    return raw.decode("utf-8", errors="surrogateescape")


def encode_file_value(value: str) -> str:
    return base64.b64encode(value.encode("utf-8", errors="surrogateescape")).decode("ascii")


def to_secret_fields(
    items: Sequence[DesiredItem],
    template: Template,
    *,
    secret_name: str = "",
) -> List[SecretField]:
    """Convert configured items into the complete server-bound field list."""

    secret_fields: List[SecretField] = []
    initialized = set()
    for item in items:
        if not item.slug:
            raise MissingFieldSlug(secret_name)
        definition = template.get_field(item.slug)
        if definition is None:
            raise UnknownFieldSlug(item.slug, secret_name)
        if item.slug in initialized:
            raise DuplicateFieldSlug(item.slug, secret_name)
        if item.value is None:
            raise MissingFieldValue(item.slug, secret_name)

        value = item.value
        if definition.is_file and item.file_encoded:
            logger.debug("decoding file item '%s' from base64 before posting", item.slug)
            value = decode_file_value(item.slug, value)

        filename = item.filename or ""
        if definition.is_file and not filename:
            filename = DEFAULT_FILENAME

        secret_fields.append(
            SecretField(
                slug=item.slug,
                field_id=definition.field_id,
                value=value,
                filename=filename,
                is_file=definition.is_file,
            )
        )
        initialized.add(item.slug)

    # Templated fields left out of the configuration are cleared explicitly.
    for definition in template.fields:
        if definition.slug not in initialized:
            secret_fields.append(
                SecretField(
                    slug=definition.slug,
                    field_id=definition.field_id,
                    value="",
                    is_file=definition.is_file,
                )
            )
    return secret_fields


def to_secret(desired: DesiredSecret, template: Template, secret_id: int = 0) -> Secret:
    """Build the :class:`Secret` sent on create (``secret_id`` 0) or update."""

    ssh_key_args = desired.ssh_key_args
    return Secret(
        **desired.settings(),
        id=secret_id,
        fields=to_secret_fields(desired.items, template, secret_name=desired.name),
        ssh_key_args=ssh_key_args if ssh_key_args.active else None,
    )


def _item_from_field(secret_field: SecretField, *, file_encoded: bool = False) -> StoredItem:
    return StoredItem(
        slug=secret_field.slug,
        value=secret_field.value,
        filename=secret_field.filename,
        file_encoded=file_encoded,
        field_id=secret_field.field_id,
        field_name=secret_field.field_name,
        field_description=secret_field.field_description,
        file_attachment_id=secret_field.file_attachment_id,
        is_file=secret_field.is_file,
        is_notes=secret_field.is_notes,
        is_password=secret_field.is_password,
        item_id=secret_field.item_id,
    )


def to_items(secret: Secret, prior_items: Sequence[DesiredItem]) -> List[StoredItem]:
    """Fold server fields back into an item list ordered like *prior_items*."""

    if secret.fields is None:
        return []

    by_slug: Dict[str, SecretField] = {}
    for secret_field in secret.fields:
        by_slug.setdefault(secret_field.slug, secret_field)

    items: List[StoredItem] = []
    mapped = set()
    for prior in prior_items:
        secret_field = by_slug.get(prior.slug)
        if secret_field is None:
            raise StateConsistencyError(prior.slug, secret.name)
        item = _item_from_field(secret_field, file_encoded=prior.file_encoded)
        if secret_field.is_file and prior.file_encoded:
            logger.debug("encoding file item '%s' to base64 for state", prior.slug)
            item.value = encode_file_value(secret_field.value)
        items.append(item)
        mapped.add(prior.slug)

    for secret_field in secret.fields:
        if secret_field.slug in mapped or not secret_field.has_value:
            continue
        items.append(_item_from_field(secret_field))
        mapped.add(secret_field.slug)
    return items


def without_ssh_key_args(secret: Secret) -> Secret:
    """Return a copy of *secret* that no longer asks the server to generate keys."""

    return replace(secret, ssh_key_args=None)


def field_value(secret: Secret, slug: str) -> Optional[str]:
    secret_field = secret.field(slug)
    return secret_field.value if secret_field is not None else None


__all__ = [
    "decode_file_value",
    "encode_file_value",
    "field_value",
    "to_items",
    "to_secret",
    "to_secret_fields",
    "without_ssh_key_args",
]
