"""Diff filter for items produced by server-side SSH key generation.

With ``generate_ssh_keys`` or ``generate_ssh_passphrase`` set, the server fills
the public key, private key and passphrase fields on create. Users leave those
items undeclared, so without this filter the stored items would show up as a
permanent difference against the configuration.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from .models import SshKeyArgs

logger = logging.getLogger(__name__)

ITEM_FIELD_KEY = re.compile(r"^item\.\d+\.field$")
ITEM_COUNT_KEY = "item.#"


def _as_int(value: str) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def suppress_diff(
    key: str,
    old: str,
    new: str,
    directive: Optional[SshKeyArgs],
    *,
    secret_name: str = "",
) -> bool:
    """Return ``True`` when the change of *key* from *old* to *new* should be ignored."""

    if old == new:
        return True
    if directive is None or not directive.active:
        return False

    if ITEM_FIELD_KEY.match(key) and new == "":
        logger.warning(
            "ignoring state differences for the '%s' item on the secret named '%s' since SSH generation is enabled",
            old,
            secret_name,
        )
        return True

    if key == ITEM_COUNT_KEY:
        old_count = _as_int(old)
        new_count = _as_int(new)
        if old_count is not None and new_count is not None and new_count < old_count:
            logger.warning(
                "ignoring state differences between the number of items on the secret named '%s' "
                "since SSH generation is enabled",
                secret_name,
            )
            return True
    return False


__all__ = ["ITEM_COUNT_KEY", "ITEM_FIELD_KEY", "suppress_diff"]
