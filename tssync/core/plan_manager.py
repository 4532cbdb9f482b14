"""Attribute-level diff between a desired secret and its stored state."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple

from .diff_suppress import ITEM_COUNT_KEY, suppress_diff
from .models import SETTING_NAMES, DesiredItem, DesiredSecret, SecretState, StoredItem

Action = Literal["create", "update", "replace", "delete", "noop"]
# key, old, new, sensitive
Pair = Tuple[str, str, str, bool]

MASK = "***"
FORCE_NEW_KEYS = ("generate_ssh_keys", "generate_ssh_passphrase")


@dataclass(frozen=True)
class AttributeChange:
    """One differing flattened attribute such as ``item.0.value``."""

    key: str
    old: str
    new: str
    force_new: bool = False
    sensitive: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "old": MASK if self.sensitive and self.old else self.old,
            "new": MASK if self.sensitive and self.new else self.new,
            "force_new": self.force_new,
        }


@dataclass
class Plan:
    """Planned action for one secret resource."""

    action: Action
    changes: List[AttributeChange] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return self.action != "noop"

    def to_dict(self) -> Dict[str, Any]:
        return {"action": self.action, "changes": [change.to_dict() for change in self.changes]}


def _render(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _item_pairs(
    index: int,
    desired: Optional[DesiredItem],
    stored: Optional[StoredItem],
) -> List[Pair]:
    prefix = f"item.{index}"
    pairs: List[Pair] = [
        (f"{prefix}.field", _render(stored.slug if stored else None), _render(desired.slug if desired else None), False)
    ]
    if desired is None:
        return pairs
    # value and filename are computed when left unset in configuration
    if desired.value is not None:
        pairs.append((f"{prefix}.value", _render(stored.value if stored else None), desired.value, True))
    if desired.filename is not None:
        pairs.append((f"{prefix}.filename", _render(stored.filename if stored else None), desired.filename, False))
    pairs.append(
        (
            f"{prefix}.file_encoded",
            _render(stored.file_encoded if stored else False),
            _render(desired.file_encoded),
            False,
        )
    )
    return pairs


def diff_secret(desired: DesiredSecret, state: Optional[SecretState]) -> List[AttributeChange]:
    """Return the changes that survive :func:`suppress_diff`."""

    current = state or SecretState()
    directive = desired.ssh_key_args
    changes: List[AttributeChange] = []

    for name in SETTING_NAMES + ("generate_ssh_keys", "generate_ssh_passphrase"):
        old = _render(getattr(current, name)) if state is not None else ""
        new = _render(getattr(desired, name))
        if old != new:
            changes.append(AttributeChange(name, old, new, force_new=name in FORCE_NEW_KEYS))

    old_count = _render(len(current.items)) if state is not None else ""
    item_pairs: List[Pair] = [(ITEM_COUNT_KEY, old_count, _render(len(desired.items)), False)]
    for index in range(max(len(desired.items), len(current.items))):
        wanted = desired.items[index] if index < len(desired.items) else None
        stored = current.items[index] if index < len(current.items) else None
        item_pairs.extend(_item_pairs(index, wanted, stored))

    for key, old, new, sensitive in item_pairs:
        if suppress_diff(key, old, new, directive, secret_name=desired.name):
            continue
        changes.append(AttributeChange(key, old, new, sensitive=sensitive))
    return changes


def plan_secret(desired: Optional[DesiredSecret], state: Optional[SecretState]) -> Plan:
    """Decide what has to happen to bring *state* in line with *desired*."""

    if desired is None:
        return Plan(action="delete" if state is not None else "noop")
    changes = diff_secret(desired, state)
    if state is None:
        return Plan(action="create", changes=changes)
    if any(change.force_new for change in changes):
        return Plan(action="replace", changes=changes)
    if changes:
        return Plan(action="update", changes=changes)
    return Plan(action="noop")


__all__ = ["AttributeChange", "Plan", "diff_secret", "plan_secret"]
