"""Core reconciliation primitives powering tssync."""

from .models import (
    DesiredItem,
    DesiredSecret,
    GeneratedPassword,
    GeneratedPasswordState,
    Secret,
    SecretField,
    SecretState,
    SshKeyArgs,
    StoredItem,
    Template,
    TemplateField,
)
from .diff_suppress import suppress_diff
from .field_reconciler import to_items, to_secret, to_secret_fields
from .log_manager import log_event
from .template_resolver import TemplateResolver
from .plan_manager import Plan, plan_secret
from .secret_manager import SecretManager
from .password_manager import PasswordManager
from .secret_source import SecretSource

__all__ = [
    "DesiredItem",
    "DesiredSecret",
    "GeneratedPassword",
    "GeneratedPasswordState",
    "PasswordManager",
    "Plan",
    "Secret",
    "SecretField",
    "SecretManager",
    "SecretSource",
    "SecretState",
    "SshKeyArgs",
    "StoredItem",
    "Template",
    "TemplateField",
    "TemplateResolver",
    "log_event",
    "plan_secret",
    "suppress_diff",
    "to_items",
    "to_secret",
    "to_secret_fields",
]
