"""Lifecycle of a managed secret: create, read, update, delete and apply."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Iterator, List, Optional, Sequence, Tuple

from ..errors import ReconcileError
from ..server.protocol import RemoteClient
from .field_reconciler import to_items, to_secret, without_ssh_key_args
from .log_manager import log_event
from .models import DesiredItem, DesiredSecret, Secret, SecretState, SshKeyArgs
from .plan_manager import Plan, plan_secret
from .template_resolver import TemplateResolver


@contextmanager
def _audited(action: str, **payload: Any) -> Iterator[None]:
    try:
        yield
    except ReconcileError as exc:
        log_event(action, ok=False, error=type(exc).__name__, message=str(exc), **payload)
        raise


def secret_state(secret: Secret, prior_items: Sequence[DesiredItem], directive: SshKeyArgs) -> SecretState:
    """Build stored state from a server secret.

    The SSH directive is carried over from *directive*: the server accepts it
    in requests but never echoes it back.
    """

    return SecretState(
        **secret.settings(),
        id=secret.id,
        active=secret.active,
        items=to_items(secret, prior_items),
        generate_ssh_keys=directive.generate_ssh_keys,
        generate_ssh_passphrase=directive.generate_passphrase,
    )


def retained_items(desired: DesiredSecret, state: SecretState) -> List[DesiredItem]:
    """Return the desired items plus the stored items key generation produced.

    Generated items are never declared, and the plan ignores their absence
    while the directive is active. They are sent back unchanged so an update
    does not clear them.
    """

    items = list(desired.items)
    if not state.ssh_key_args.active:
        return items
    declared = {item.slug for item in desired.items}
    for stored in state.items:
        if stored.slug not in declared:
            items.append(
                DesiredItem(
                    slug=stored.slug,
                    value=stored.value,
                    filename=stored.filename,
                    file_encoded=stored.file_encoded,
                )
            )
    return items


class SecretManager:
    """Drive one reconciliation pass per call against the remote server."""

    def __init__(self, client: RemoteClient, *, resolver: Optional[TemplateResolver] = None) -> None:
        self._client = client
        self._resolver = resolver or TemplateResolver(client)

    def create(self, desired: DesiredSecret) -> SecretState:
        with _audited("secret.create", name=desired.name, template_id=desired.secret_template_id):
            template = self._resolver.resolve(desired.secret_template_id)
            model = to_secret(desired, template)
            created = self._client.create_secret(model)
            state = secret_state(created, desired.items, desired.ssh_key_args)
        log_event(
            "secret.create",
            name=state.name,
            secret_id=state.id,
            items=[item.slug for item in state.items],
            generate_ssh_keys=desired.generate_ssh_keys,
        )
        return state

    def read(self, state: SecretState) -> SecretState:
        with _audited("secret.read", name=state.name, secret_id=state.id):
            secret = self._client.get_secret(state.id)
            refreshed = secret_state(secret, state.items, state.ssh_key_args)
        log_event("secret.read", name=refreshed.name, secret_id=refreshed.id, items=len(refreshed.items))
        return refreshed

    def update(self, desired: DesiredSecret, state: SecretState) -> SecretState:
        with _audited("secret.update", name=desired.name, secret_id=state.id):
            template = self._resolver.resolve(desired.secret_template_id)
            outbound = replace(desired, items=retained_items(desired, state))
            # key generation is only honoured on create
            model = without_ssh_key_args(to_secret(outbound, template, state.id))
            updated = self._client.update_secret(model)
            new_state = secret_state(updated, outbound.items, desired.ssh_key_args)
        log_event(
            "secret.update",
            name=new_state.name,
            secret_id=new_state.id,
            items=[item.slug for item in new_state.items],
        )
        return new_state

    def delete(self, state: SecretState) -> None:
        with _audited("secret.delete", name=state.name, secret_id=state.id):
            self._client.delete_secret(state.id)
        log_event("secret.delete", name=state.name, secret_id=state.id)

    def plan(self, desired: Optional[DesiredSecret], state: Optional[SecretState]) -> Plan:
        return plan_secret(desired, state)

    def apply(
        self,
        desired: Optional[DesiredSecret],
        state: Optional[SecretState],
    ) -> Tuple[Plan, Optional[SecretState]]:
        """Plan and carry out whatever brings the server in line with *desired*."""

        plan = plan_secret(desired, state)
        if plan.action == "create" and desired is not None:
            return plan, self.create(desired)
        if plan.action == "update" and desired is not None and state is not None:
            return plan, self.update(desired, state)
        if plan.action == "replace" and desired is not None and state is not None:
            self.delete(state)
            return plan, self.create(desired)
        if plan.action == "delete" and state is not None:
            self.delete(state)
            return plan, None
        return plan, state


__all__ = ["SecretManager", "retained_items", "secret_state"]
