from __future__ import annotations

import json
from pathlib import Path

import pytest

from tssync.core.models import DesiredItem, DesiredSecret
from tssync.core.secret_manager import SecretManager, retained_items
from tssync.errors import RemoteError, StateConsistencyError, TemplateNotFound


def _desired(**overrides) -> DesiredSecret:
    values = dict(
        name="db",
        secret_template_id=6011,
        folder_id=7,
        items=[
            DesiredItem(slug="machine", value="db01"),
            DesiredItem(slug="username", value="root"),
            DesiredItem(slug="password", value="hunter2"),
        ],
    )
    values.update(overrides)
    return DesiredSecret(**values)


def _audit_records(home: Path) -> list:
    lines = (home / "audit.jsonl").read_text(encoding="utf-8").strip().splitlines()
    return [json.loads(line)["record"] for line in lines]


def test_create_then_plan_is_convergent(isolated_home: Path, fake_server) -> None:
    manager = SecretManager(fake_server)
    desired = _desired()

    state = manager.create(desired)

    assert state.id == 100
    assert [(item.slug, item.value) for item in state.items] == [
        (item.slug, item.value) for item in desired.items
    ]
    assert manager.plan(desired, state).action == "noop"
    assert manager.plan(desired, manager.read(state)).action == "noop"


def test_create_sends_every_template_field(isolated_home: Path, fake_server) -> None:
    SecretManager(fake_server).create(_desired())
    _, sent = next(call for call in fake_server.calls if call[0] == "create_secret")
    assert len(sent.fields) == 7
    assert sent.ssh_key_args is None


def test_update_applies_new_values(isolated_home: Path, fake_server) -> None:
    manager = SecretManager(fake_server)
    state = manager.create(_desired())
    changed = _desired(
        items=[
            DesiredItem(slug="machine", value="db02"),
            DesiredItem(slug="username", value="root"),
            DesiredItem(slug="password", value="hunter2"),
        ]
    )

    plan, updated = manager.apply(changed, state)

    assert plan.action == "update"
    assert updated is not None
    assert updated.id == state.id
    assert updated.items[0].value == "db02"
    assert manager.plan(changed, updated).action == "noop"


def test_out_of_band_change_is_detected(isolated_home: Path, fake_server) -> None:
    manager = SecretManager(fake_server)
    desired = _desired()
    state = manager.create(desired)
    fake_server.edit_field(state.id, "password", "changed-by-hand")

    refreshed = manager.read(state)

    plan = manager.plan(desired, refreshed)
    assert plan.action == "update"
    assert [change.key for change in plan.changes] == ["item.2.value"]


def test_field_filled_outside_configuration_appears_in_state(isolated_home: Path, fake_server) -> None:
    manager = SecretManager(fake_server)
    state = manager.create(_desired())
    fake_server.edit_field(state.id, "notes", "added in the UI")

    refreshed = manager.read(state)

    assert [item.slug for item in refreshed.items] == ["machine", "username", "password", "notes"]
    assert manager.plan(_desired(), refreshed).action == "update"


def test_generated_keys_converge(isolated_home: Path, fake_server) -> None:
    manager = SecretManager(fake_server)
    desired = _desired(generate_ssh_keys=True, generate_ssh_passphrase=True)

    state = manager.create(desired)

    slugs = [item.slug for item in state.items]
    assert slugs[:3] == ["machine", "username", "password"]
    assert set(slugs[3:]) == {"private-key", "public-key", "private-key-passphrase"}
    assert state.generate_ssh_keys and state.generate_ssh_passphrase
    assert manager.plan(desired, state).action == "noop"
    assert manager.plan(desired, manager.read(state)).action == "noop"


def test_update_never_sends_key_generation(isolated_home: Path, fake_server) -> None:
    manager = SecretManager(fake_server)
    desired = _desired(generate_ssh_keys=True)
    state = manager.create(desired)
    changed = _desired(generate_ssh_keys=True, folder_id=8)

    plan, updated = manager.apply(changed, state)

    assert plan.action == "update"
    _, sent = next(call for call in fake_server.calls if call[0] == "update_secret")
    assert sent.ssh_key_args is None
    assert updated is not None and updated.folder_id == 8
    private_key = fake_server.secrets[state.id].field("private-key")
    assert private_key is not None and private_key.value.startswith("-----BEGIN")


def test_enabling_generation_replaces_the_secret(isolated_home: Path, fake_server) -> None:
    manager = SecretManager(fake_server)
    state = manager.create(_desired())

    plan, replaced = manager.apply(_desired(generate_ssh_keys=True), state)

    assert plan.action == "replace"
    assert replaced is not None and replaced.id != state.id
    assert state.id not in fake_server.secrets
    assert any(item.slug == "public-key" for item in replaced.items)


def test_delete_and_apply_removal(isolated_home: Path, fake_server) -> None:
    manager = SecretManager(fake_server)
    state = manager.create(_desired())

    plan, result = manager.apply(None, state)

    assert plan.action == "delete"
    assert result is None
    assert fake_server.secrets == {}


def test_file_items_round_trip_through_state(isolated_home: Path, fake_server) -> None:
    manager = SecretManager(fake_server)
    desired = _desired(items=[DesiredItem(slug="private-key", value="aGVsbG8=", file_encoded=True)])

    state = manager.create(desired)

    stored = fake_server.secrets[state.id].field("private-key")
    assert stored is not None and stored.value == "hello" and stored.filename == "File.txt"
    assert state.items[0].value == "aGVsbG8="
    assert manager.plan(desired, state).action == "noop"


def test_unknown_template_is_audited(isolated_home: Path, fake_server) -> None:
    with pytest.raises(TemplateNotFound):
        SecretManager(fake_server).create(_desired(secret_template_id=42))
    [record] = _audit_records(isolated_home)
    assert record["action"] == "secret.create"
    assert record["ok"] is False
    assert record["error"] == "TemplateNotFound"


def test_read_of_deleted_secret_raises(isolated_home: Path, fake_server) -> None:
    manager = SecretManager(fake_server)
    state = manager.create(_desired())
    fake_server.secrets.clear()
    with pytest.raises(RemoteError) as excinfo:
        manager.read(state)
    assert excinfo.value.status_code == 404


def test_read_with_missing_field_is_inconsistent(isolated_home: Path, fake_server) -> None:
    manager = SecretManager(fake_server)
    state = manager.create(_desired())
    stored = fake_server.secrets[state.id]
    stored.fields = [f for f in stored.fields or [] if f.slug != "machine"]
    with pytest.raises(StateConsistencyError):
        manager.read(state)


def test_audit_records_never_contain_values(isolated_home: Path, fake_server) -> None:
    SecretManager(fake_server).create(_desired())
    audit = (isolated_home / "audit.jsonl").read_text(encoding="utf-8")
    assert "hunter2" not in audit
    assert _audit_records(isolated_home)[-1]["items"] == ["machine", "username", "password"]


def test_update_keeps_generated_passphrase(isolated_home: Path, fake_server) -> None:
    manager = SecretManager(fake_server)
    created = _desired(
        items=[DesiredItem(slug="username", value="root")],
        generate_ssh_keys=True,
        generate_ssh_passphrase=True,
    )
    state = manager.create(created)
    changed = _desired(
        items=[DesiredItem(slug="username", value="admin")],
        generate_ssh_keys=True,
        generate_ssh_passphrase=True,
    )

    plan, updated = manager.apply(changed, state)

    assert plan.action == "update"
    assert fake_server.secrets[state.id].field("private-key-passphrase").value == "generated-passphrase"
    assert fake_server.secrets[state.id].field("username").value == "admin"
    assert updated is not None
    assert [item.slug for item in updated.items] == [
        "username",
        "private-key",
        "public-key",
        "private-key-passphrase",
    ]
    assert manager.plan(changed, updated).action == "noop"
    assert manager.plan(changed, manager.read(updated)).action == "noop"


def test_retained_items_only_under_key_generation(isolated_home: Path, fake_server) -> None:
    manager = SecretManager(fake_server)
    state = manager.create(_desired())
    fewer = _desired(items=[DesiredItem(slug="username", value="root")])
    assert [item.slug for item in retained_items(fewer, state)] == ["username"]


def test_removing_an_item_clears_the_field(isolated_home: Path, fake_server) -> None:
    manager = SecretManager(fake_server)
    state = manager.create(_desired())
    trimmed = _desired(
        items=[DesiredItem(slug="username", value="root"), DesiredItem(slug="password", value="hunter2")]
    )

    plan, updated = manager.apply(trimmed, state)

    assert plan.action == "update"
    assert fake_server.secrets[state.id].field("machine").value == ""
    assert updated is not None
    assert [item.slug for item in updated.items] == ["username", "password"]
    assert manager.plan(trimmed, manager.read(updated)).action == "noop"


def test_removing_a_file_item_clears_the_attachment(isolated_home: Path, fake_server) -> None:
    manager = SecretManager(fake_server)
    with_key = _desired(
        items=[
            DesiredItem(slug="username", value="root"),
            DesiredItem(slug="private-key", value="aGVsbG8=", file_encoded=True),
        ]
    )
    state = manager.create(with_key)
    without_key = _desired(items=[DesiredItem(slug="username", value="root")])

    plan, updated = manager.apply(without_key, state)

    assert plan.action == "update"
    stored = fake_server.secrets[state.id].field("private-key")
    assert stored is not None and stored.value == "" and stored.filename == ""
    assert updated is not None
    assert [item.slug for item in updated.items] == ["username"]
    refreshed = manager.read(updated)
    assert manager.plan(without_key, refreshed).action == "noop"
    assert manager.apply(without_key, refreshed)[0].action == "noop"
