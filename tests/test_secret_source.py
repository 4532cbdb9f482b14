from __future__ import annotations

from pathlib import Path

import pytest

from tssync.core.models import DesiredItem, DesiredSecret
from tssync.core.secret_manager import SecretManager
from tssync.core.secret_source import SecretSource
from tssync.errors import ConfigurationError, RemoteError


@pytest.fixture()
def existing(isolated_home: Path, fake_server):
    desired = DesiredSecret(
        name="db",
        secret_template_id=6011,
        items=[DesiredItem(slug="username", value="root"), DesiredItem(slug="password", value="hunter2")],
    )
    return SecretManager(fake_server).create(desired)


def test_read_by_id(existing, fake_server) -> None:
    assert SecretSource(fake_server).read("password", secret_id=existing.id) == "hunter2"


def test_read_by_path(existing, fake_server) -> None:
    assert SecretSource(fake_server).read("username", path="/ops/db") == "root"


def test_id_wins_over_path(existing, fake_server) -> None:
    SecretSource(fake_server).read("username", secret_id=existing.id, path="/ops/other")
    assert not any(call[0] == "get_secret_by_path" for call in fake_server.calls)


def test_unset_field_reads_empty(existing, fake_server) -> None:
    assert SecretSource(fake_server).read("notes", secret_id=existing.id) == ""


def test_unknown_field_is_an_error(existing, fake_server) -> None:
    with pytest.raises(ConfigurationError):
        SecretSource(fake_server).read("pin", secret_id=existing.id)


def test_lookup_needs_id_or_path(isolated_home: Path, fake_server) -> None:
    with pytest.raises(ConfigurationError):
        SecretSource(fake_server).read("password")


def test_missing_secret_propagates(isolated_home: Path, fake_server) -> None:
    with pytest.raises(RemoteError):
        SecretSource(fake_server).read("password", secret_id=404)
