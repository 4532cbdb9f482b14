from __future__ import annotations

import logging

import pytest

from tssync.core.diff_suppress import suppress_diff
from tssync.core.models import SshKeyArgs

KEYS = SshKeyArgs(generate_ssh_keys=True)
PASSPHRASE = SshKeyArgs(generate_ssh_keys=True, generate_passphrase=True)
INACTIVE = SshKeyArgs()


@pytest.mark.parametrize(
    "key, old, new, directive, expected",
    [
        ("name", "db", "db", None, True),
        ("item.2.field", "private-key", "", KEYS, True),
        ("item.2.field", "private-key", "", PASSPHRASE, True),
        ("item.2.field", "private-key", "", INACTIVE, False),
        ("item.2.field", "private-key", "", None, False),
        ("item.2.field", "private-key", "public-key", KEYS, False),
        ("item.#", "5", "3", KEYS, True),
        ("item.#", "5", "6", KEYS, False),
        ("item.#", "5", "3", INACTIVE, False),
        ("item.#", "", "3", KEYS, False),
        ("item.#", "x", "3", KEYS, False),
        ("item.2.value", "secret", "", KEYS, False),
        ("item.12.field", "public-key", "", KEYS, True),
        ("xitem.2.field", "public-key", "", KEYS, False),
        ("item.2.field.extra", "public-key", "", KEYS, False),
        ("name", "db", "db2", KEYS, False),
    ],
)
def test_decision_table(key: str, old: str, new: str, directive, expected: bool) -> None:
    assert suppress_diff(key, old, new, directive) is expected


def test_suppression_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="tssync.core.diff_suppress"):
        assert suppress_diff("item.3.field", "public-key", "", KEYS, secret_name="db")
    assert "public-key" in caplog.text
    assert "'db'" in caplog.text


def test_identical_values_are_not_logged(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="tssync.core.diff_suppress"):
        assert suppress_diff("item.3.field", "x", "x", KEYS)
    assert caplog.text == ""
