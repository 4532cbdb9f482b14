"""Headless command line surface for tssync."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from rich.console import Console
from rich.table import Table

from . import __version__
from .core import PasswordManager, SecretManager, SecretSource
from .core.config_loader import Configuration, load_configuration
from .core.plan_manager import Plan
from .core.state_store import StateStore
from .errors import ReconcileError
from .security import EncryptedStoreError
from .server import SecretServerClient, ServerConfiguration
from .server.protocol import RemoteClient
from .utils import logbook

MASK = "***"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tssync", description="Reconcile Secret Server secrets with a configuration")
    parser.add_argument("--version", action="store_true", help="Display version information and exit")
    parser.add_argument("--env-file", default=None, help="Optional .env file with server settings")
    parser.add_argument("--state", default=None, help="Encrypted state file (default ~/.tssync/state.enc)")
    subparsers = parser.add_subparsers(dest="command")

    # Resources ----------------------------------------------------------
    plan = subparsers.add_parser("plan", help="Show what apply would change")
    plan.add_argument("config", help="JSON configuration file")
    plan.add_argument("--no-refresh", action="store_true", help="Plan against stored state without reading the server")
    plan.add_argument("--json", action="store_true", dest="as_json", help="Emit the plan as JSON")

    apply = subparsers.add_parser("apply", help="Create, update or delete secrets to match the configuration")
    apply.add_argument("config", help="JSON configuration file")
    apply.add_argument("--no-refresh", action="store_true", help="Skip reading the server before planning")

    subparsers.add_parser("refresh", help="Read every managed secret back into state")
    subparsers.add_parser("destroy", help="Delete every managed secret")
    subparsers.add_parser("show", help="Print stored state with values masked")

    # Lookups ------------------------------------------------------------
    secret = subparsers.add_parser("secret", help="Read existing secrets")
    secret_sub = secret.add_subparsers(dest="secret_command")
    secret_get = secret_sub.add_parser("get", help="Print one field of a secret")
    secret_get.add_argument("field")
    secret_get.add_argument("--id", type=int, dest="secret_id", default=None)
    secret_get.add_argument("--path", default=None, help="Folder path and secret name, e.g. /ops/db")

    password = subparsers.add_parser("password", help="Server generated passwords")
    password_sub = password.add_subparsers(dest="password_command")
    password_generate = password_sub.add_parser("generate", help="Generate a password for a template field")
    password_generate.add_argument("template_id", type=int)
    password_generate.add_argument("field")

    return parser


def _client(args: argparse.Namespace) -> RemoteClient:
    env_file = Path(args.env_file) if args.env_file else None
    return SecretServerClient(ServerConfiguration.from_env(env_file))


def _state(args: argparse.Namespace) -> StateStore:
    return StateStore(path=Path(args.state) if args.state else None)


def _refresh(manager: SecretManager, store: StateStore) -> None:
    for name in store.secret_names():
        state = store.get_secret(name)
        if state is not None:
            store.put_secret(name, manager.read(state))


def _plans(manager: SecretManager, config: Configuration, store: StateStore) -> Dict[str, Plan]:
    plans: Dict[str, Plan] = {}
    for name in sorted(set(config.secrets) | set(store.secret_names())):
        plans[name] = manager.plan(config.secrets.get(name), store.get_secret(name))
    return plans


def _render_plans(plans: Dict[str, Plan]) -> None:
    console = Console(highlight=False)
    table = Table(title="tssync plan")
    table.add_column("secret")
    table.add_column("action")
    table.add_column("attribute")
    table.add_column("old")
    table.add_column("new")
    for name, plan in plans.items():
        if not plan.changes:
            table.add_row(name, plan.action, "", "", "")
            continue
        for change in plan.changes:
            rendered = change.to_dict()
            marker = " (forces replacement)" if change.force_new else ""
            table.add_row(name, plan.action, change.key + marker, rendered["old"], rendered["new"])
    console.print(table)


def _handle_plan(args: argparse.Namespace) -> Any:
    config = load_configuration(Path(args.config))
    store = _state(args)
    manager = SecretManager(_client(args))
    if not args.no_refresh:
        _refresh(manager, store)
    plans = _plans(manager, config, store)
    if args.as_json:
        return {name: plan.to_dict() for name, plan in plans.items()}
    _render_plans(plans)
    return None


def _handle_apply(args: argparse.Namespace) -> Any:
    config = load_configuration(Path(args.config))
    store = _state(args)
    client = _client(args)
    secrets = SecretManager(client)
    passwords = PasswordManager(client)
    summary: Dict[str, Any] = {"secrets": {}, "generated_passwords": {}}
    try:
        if not args.no_refresh:
            _refresh(secrets, store)
        for name in sorted(set(config.generated_passwords) | set(store.password_names())):
            previous = store.get_password(name)
            result = passwords.apply(config.generated_passwords.get(name), previous)
            if result is None:
                store.remove_password(name)
                summary["generated_passwords"][name] = "delete"
            else:
                store.put_password(name, result)
                summary["generated_passwords"][name] = "create" if previous is None else "noop"
        for name in sorted(set(config.secrets) | set(store.secret_names())):
            plan, result = secrets.apply(config.secrets.get(name), store.get_secret(name))
            if result is None:
                store.remove_secret(name)
            else:
                store.put_secret(name, result)
            summary["secrets"][name] = plan.action
    finally:
        # keep whatever succeeded before a failure
        store.save()
    return summary


def _handle_refresh(args: argparse.Namespace) -> Any:
    store = _state(args)
    _refresh(SecretManager(_client(args)), store)
    store.save()
    return {"refreshed": store.secret_names()}


def _handle_destroy(args: argparse.Namespace) -> Any:
    store = _state(args)
    manager = SecretManager(_client(args))
    destroyed = []
    try:
        for name in store.secret_names():
            state = store.get_secret(name)
            if state is not None:
                manager.delete(state)
            store.remove_secret(name)
            destroyed.append(name)
        for name in store.password_names():
            store.remove_password(name)
    finally:
        store.save()
    return {"destroyed": destroyed}


def _handle_show(args: argparse.Namespace) -> Any:
    store = _state(args)
    secrets = {}
    for name in store.secret_names():
        state = store.get_secret(name)
        if state is None:
            continue
        payload = state.to_dict()
        for item in payload["items"]:
            item["value"] = MASK if item["value"] else ""
        secrets[name] = payload
    passwords = {}
    for name in store.password_names():
        generated = store.get_password(name)
        if generated is not None:
            passwords[name] = {**generated.to_dict(), "value": MASK}
    return {"secrets": secrets, "generated_passwords": passwords}


def _handle_secret(args: argparse.Namespace) -> Any:
    if args.secret_command != "get":
        raise ValueError("Unknown secret command")
    source = SecretSource(_client(args))
    return {"field": args.field, "value": source.read(args.field, secret_id=args.secret_id, path=args.path)}


def _handle_password(args: argparse.Namespace) -> Any:
    if args.password_command != "generate":
        raise ValueError("Unknown password command")
    generated = PasswordManager(_client(args)).generate(args.template_id, args.field)
    return generated.to_dict()


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.version:
        print(f"tssync {__version__}")
        return 0
    if args.command is None:
        parser.print_help()
        return 1
    handlers = {
        "plan": _handle_plan,
        "apply": _handle_apply,
        "refresh": _handle_refresh,
        "destroy": _handle_destroy,
        "show": _handle_show,
        "secret": _handle_secret,
        "password": _handle_password,
    }
    logbook.get_logger()
    try:
        result = handlers[args.command](args)
    except (ReconcileError, EncryptedStoreError) as exc:
        json.dump({"error": str(exc), "type": type(exc).__name__}, sys.stderr, indent=2)
        sys.stderr.write("\n")
        return 1
    if result is not None:
        json.dump(result, sys.stdout, indent=2, default=str)
        sys.stdout.write("\n")
    return 0


__all__ = ["main"]
