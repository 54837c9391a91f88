#!/usr/bin/env python3

from __future__ import annotations
from typing import Optional

import typer

from shared.log import get_logger
from .app import app
from .client import MatrixClient
from .discovery import resolve
from .dispatcher import command, options
from .errors import CommandError, DiscoveryError, UserIdentifierError
from .options import GlobalOptions
from .output import emit_json
from .session import SessionRecord, config_path, delete_session, save_session, session_exists

# Leaf commands living in their own modules register themselves on import.
from .commands import room, send, synapse, sync, user  # noqa: F401

logger = get_logger(__name__)

DEFAULT_DEVICE_NAME = "mnotify"


# ========================================
#           IDENTITY
# ========================================

def show_whoami(opts: GlobalOptions) -> None:
    resp = opts.require_client().whoami()
    if opts.output_json:
        emit_json(resp)
        return
    typer.echo(f"UserID  : {resp.get('user_id', '')}")
    device_id = resp.get("device_id")
    if device_id:
        typer.echo(f"DeviceID: {device_id}")


def show_versions(opts: GlobalOptions) -> None:
    resp = opts.require_client().versions()
    if opts.output_json:
        emit_json(resp)
        return
    versions = resp.get("versions") or []
    typer.echo(f"Protocol Versions: [{' '.join(versions)}]")
    typer.echo("Unstable Features:")
    for name, enabled in (resp.get("unstable_features") or {}).items():
        typer.echo(f"  {name}: {'true' if enabled else 'false'}")


def show_discovery(opts: GlobalOptions) -> None:
    user_id = opts.user_or_self()
    try:
        result = resolve(user_id)
    except (UserIdentifierError, DiscoveryError) as e:
        raise CommandError(str(e)) from e
    if opts.output_json:
        emit_json({"homeserver": result.homeserver, "identity_server": result.identity_server})
        return
    typer.echo(f"Home Server: {result.homeserver}")
    if result.identity_server:
        typer.echo(f"Identity Server: {result.identity_server}")


@command(app, "whoami", help="Identify this login")
def whoami_cmd(ctx: typer.Context):
    show_whoami(options(ctx))


@command(app, "version", help="Ask the homeserver about supported protocol versions")
def version_cmd(ctx: typer.Context):
    show_versions(options(ctx))


@command(app, "discover", help="Perform a .well-known client discovery")
def discover_cmd(ctx: typer.Context):
    show_discovery(options(ctx))


# ========================================
#           LOGIN / LOGOUT
# ========================================

def perform_login(opts: GlobalOptions, password: str, device_name: str) -> SessionRecord:
    """Discover the homeserver for --user, log in with a password and persist the session."""
    user_id = opts.require_user()
    if session_exists():
        raise CommandError(f"a session already exists at {config_path()}; log out first")

    try:
        discovered = resolve(user_id)
    except (UserIdentifierError, DiscoveryError) as e:
        raise CommandError(str(e)) from e

    client = MatrixClient(discovered.homeserver)
    resp = client.login(user_id, password, device_name)
    record = SessionRecord(
        user_id=client.user_id or user_id,
        access_token=resp["access_token"],
        device_id=resp.get("device_id"),
        homeserver=discovered.homeserver,
    )
    path = save_session(record)
    logger.info("Stored session at %s", path, extra={"user_id": record.user_id})
    return record


def perform_logout(opts: GlobalOptions, force: bool) -> None:
    if not force:
        raise CommandError(
            "logging out invalidates the access token of this session; rerun with --force"
        )
    opts.require_client().logout()
    delete_session()


@command(app, "login", help="Manage Login", requires_session=False)
def login_cmd(
    ctx: typer.Context,
    password: Optional[str] = typer.Option(None, "--password", "-p", help="Password; prompted for if omitted"),
    device_name: str = typer.Option(DEFAULT_DEVICE_NAME, "--device-name", "-d", help="Display name of the new device"),
):
    opts = options(ctx)
    opts.require_user()
    if password is None:
        password = typer.prompt("Password", hide_input=True)
    record = perform_login(opts, password, device_name)
    if opts.output_json:
        emit_json({"user_id": record.user_id, "device_id": record.device_id, "homeserver": record.homeserver})
        return
    typer.echo(f"Logged in as {record.user_id}")


@command(app, "logout", help="Logout with this session")
def logout_cmd(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", "-f", help="Perform the logout"),
):
    perform_logout(options(ctx), force)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
