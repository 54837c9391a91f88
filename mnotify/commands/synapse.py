"""Synapse admin API commands. The logged-in user must be a server admin."""

from __future__ import annotations

import typer

from ..app import app
from ..dispatcher import command, options
from ..errors import CommandError
from ..options import GlobalOptions
from ..output import emit_fields, emit_json, emit_table

synapse_app = typer.Typer(help="Use the synapse admin api", no_args_is_help=True)
app.add_typer(synapse_app, name="synapse")


def _one_action(**flags: bool) -> str:
    chosen = [name for name, flag in flags.items() if flag]
    if not chosen:
        raise CommandError(f"choose one of: {', '.join('--' + n for n in flags)}")
    if len(chosen) > 1:
        raise CommandError(f"only one action at a time, got: {', '.join('--' + n for n in chosen)}")
    return chosen[0]


def admin_room(opts: GlobalOptions, list_rooms: bool, members: bool) -> None:
    client = opts.require_client()
    action = _one_action(list=list_rooms, members=members)

    if action == "list":
        rooms = client.admin_rooms()
        if opts.output_json:
            emit_json(rooms)
            return
        emit_table("Rooms", ["Room ID", "Name", "Members", "Creator"], [
            (r.get("room_id"), r.get("name"), r.get("joined_members"), r.get("creator"))
            for r in rooms
        ])
        return

    room_members = client.admin_room_members(opts.require_room())
    if opts.output_json:
        emit_json(room_members)
        return
    for member in room_members:
        typer.echo(member)


def admin_user(opts: GlobalOptions, devices: bool, show: bool, whois: bool) -> None:
    client = opts.require_client()
    action = _one_action(devices=devices, show=show, whois=whois)
    user_id = opts.user_or_self()

    if action == "devices":
        found = client.admin_user_devices(user_id)
        if opts.output_json:
            emit_json(found)
            return
        emit_table(f"Devices of {user_id}", ["Device ID", "Display Name", "Last Seen IP"], [
            (d.get("device_id"), d.get("display_name"), d.get("last_seen_ip")) for d in found
        ])
        return

    if action == "show":
        data = client.admin_user(user_id)
        if opts.output_json:
            emit_json(data)
            return
        emit_fields([
            ("UserID", data.get("name", user_id)),
            ("DisplayName", data.get("displayname")),
            ("Admin", "yes" if data.get("admin") else "no"),
            ("Deactivated", "yes" if data.get("deactivated") else "no"),
            ("Created", data.get("creation_ts")),
        ])
        return

    data = client.admin_whois(user_id)
    if opts.output_json:
        emit_json(data)
        return
    rows = []
    for device_id, device in (data.get("devices") or {}).items():
        for session in device.get("sessions") or []:
            for conn in session.get("connections") or []:
                rows.append((device_id or "-", conn.get("ip"), conn.get("last_seen"), conn.get("user_agent")))
    emit_table(f"Logins of {data.get('user_id', user_id)}", ["Device", "IP", "Last Seen", "User Agent"], rows)


def admin_version(opts: GlobalOptions) -> None:
    data = opts.require_client().admin_server_version()
    if opts.output_json:
        emit_json(data)
        return
    emit_fields([("Server Version", data.get("server_version")), ("Python Version", data.get("python_version"))])


@command(synapse_app, "room", help="Administrate rooms")
def room_cmd(
    ctx: typer.Context,
    list_rooms: bool = typer.Option(False, "--list", "-l", help="List all rooms on the server"),
    members: bool = typer.Option(False, "--members", "-m", help="List members of a room"),
):
    admin_room(options(ctx), list_rooms, members)


@command(synapse_app, "user", help="Administrate users")
def user_cmd(
    ctx: typer.Context,
    devices: bool = typer.Option(False, "--devices", "-d", help="List the user's devices"),
    show: bool = typer.Option(False, "--show", "-s", help="Show the data associated with the user"),
    whois: bool = typer.Option(False, "--whois", "-w", help="List current logins"),
):
    admin_user(options(ctx), devices, show, whois)


@command(synapse_app, "version", help="Query synapse version")
def version_cmd(ctx: typer.Context):
    admin_version(options(ctx))
