from __future__ import annotations
from typing import List, Optional

import typer

from shared.log import get_logger
from ..app import app
from ..client import ROOM_PRESETS
from ..dispatcher import command, options
from ..errors import CommandError
from ..options import GlobalOptions
from ..output import emit_json, emit_table

logger = get_logger(__name__)

DEFAULT_PROFILE = "trusted-private"

_ACTIONS = ("create", "invite", "list", "leave", "forget", "join", "messages")


def _event_line(event: dict) -> str:
    content = event.get("content") or {}
    sender = event.get("sender", "?")
    if event.get("type") == "m.room.message" and "body" in content:
        return f"{sender}: {content['body']}"
    return f"{sender}: <{event.get('type', 'unknown')}>"


def run_room(
    opts: GlobalOptions,
    *,
    create: bool = False,
    direct: bool = False,
    profile: str = DEFAULT_PROFILE,
    invite: bool = False,
    invites: Optional[List[str]] = None,
    members: bool = False,
    list_rooms: bool = False,
    leave: bool = False,
    forget: bool = False,
    join: bool = False,
    messages: bool = False,
    number: int = 10,
) -> None:
    """Run exactly one room action. --members may accompany --list."""
    client = opts.require_client()
    chosen = [name for name, flag in zip(
        _ACTIONS, (create, invite, list_rooms, leave, forget, join, messages)
    ) if flag]
    if len(chosen) > 1:
        raise CommandError(f"only one room action at a time, got: {', '.join(chosen)}")
    if members and chosen and chosen[0] != "list":
        raise CommandError(f"--members cannot be combined with --{chosen[0]}")
    if not create and (direct or invites or profile != DEFAULT_PROFILE):
        raise CommandError("--direct, --invites and --profile only apply to --create")

    if create:
        if profile not in ROOM_PRESETS:
            raise CommandError(f"unknown profile {profile!r}, choose from {', '.join(ROOM_PRESETS)}")
        room_id = client.create_room(profile=profile, direct=direct, invites=invites or [])
        logger.info("Created room", extra={"room_id": room_id})
        if opts.output_json:
            emit_json({"room_id": room_id})
        else:
            typer.echo(room_id)
        return

    if list_rooms:
        rooms = client.joined_rooms()
        if members:
            entries = [{"room_id": r, "members": sorted(client.joined_members(r))} for r in rooms]
        else:
            entries = [{"room_id": r} for r in rooms]
        if opts.output_json:
            emit_json(entries)
        elif members:
            emit_table("Joined Rooms", ["Room ID", "Members"],
                       [(e["room_id"], ", ".join(e["members"])) for e in entries])
        else:
            for entry in entries:
                typer.echo(entry["room_id"])
        return

    if join:
        room_id = client.join(opts.require_room())
        if opts.output_json:
            emit_json({"room_id": room_id})
        else:
            typer.echo(room_id)
        return

    if invite:
        client.invite(opts.require_room(), opts.require_user())
        return

    if leave:
        client.leave(opts.require_room())
        return

    if forget:
        client.forget(opts.require_room())
        return

    if messages:
        if number < 1:
            raise CommandError("--number must be at least 1")
        events = client.messages(opts.require_room(), limit=number)
        if opts.output_json:
            emit_json(events)
        else:
            for event in events:
                typer.echo(_event_line(event))
        return

    if members:
        joined = client.joined_members(opts.require_room())
        if opts.output_json:
            emit_json(joined)
        else:
            emit_table("Room Members", ["User ID", "Display Name"],
                       [(uid, (info or {}).get("display_name")) for uid, info in sorted(joined.items())])
        return

    raise CommandError("no room action given, see `mnotify room --help`")


@command(app, "room", help="Interact with matrix rooms (create, join, invite, …)")
def room_cmd(
    ctx: typer.Context,
    create: bool = typer.Option(False, "--create", "-c", help="Create a new room"),
    direct: bool = typer.Option(False, "--direct", "-d", help="Create a direct room"),
    profile: str = typer.Option(DEFAULT_PROFILE, "--profile", help=f"The room profile [{', '.join(ROOM_PRESETS)}]"),
    invite: bool = typer.Option(False, "--invite", "-i", help="Invite a user to a room"),
    invites: str = typer.Option("", "--invites", help="A comma separated list of users to invite to a room"),
    members: bool = typer.Option(False, "--members", help="Include room members"),
    list_rooms: bool = typer.Option(False, "--list", "-l", help="List the user's rooms"),
    leave: bool = typer.Option(False, "--leave", help="Leave a room"),
    forget: bool = typer.Option(False, "--forget", help="Forget about a room"),
    join: bool = typer.Option(False, "--join", help="Join a room"),
    messages: bool = typer.Option(False, "--messages", "-m", help="List messages of a room"),
    number: int = typer.Option(10, "--number", "-n", help="Number of messages to list"),
):
    run_room(
        options(ctx),
        create=create,
        direct=direct,
        profile=profile,
        invite=invite,
        invites=[u.strip() for u in invites.split(",") if u.strip()],
        members=members,
        list_rooms=list_rooms,
        leave=leave,
        forget=forget,
        join=join,
        messages=messages,
        number=number,
    )
