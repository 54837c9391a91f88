from __future__ import annotations
from typing import Optional

import click
import typer

from shared.log import get_logger
from ..app import app
from ..dispatcher import command, options
from ..errors import CommandError
from ..options import GlobalOptions
from ..output import emit_json

logger = get_logger(__name__)


def send_message(opts: GlobalOptions, message: Optional[str], notice: bool = False, emote: bool = False) -> str:
    """Send `message` (or stdin when None) to --room and return the event id."""
    if notice and emote:
        raise CommandError("--notice and --emote are mutually exclusive")
    client = opts.require_client()
    room_id = opts.require_room()

    body = message if message is not None else click.get_text_stream("stdin").read()
    if not body.strip():
        raise CommandError("refusing to send an empty message")

    msgtype = "m.notice" if notice else "m.emote" if emote else "m.text"
    event_id = client.send_message(room_id, body, msgtype=msgtype)
    logger.info("Sent %s", msgtype, extra={"room_id": room_id})
    return event_id


@command(app, "send", help="Send messages to a room")
def send_cmd(
    ctx: typer.Context,
    message: Optional[str] = typer.Option(None, "--message", "-m", help="Send this message instead of stdin"),
    notice: bool = typer.Option(False, "--notice", help="Send as m.notice"),
    emote: bool = typer.Option(False, "--emote", help="Send as m.emote"),
):
    opts = options(ctx)
    event_id = send_message(opts, message, notice=notice, emote=emote)
    if opts.output_json:
        emit_json({"event_id": event_id, "room_id": opts.target_room})
    else:
        typer.echo(event_id)
