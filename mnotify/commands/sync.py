"""
Event streaming over the /sync long-poll.

The first response only fixes the stream position; every later batch's
timeline events are printed as they arrive. The loop runs until the user
interrupts it or a sync request fails.
"""

from __future__ import annotations
from typing import Any, Dict, Iterator, Optional, Tuple

import typer

from shared.log import get_logger
from ..app import app
from ..client import MatrixClient
from ..dispatcher import command, options
from ..options import GlobalOptions
from ..output import emit_json_line

logger = get_logger(__name__)

DEFAULT_SYNC_TIMEOUT_MS = 30000


def timeline_events(batch: Dict[str, Any]) -> Iterator[Tuple[str, Dict[str, Any]]]:
    rooms = (batch.get("rooms") or {}).get("join") or {}
    for room_id, room in rooms.items():
        for event in (room.get("timeline") or {}).get("events") or []:
            yield room_id, event


def stream_events(
    client: MatrixClient,
    timeout_ms: int = DEFAULT_SYNC_TIMEOUT_MS,
    presence: bool = False,
    since: Optional[str] = None,
) -> Iterator[Tuple[str, Dict[str, Any]]]:
    set_presence = "online" if presence else "offline"
    if since is None:
        since = client.sync(timeout_ms=0, set_presence=set_presence).get("next_batch")
        logger.debug("Initial sync position %s", since)
    while True:
        batch = client.sync(since=since, timeout_ms=timeout_ms, set_presence=set_presence)
        since = batch.get("next_batch", since)
        yield from timeline_events(batch)


def format_event(room_id: str, event: Dict[str, Any]) -> str:
    content = event.get("content") or {}
    sender = event.get("sender", "?")
    if event.get("type") == "m.room.message" and "body" in content:
        return f"{room_id} {sender}: {content['body']}"
    return f"{room_id} {sender}: <{event.get('type', 'unknown')}>"


def run_sync(opts: GlobalOptions, timeout_ms: int, presence: bool) -> None:
    client = opts.require_client()
    try:
        for room_id, event in stream_events(client, timeout_ms=timeout_ms, presence=presence):
            if opts.output_json:
                emit_json_line({"room_id": room_id, **event})
            else:
                typer.echo(format_event(room_id, event))
    except KeyboardInterrupt:
        logger.info("Sync interrupted")


@command(app, "sync", help="Stream matrix events to the terminal")
def sync_cmd(
    ctx: typer.Context,
    presence: bool = typer.Option(False, "--presence", "-p", help="Set presence to online"),
    timeout: int = typer.Option(DEFAULT_SYNC_TIMEOUT_MS, "--timeout", "-t", min=0, help="Matrix sync timeout in ms"),
):
    run_sync(options(ctx), timeout, presence)
