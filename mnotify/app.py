from __future__ import annotations

import typer

from shared.log import configure_logging
from .options import GlobalOptions

app = typer.Typer(
    name="mnotify",
    help="mnotify: a Matrix command-line client",
    no_args_is_help=True,
    add_completion=False,
    pretty_exceptions_enable=False,
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    user: str = typer.Option("", "--user", "-U", help="Specify the full matrix user id"),
    room: str = typer.Option("", "--room", "-R", help="Specify a room to operate on"),
    json_output: bool = typer.Option(False, "--json", "-J", help="Output JSON if supported"),
    verbose: int = typer.Option(0, "--verbose", "-v", count=True, help="Increase log verbosity"),
):
    """mnotify: a Matrix command-line client"""
    configure_logging(verbose)
    ctx.obj = GlobalOptions(target_room=room, target_user=user, output_json=json_output)
