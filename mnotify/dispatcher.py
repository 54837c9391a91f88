"""
Command dispatch for the mnotify command tree.

Every leaf is registered through command(), which declares whether the
leaf needs a logged-in session. The command class checks that flag and
runs the bootstrap (load session -> discover homeserver -> build client)
before the handler. Bootstrap failures are fatal with a hint; a
CommandError from the handler is printed and mapped to exit status 1.
"""

from __future__ import annotations
from typing import Any, Callable, Dict, List, TypeVar

import click
import typer
from rich.console import Console
from rich.markup import escape
from typer.core import TyperCommand

from shared.log import get_logger
from .client import create_client
from .errors import BOOTSTRAP_ERRORS, CommandError
from .options import GlobalOptions
from .session import load_session

logger = get_logger(__name__)
err_console = Console(stderr=True, soft_wrap=True)

LOGIN_HINT = "create a valid login"

# Leaf-level copies of the root flags, so `mnotify send -R ROOM -m hi` works
# as well as `mnotify -R ROOM send -m hi`. A value given on the leaf wins.
_LEAF_USER = "leaf_target_user"
_LEAF_ROOM = "leaf_target_room"
_LEAF_JSON = "leaf_output_json"

F = TypeVar("F", bound=Callable[..., object])


def report_error(exc: BaseException) -> None:
    err_console.print(f"[bold red]Error:[/] {escape(str(exc))}")


def bootstrap(opts: GlobalOptions) -> None:
    """
    Load the session and build the authenticated client into `opts`.

    Exits the process with status 1 on ConfigError, UserIdentifierError
    or DiscoveryError; the matched handler is never called in that case.
    """
    try:
        session = load_session()
        client = create_client(session)
    except BOOTSTRAP_ERRORS as e:
        logger.debug("Bootstrap failed: %s", e)
        report_error(e)
        err_console.print(LOGIN_HINT)
        raise typer.Exit(code=1)
    opts.populate(session, client)


def global_flag_options() -> List[click.Option]:
    return [
        click.Option(["--user", "-U", _LEAF_USER], default=None, help="Specify the full matrix user id"),
        click.Option(["--room", "-R", _LEAF_ROOM], default=None, help="Specify a room to operate on"),
        click.Option(["--json", "-J", _LEAF_JSON], is_flag=True, default=False, help="Output JSON if supported"),
    ]


def merge_global_flags(opts: GlobalOptions, params: Dict[str, Any]) -> None:
    """Move leaf-level root flags out of `params` into `opts`."""
    user = params.pop(_LEAF_USER, None)
    room = params.pop(_LEAF_ROOM, None)
    if params.pop(_LEAF_JSON, False):
        opts.output_json = True
    if user is not None:
        opts.target_user = user
    if room is not None:
        opts.target_room = room


class LeafCommand(TyperCommand):
    """Leaf that needs the bootstrapped client and session."""

    requires_session = True

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.params.extend(global_flag_options())

    def invoke(self, ctx: click.Context):
        opts = ctx.ensure_object(GlobalOptions)
        merge_global_flags(opts, ctx.params)
        if self.requires_session:
            bootstrap(opts)
        try:
            return super().invoke(ctx)
        except CommandError as e:
            logger.debug("%s failed: %s", ctx.info_name, e)
            report_error(e)
            raise typer.Exit(code=1)


class SessionlessCommand(LeafCommand):
    """Leaf that runs before any session exists (login)."""

    requires_session = False


def command(app: typer.Typer, name: str, *, help: str, requires_session: bool = True) -> Callable[[F], F]:
    """Register a leaf on `app`, declaring whether it needs a session."""
    cls = LeafCommand if requires_session else SessionlessCommand
    return app.command(name, help=help, cls=cls)


def options(ctx: typer.Context) -> GlobalOptions:
    """The GlobalOptions stored on the context by the root callback."""
    return ctx.ensure_object(GlobalOptions)
