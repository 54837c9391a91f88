from __future__ import annotations

import typer

from ..app import app
from ..dispatcher import command, options
from ..options import GlobalOptions
from ..output import emit_fields, emit_json


def show_profile(opts: GlobalOptions) -> None:
    user_id = opts.user_or_self()
    profile = opts.require_client().profile(user_id)
    if opts.output_json:
        emit_json({"user_id": user_id, **profile})
        return
    emit_fields([
        ("UserID", user_id),
        ("DisplayName", profile.get("displayname")),
        ("AvatarURL", profile.get("avatar_url")),
    ])


@command(app, "user", help="View and manage user data (avatar, display name, …)")
def user_cmd(ctx: typer.Context):
    show_profile(options(ctx))
