from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

from .errors import CommandError

if TYPE_CHECKING:
    from .client import MatrixClient
    from .session import SessionRecord


@dataclass
class GlobalOptions:
    """
    Flags shared by every subcommand plus the handles bootstrap produces.

    Built once by the root callback and stored as the click context
    object; handlers receive it explicitly.
    """
    target_room: str = ""
    target_user: str = ""
    output_json: bool = False
    client: Optional["MatrixClient"] = None
    session: Optional["SessionRecord"] = None

    def populate(self, session: "SessionRecord", client: "MatrixClient") -> None:
        """Attach the bootstrap results. May only happen once per run."""
        if self.session is not None or self.client is not None:
            raise RuntimeError("global options were already populated")
        self.session = session
        self.client = client

    def require_client(self) -> "MatrixClient":
        if self.client is None:
            raise CommandError("this command needs a logged-in session")
        return self.client

    def require_room(self) -> str:
        if not self.target_room:
            raise CommandError("no room given, use -R/--room")
        return self.target_room

    def require_user(self) -> str:
        if not self.target_user:
            raise CommandError("no user given, use -U/--user")
        return self.target_user

    def user_or_self(self) -> str:
        """The --user flag, falling back to the logged-in user."""
        if self.target_user:
            return self.target_user
        if self.session is not None:
            return self.session.user_id
        raise CommandError("no user given, use -U/--user")
