from __future__ import annotations
import time
import uuid
from typing import Tuple
from urllib.parse import quote

# ========================================
#           IDENTIFIER HELPERS
# ========================================
"""
Helpers the client uses to validate Matrix identifiers before any
network call is made, and to build URL path segments from them.
"""


def split_user_id(user_id: str) -> Tuple[str, str]:
    """
    Split a Matrix user id '@localpart:domain' into (localpart, domain).

    - Must start with '@'.
    - The first ':' separates localpart from domain, so 'example.org:8448'
      stays intact as the domain.
    - Both parts must be non-empty.

    Raises ValueError when any of the above does not hold.
    """
    if not isinstance(user_id, str) or not user_id.startswith("@"):
        raise ValueError(f"user id must start with '@': {user_id!r}")
    localpart, sep, domain = user_id[1:].partition(":")
    if not sep:
        raise ValueError(f"user id is missing ':' separator: {user_id!r}")
    if not localpart:
        raise ValueError(f"user id has an empty localpart: {user_id!r}")
    if not domain:
        raise ValueError(f"user id has an empty domain: {user_id!r}")
    return localpart, domain


def path_segment(value: str) -> str:
    """
    Percent-encode a single URL path segment. Room ids ('!abc:hs'),
    aliases ('#room:hs') and user ids all contain reserved characters.
    """
    return quote(value, safe="")


def new_txn_id() -> str:
    """
    Transaction id for idempotent PUT /send requests; unique per process.
    """
    return f"mnotify{int(time.time() * 1000)}{uuid.uuid4().hex[:8]}"
