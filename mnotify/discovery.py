"""
.well-known client discovery.

Resolves the homeserver (and optionally identity server) base URL for the
domain of a Matrix user id. One attempt per run; no retries.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Tuple

import requests

from shared.log import get_logger
from shared.utils import split_user_id as _split
from .errors import DiscoveryError, UserIdentifierError
from .transport import DEFAULT_TIMEOUT, new_http_session

logger = get_logger(__name__)

WELL_KNOWN_PATH = "/.well-known/matrix/client"


@dataclass(frozen=True)
class DiscoveryResult:
    homeserver: str
    identity_server: Optional[str] = None


def split_user_id(user_id: str) -> Tuple[str, str]:
    """Return (localpart, domain) or raise UserIdentifierError."""
    try:
        return _split(user_id)
    except ValueError as e:
        raise UserIdentifierError(str(e)) from None


def _base_url(section: object) -> Optional[str]:
    if not isinstance(section, dict):
        return None
    url = section.get("base_url")
    if not isinstance(url, str) or not url.strip():
        return None
    return url.strip().rstrip("/")


def discover(domain: str, http: Optional[requests.Session] = None) -> DiscoveryResult:
    """
    Fetch https://<domain>/.well-known/matrix/client.

    Raises DiscoveryError on transport failure, a non-2xx status, a body
    that is not a JSON object, or a missing m.homeserver.base_url.
    """
    http = http or new_http_session()
    url = f"https://{domain}{WELL_KNOWN_PATH}"
    logger.debug("GET %s", url)

    try:
        resp = http.get(url, timeout=DEFAULT_TIMEOUT)
    except requests.RequestException as e:
        raise DiscoveryError(f"well-known lookup for {domain} failed: {e}") from e

    if not 200 <= resp.status_code < 300:
        raise DiscoveryError(f"well-known lookup for {domain} returned HTTP {resp.status_code}")

    try:
        data = resp.json()
    except ValueError:
        raise DiscoveryError(f"well-known response for {domain} is not valid JSON") from None
    if not isinstance(data, dict):
        raise DiscoveryError(f"well-known response for {domain} is not a JSON object")

    homeserver = _base_url(data.get("m.homeserver"))
    if not homeserver:
        raise DiscoveryError(f"well-known response for {domain} has no m.homeserver.base_url")

    result = DiscoveryResult(
        homeserver=homeserver,
        identity_server=_base_url(data.get("m.identity_server")),
    )
    logger.info("Discovered homeserver %s", result.homeserver, extra={"homeserver": result.homeserver})
    return result


def resolve(user_id: str, http: Optional[requests.Session] = None) -> DiscoveryResult:
    """Discovery for the domain of a full user id."""
    _, domain = split_user_id(user_id)
    return discover(domain, http=http)
