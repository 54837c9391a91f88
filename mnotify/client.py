from __future__ import annotations
from typing import Any, Dict, List, Optional

import requests

from shared.log import get_logger
from shared.utils import new_txn_id, path_segment
from .discovery import resolve
from .errors import MatrixError
from .session import SessionRecord
from .transport import DEFAULT_TIMEOUT, new_http_session

logger = get_logger(__name__)

CLIENT_V3 = "/_matrix/client/v3"
ADMIN_V1 = "/_synapse/admin/v1"
ADMIN_V2 = "/_synapse/admin/v2"

# Room creation presets keyed by the --profile names the CLI accepts.
ROOM_PRESETS = {
    "trusted-private": "trusted_private_chat",
    "private": "private_chat",
    "public": "public_chat",
}


class MatrixClient:
    """
    Blocking Matrix client-server (and Synapse admin) API client.

    Bound to one homeserver base URL and, once logged in, one user id and
    access token. Every call is attempted exactly once; failures surface
    as MatrixError carrying the HTTP status and Matrix errcode.
    """

    def __init__(
        self,
        homeserver: str,
        user_id: Optional[str] = None,
        access_token: Optional[str] = None,
        http: Optional[requests.Session] = None,
    ) -> None:
        self.homeserver = homeserver.rstrip("/")
        self.user_id = user_id
        self.access_token = access_token
        self.http = http or new_http_session()

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
        auth: bool = True,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> Dict[str, Any]:
        url = f"{self.homeserver}{path}"
        headers = {}
        if auth and self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"

        logger.debug("%s %s", method, path, extra={"homeserver": self.homeserver})
        try:
            resp = self.http.request(
                method, url, params=params, json=body, headers=headers, timeout=timeout
            )
        except requests.RequestException as e:
            raise MatrixError(f"{method} {path} failed: {e}") from e

        try:
            data = resp.json()
        except ValueError:
            data = None

        if resp.status_code >= 400:
            errcode = data.get("errcode") if isinstance(data, dict) else None
            detail = data.get("error") if isinstance(data, dict) else None
            if errcode:
                message = f"{errcode}: {detail or 'HTTP ' + str(resp.status_code)}"
            else:
                message = f"{method} {path} returned HTTP {resp.status_code}"
            raise MatrixError(message, status=resp.status_code, errcode=errcode)

        if not isinstance(data, dict):
            raise MatrixError(f"{method} {path} returned a non-JSON body", status=resp.status_code)
        return data

    # ========== Session ==========

    def login(self, user_id: str, password: str, device_name: str) -> Dict[str, Any]:
        """Password login; on success the client is bound to the new token."""
        localpart = user_id[1:].split(":", 1)[0]
        resp = self._request(
            "POST",
            f"{CLIENT_V3}/login",
            body={
                "type": "m.login.password",
                "identifier": {"type": "m.id.user", "user": localpart},
                "password": password,
                "initial_device_display_name": device_name,
            },
            auth=False,
        )
        if not resp.get("access_token"):
            raise MatrixError("login response did not include an access token")
        self.user_id = resp.get("user_id") or user_id
        self.access_token = resp["access_token"]
        return resp

    def logout(self) -> None:
        self._request("POST", f"{CLIENT_V3}/logout", body={})

    def whoami(self) -> Dict[str, Any]:
        return self._request("GET", f"{CLIENT_V3}/account/whoami")

    def versions(self) -> Dict[str, Any]:
        return self._request("GET", "/_matrix/client/versions", auth=False)

    # ========== Rooms ==========

    def joined_rooms(self) -> List[str]:
        return list(self._request("GET", f"{CLIENT_V3}/joined_rooms").get("joined_rooms", []))

    def joined_members(self, room_id: str) -> Dict[str, Any]:
        resp = self._request("GET", f"{CLIENT_V3}/rooms/{path_segment(room_id)}/joined_members")
        return resp.get("joined", {})

    def create_room(
        self,
        profile: str = "trusted-private",
        direct: bool = False,
        invites: Optional[List[str]] = None,
    ) -> str:
        if profile not in ROOM_PRESETS:
            raise MatrixError(f"unknown room profile {profile!r}")
        body: Dict[str, Any] = {"preset": ROOM_PRESETS[profile], "is_direct": direct}
        if invites:
            body["invite"] = list(invites)
        room_id = self._request("POST", f"{CLIENT_V3}/createRoom", body=body).get("room_id")
        if not room_id:
            raise MatrixError("createRoom response did not include a room_id")
        return room_id

    def invite(self, room_id: str, user_id: str) -> None:
        self._request("POST", f"{CLIENT_V3}/rooms/{path_segment(room_id)}/invite", body={"user_id": user_id})

    def join(self, room_id_or_alias: str) -> str:
        resp = self._request("POST", f"{CLIENT_V3}/join/{path_segment(room_id_or_alias)}", body={})
        return resp.get("room_id", room_id_or_alias)

    def leave(self, room_id: str) -> None:
        self._request("POST", f"{CLIENT_V3}/rooms/{path_segment(room_id)}/leave", body={})

    def forget(self, room_id: str) -> None:
        self._request("POST", f"{CLIENT_V3}/rooms/{path_segment(room_id)}/forget", body={})

    def messages(self, room_id: str, limit: int = 10) -> List[Dict[str, Any]]:
        """Latest `limit` events of a room, oldest first."""
        resp = self._request(
            "GET",
            f"{CLIENT_V3}/rooms/{path_segment(room_id)}/messages",
            params={"dir": "b", "limit": limit},
        )
        return list(reversed(resp.get("chunk", [])))

    def send_message(self, room_id: str, body: str, msgtype: str = "m.text") -> str:
        path = f"{CLIENT_V3}/rooms/{path_segment(room_id)}/send/m.room.message/{new_txn_id()}"
        event_id = self._request("PUT", path, body={"msgtype": msgtype, "body": body}).get("event_id")
        if not event_id:
            raise MatrixError("send response did not include an event_id")
        return event_id

    # ========== Sync & profile ==========

    def sync(self, since: Optional[str] = None, timeout_ms: int = 30000, set_presence: str = "online") -> Dict[str, Any]:
        params: Dict[str, Any] = {"timeout": timeout_ms, "set_presence": set_presence}
        if since:
            params["since"] = since
        return self._request(
            "GET",
            f"{CLIENT_V3}/sync",
            params=params,
            timeout=DEFAULT_TIMEOUT + timeout_ms / 1000.0,
        )

    def profile(self, user_id: str) -> Dict[str, Any]:
        return self._request("GET", f"{CLIENT_V3}/profile/{path_segment(user_id)}")

    # ========== Synapse admin API ==========

    def admin_rooms(self) -> List[Dict[str, Any]]:
        return list(self._request("GET", f"{ADMIN_V1}/rooms").get("rooms", []))

    def admin_room_members(self, room_id: str) -> List[str]:
        return list(self._request("GET", f"{ADMIN_V1}/rooms/{path_segment(room_id)}/members").get("members", []))

    def admin_user(self, user_id: str) -> Dict[str, Any]:
        return self._request("GET", f"{ADMIN_V2}/users/{path_segment(user_id)}")

    def admin_user_devices(self, user_id: str) -> List[Dict[str, Any]]:
        return list(self._request("GET", f"{ADMIN_V2}/users/{path_segment(user_id)}/devices").get("devices", []))

    def admin_whois(self, user_id: str) -> Dict[str, Any]:
        return self._request("GET", f"{ADMIN_V1}/whois/{path_segment(user_id)}")

    def admin_server_version(self) -> Dict[str, Any]:
        return self._request("GET", f"{ADMIN_V1}/server_version")


def create_client(session: SessionRecord, http: Optional[requests.Session] = None) -> MatrixClient:
    """
    Build the authenticated client for a stored session.

    Resolves the homeserver via .well-known discovery on the session's
    user id. Propagates UserIdentifierError and DiscoveryError. The token
    is not checked here; the first API call that uses it will fail if it
    is stale.
    """
    http = http or new_http_session()
    discovered = resolve(session.user_id, http=http)
    logger.debug("Creating client", extra={"user_id": session.user_id, "homeserver": discovered.homeserver})
    return MatrixClient(
        discovered.homeserver,
        user_id=session.user_id,
        access_token=session.access_token,
        http=http,
    )
