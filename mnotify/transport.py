from __future__ import annotations
import os

import requests

from shared.log import get_logger

logger = get_logger(__name__)

# Seconds; applies to every request except the sync long-poll, which adds
# its own server-side timeout on top.
DEFAULT_TIMEOUT = 30.0

USER_AGENT = "mnotify/0.1.0"


def new_http_session() -> requests.Session:
    """
    HTTP session shared by discovery and the Matrix client.

    HTTPS_PROXY and friends are honoured by requests itself; MN_INSECURE
    turns off certificate verification for test homeservers.
    """
    session = requests.Session()
    session.headers["User-Agent"] = USER_AGENT
    if os.getenv("MN_INSECURE"):
        logger.warning("MN_INSECURE is set; TLS certificates are not verified")
        session.verify = False
    return session
