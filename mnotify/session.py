"""
Persistent session storage for mnotify.

The session file is a YAML mapping holding at least the user id and the
access token issued by `mnotify login`:

    user_id: "@alice:example.org"
    access_token: "syt_..."
    device_id: "ABCDEFGH"
    homeserver: "https://matrix.example.org"

Writes are atomic (temp file + rename) and the file is created 0600
since it carries a bearer token.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from shared.log import get_logger
from .errors import ConfigError

logger = get_logger(__name__)

CONFIG_FILENAME = "config.yaml"


@dataclass(frozen=True)
class SessionRecord:
    user_id: str
    access_token: str
    device_id: Optional[str] = None
    homeserver: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


def config_path() -> Path:
    """
    Location of the session file.

    MNOTIFY_CONFIG names the file directly; otherwise it lives under
    $XDG_CONFIG_HOME/mnotify (default ~/.config/mnotify).
    """
    explicit = os.getenv("MNOTIFY_CONFIG")
    if explicit:
        return Path(explicit).expanduser()
    base = os.getenv("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base).expanduser() / "mnotify" / CONFIG_FILENAME


def session_exists(path: Optional[Path] = None) -> bool:
    return (path or config_path()).exists()


def load_session(path: Optional[Path] = None) -> SessionRecord:
    """
    Read the persisted session.

    Raises:
        ConfigError: the file is missing, unreadable, not a YAML mapping,
            or lacks user_id / access_token
    """
    path = path or config_path()
    if not path.exists():
        raise ConfigError(f"no session found at {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"could not read {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path} does not contain a session mapping")

    fields = {}
    for key in ("user_id", "access_token"):
        value = data.get(key)
        if not isinstance(value, str) or not value:
            raise ConfigError(f"{path} is missing '{key}'")
        fields[key] = value
    for key in ("device_id", "homeserver"):
        value = data.get(key)
        fields[key] = str(value) if value else None

    logger.debug("Loaded session from %s", path, extra={"user_id": fields["user_id"]})
    return SessionRecord(**fields)


def save_session(record: SessionRecord, path: Optional[Path] = None) -> Path:
    """Atomically write the session file and return its path."""
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(
        prefix=f"{path.stem}_",
        suffix=".yaml.tmp",
        dir=path.parent,
    )

    try:
        os.chmod(tmp_path, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as tmp:
            yaml.safe_dump(record.to_dict(), tmp, default_flow_style=False, sort_keys=True)
            tmp.flush()
            os.fsync(tmp.fileno())

        # Atomic rename
        os.replace(tmp_path, path)
        logger.debug("Saved session to %s", path)

    except Exception as e:
        logger.error(f"Failed to write {path}: {e}")
        # Clean up temp file on error
        if os.path.exists(tmp_path):
            try:
                os.remove(tmp_path)
            except OSError:
                pass
        raise

    return path


def delete_session(path: Optional[Path] = None) -> bool:
    """Remove the session file. Returns False if there was none."""
    path = path or config_path()
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    logger.debug("Removed session %s", path)
    return True
