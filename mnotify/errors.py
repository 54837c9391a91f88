from __future__ import annotations
from typing import Optional


class MnotifyError(Exception):
    """Base class for every error the CLI reports to the user."""
    pass


# Bootstrap-stage errors. Fatal: reported with a remediation hint.

class UserIdentifierError(MnotifyError):
    """Raised when a user id cannot be split into localpart and domain."""
    pass


class DiscoveryError(MnotifyError):
    """Raised when the .well-known lookup fails or returns no homeserver."""
    pass


class ConfigError(MnotifyError):
    """Raised when no usable session file exists."""
    pass


# Leaf-stage errors.

class CommandError(MnotifyError):
    """Raised by a leaf command; reported without a hint."""
    pass


class MatrixError(CommandError):
    """
    A failed client-server or admin API call.

    status is the HTTP status (None when the request never completed),
    errcode the Matrix error code such as M_FORBIDDEN when the server sent one.
    """

    def __init__(self, message: str, status: Optional[int] = None, errcode: Optional[str] = None) -> None:
        super().__init__(message)
        self.status = status
        self.errcode = errcode


BOOTSTRAP_ERRORS = (ConfigError, UserIdentifierError, DiscoveryError)
