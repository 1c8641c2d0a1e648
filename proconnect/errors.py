"""
Exceptions raised between the remote boundary and the stores.

Stores catch ProConnectError and surface str(exc) through their `error`
field; nothing below ever reaches the presentation layer as an exception.
"""
from typing import Optional


class ProConnectError(Exception):
    """Base class for every failure a store knows how to report"""
    pass


class RemoteError(ProConnectError):
    """Raised when the backend rejects a call or cannot be reached"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class InvalidCredentialsError(RemoteError):
    """Raised when sign-in is rejected for bad email/password"""
    pass


class RecordParseError(ProConnectError):
    """Raised when a row from the backend does not match its record shape"""
    pass


class NotAuthenticatedError(ProConnectError):
    """Raised when an action needs a signed-in account and there is none"""

    def __init__(self, message: str = "User not authenticated"):
        super().__init__(message)


class ValidationFailedError(ProConnectError):
    """Raised when a local precondition fails before any network call"""
    pass


class InvalidTransitionError(ProConnectError):
    """Raised when an invalid connection status transition is attempted"""
    pass


class StorageError(ProConnectError):
    """Raised when local storage cannot be read or written"""
    pass
