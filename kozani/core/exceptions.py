"""
Kozani Exceptions

Error types shared by the backend client and the authentication layer.
"""

from typing import Optional


class KozaniError(Exception):
    """Base exception for all Kozani errors."""
    pass


class BackendError(KozaniError):
    """Raised when the Kozani backend cannot serve a chat request."""
    pass


class BackendStatusError(BackendError):
    """The backend answered with a non-success HTTP status."""

    def __init__(self, status_code: int, reason: Optional[str] = None):
        self.status_code = status_code
        self.reason = reason or ""
        super().__init__(f"API error: {status_code} {self.reason}".rstrip())


class BackendUnavailableError(BackendError):
    """The backend could not be reached (connection refused, DNS, timeout)."""
    pass


class RequestCancelledError(KozaniError):
    """The request was aborted through its cancellation token."""
    pass


class AuthenticationError(KozaniError):
    """GitHub sign-in failed or returned an unusable token."""
    pass
