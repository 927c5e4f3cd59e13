# Core modules
from .backend_client import BackendClient, stream_from_backend
from .cancellation import CancellationToken, CancellationTokenSource
from .chat_participant import KozaniChatParticipant
from .exceptions import (
    AuthenticationError,
    BackendError,
    BackendStatusError,
    BackendUnavailableError,
    KozaniError,
    RequestCancelledError,
)

__all__ = [
    "BackendClient",
    "stream_from_backend",
    "CancellationToken",
    "CancellationTokenSource",
    "KozaniChatParticipant",
    "AuthenticationError",
    "BackendError",
    "BackendStatusError",
    "BackendUnavailableError",
    "KozaniError",
    "RequestCancelledError",
]
