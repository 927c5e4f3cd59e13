"""
Cancellation

One-shot cancellation signal shared between the host UI and an in-flight
backend request. The host keeps the source; the request only sees the token.
"""

import logging
import threading
from typing import Callable, List

from kozani.host.context import Disposable

logger = logging.getLogger(__name__)


class CancellationToken:
    """Read-only view of a cancellation signal."""

    def __init__(self):
        self._lock = threading.Lock()
        self._cancelled = False
        self._listeners: List[Callable[[], None]] = []

    @property
    def is_cancellation_requested(self) -> bool:
        return self._cancelled

    def on_cancellation_requested(self, listener: Callable[[], None]) -> Disposable:
        """
        Register a listener fired once when cancellation is requested.

        A listener registered after cancellation runs immediately.

        Returns:
            Disposable that unregisters the listener
        """
        with self._lock:
            if not self._cancelled:
                self._listeners.append(listener)
                return Disposable(lambda: self._remove(listener))
        listener()
        return Disposable(lambda: None)

    def _remove(self, listener: Callable[[], None]) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _cancel(self) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            listeners, self._listeners = self._listeners, []

        for listener in listeners:
            try:
                listener()
            except Exception as e:
                logger.error(f"Cancellation listener failed: {e}", exc_info=True)


class CancellationTokenSource:
    """Owner side of a cancellation token."""

    def __init__(self):
        self.token = CancellationToken()

    def cancel(self) -> None:
        """Request cancellation. Calling it again has no effect."""
        self.token._cancel()

    def dispose(self) -> None:
        with self.token._lock:
            self.token._listeners.clear()


# Token that is never cancelled, for callers without a UI to cancel from.
NONE_TOKEN = CancellationToken()
