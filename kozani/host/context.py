"""
Extension Context

Disposable handles and the per-activation context passed to ``activate``.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class Disposable:
    """Wraps a cleanup callback that runs at most once."""

    def __init__(self, on_dispose: Callable[[], None]):
        self._on_dispose: Optional[Callable[[], None]] = on_dispose

    def dispose(self) -> None:
        callback, self._on_dispose = self._on_dispose, None
        if callback is not None:
            callback()

    @property
    def is_disposed(self) -> bool:
        return self._on_dispose is None


@dataclass
class ExtensionContext:
    """
    State handed to an extension when it is activated.

    Everything pushed onto ``subscriptions`` is disposed when the
    extension is deactivated.
    """
    extension_path: Path
    subscriptions: List[Disposable] = field(default_factory=list)

    def as_absolute_path(self, *parts: str) -> Path:
        """Resolve a path relative to the extension's install directory."""
        return Path(self.extension_path).joinpath(*parts)

    def dispose_all(self) -> None:
        """Dispose subscriptions in reverse registration order."""
        while self.subscriptions:
            disposable = self.subscriptions.pop()
            try:
                disposable.dispose()
            except Exception as e:
                logger.error(f"Failed to dispose subscription: {e}", exc_info=True)
