# kozani/ui/terminal.py
"""
Terminal sinks for chat output.

TerminalResponseStream plays the role of the host's chat response stream:
markdown chunks are written as they arrive, progress notices on their own
dimmed line. Everything written is also kept so the CLI can record the
assistant's turn in the conversation history.
"""

import sys
import threading
from typing import List, Optional, TextIO

from kozani.core.messages import LanguageModelTextPart
from kozani.ui.colors import AI_FG, DIM, MUTED_FG, RESET, supports_color


class TerminalResponseStream:
    """Chat response sink writing to a text stream."""

    def __init__(self, out: Optional[TextIO] = None, color: Optional[bool] = None):
        self.out = out or sys.stdout
        self.color = supports_color(self.out) if color is None else color
        self.parts: List[str] = []
        self._lock = threading.Lock()
        self._mid_line = False

    def markdown(self, text: str) -> None:
        with self._lock:
            self.parts.append(text)
            self._write(text, AI_FG)
            self._mid_line = not text.endswith("\n")

    def progress(self, text: str) -> None:
        with self._lock:
            if self._mid_line:
                self.out.write("\n")
            self._write(f"⚡ {text}\n", f"{DIM}{MUTED_FG}")
            self._mid_line = False

    def finish(self) -> None:
        """Terminate a partially written line."""
        with self._lock:
            if self._mid_line:
                self.out.write("\n")
                self._mid_line = False
            self.out.flush()

    @property
    def text(self) -> str:
        return "".join(self.parts)

    def _write(self, text: str, color: str) -> None:
        if self.color:
            self.out.write(f"{color}{text}{RESET}")
        else:
            self.out.write(text)
        self.out.flush()


class TerminalProgress:
    """``report(part)`` sink for language-model responses."""

    def __init__(self, out: Optional[TextIO] = None):
        self.out = out or sys.stdout
        self.parts: List[str] = []

    def report(self, part) -> None:
        value = part.value if isinstance(part, LanguageModelTextPart) else str(part)
        self.parts.append(value)
        self.out.write(value)
        self.out.flush()

    @property
    def text(self) -> str:
        return "".join(self.parts)
