# kozani/ui/colors.py
"""
Kozani terminal palette.
ANSI color codes for the chat transcript and status lines.
"""

import os
import sys
from typing import TextIO

# ═══════════════════════════════════════════════════════════════
# PALETTE
# ═══════════════════════════════════════════════════════════════

BRIGHT_MAGENTA = "\033[38;5;201m"
ELECTRIC_CYAN = "\033[38;5;51m"
MID_GRAY = "\033[38;5;250m"
GLITCH_RED = "\033[38;5;196m"
GLITCH_GREEN = "\033[38;5;46m"
NEON_YELLOW = "\033[38;5;226m"

BOLD = "\033[1m"
DIM = "\033[2m"
RESET = "\033[0m"

# ═══════════════════════════════════════════════════════════════
# SEMANTIC COLOR ROLES
# ═══════════════════════════════════════════════════════════════

ACCENT_FG = ELECTRIC_CYAN         # Prompts / labels
AI_FG = BRIGHT_MAGENTA            # Streamed answer text
MUTED_FG = MID_GRAY               # Progress / hints
ERROR_FG = GLITCH_RED
SUCCESS_FG = GLITCH_GREEN
WARNING_FG = NEON_YELLOW

CHAT_LABEL_USER = f"{BOLD}{ELECTRIC_CYAN}"


def supports_color(stream: TextIO = sys.stdout) -> bool:
    """Honour NO_COLOR and only colour real terminals."""
    if os.environ.get("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def colorize(text: str, color: str, style: str = "", enabled: bool = True) -> str:
    """Apply color and optional style to text"""
    if not enabled:
        return text
    return f"{style}{color}{text}{RESET}"
