"""
Kozani UI Module
Terminal sinks and the sidebar webview template.
"""

from .sidebar import SidebarViewProvider, render_sidebar_html
from .terminal import TerminalProgress, TerminalResponseStream

__all__ = [
    "SidebarViewProvider",
    "render_sidebar_html",
    "TerminalProgress",
    "TerminalResponseStream",
]
