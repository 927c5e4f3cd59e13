"""
Host Layer

In-process registries standing in for the editor's extension API.
"""

from kozani.host.context import Disposable, ExtensionContext
from kozani.host.registry import (
    ChatParticipant,
    ExtensionHost,
    WebviewView,
)

__all__ = [
    "Disposable",
    "ExtensionContext",
    "ChatParticipant",
    "ExtensionHost",
    "WebviewView",
]
