"""
Host Registries

Minimal in-process stand-in for the editor's contribution points:
commands, chat participants, language-model providers and webview views.

Every ``register_*`` call returns a Disposable that removes the
registration again, so an ExtensionContext can tear everything down.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from kozani.host.context import Disposable

logger = logging.getLogger(__name__)


class _Registry:
    """Id -> item map shared by the concrete registries."""

    kind = "item"

    def __init__(self):
        self._items: Dict[str, Any] = {}

    def _add(self, item_id: str, item: Any) -> Disposable:
        if not item_id:
            raise ValueError(f"{self.kind} id must not be empty")
        if item_id in self._items:
            raise ValueError(f"{self.kind} already registered: {item_id}")
        self._items[item_id] = item
        logger.info(f"Registered {self.kind}: {item_id}")
        return Disposable(lambda: self._remove(item_id, item))

    def _remove(self, item_id: str, item: Any) -> None:
        if self._items.get(item_id) is item:
            del self._items[item_id]
            logger.info(f"Unregistered {self.kind}: {item_id}")

    def get(self, item_id: str) -> Optional[Any]:
        return self._items.get(item_id)

    def ids(self) -> List[str]:
        return list(self._items.keys())

    def __contains__(self, item_id: str) -> bool:
        return item_id in self._items


class CommandRegistry(_Registry):
    kind = "command"

    def register_command(self, command_id: str, callback: Callable[..., Any]) -> Disposable:
        return self._add(command_id, callback)

    def execute_command(self, command_id: str, *args: Any) -> Any:
        """
        Run a registered command.

        Raises:
            KeyError: If no command is registered under ``command_id``
        """
        callback = self.get(command_id)
        if callback is None:
            raise KeyError(f"Command not found: {command_id}")
        logger.debug(f"Executing command: {command_id}")
        return callback(*args)


@dataclass
class ChatParticipant:
    """A registered chat handler plus its presentation attributes."""
    id: str
    handler: Callable[..., Any]
    icon_path: Optional[Path] = None
    disposable: Optional[Disposable] = field(default=None, repr=False)

    def dispose(self) -> None:
        if self.disposable is not None:
            self.disposable.dispose()


class ChatRegistry(_Registry):
    kind = "chat participant"

    def create_chat_participant(self, participant_id: str, handler: Callable[..., Any]) -> ChatParticipant:
        participant = ChatParticipant(id=participant_id, handler=handler)
        participant.disposable = self._add(participant_id, participant)
        return participant


class LanguageModelRegistry(_Registry):
    kind = "language model provider"

    def register_language_model_chat_provider(self, vendor: str, provider: Any) -> Disposable:
        return self._add(vendor, provider)

    def select_chat_models(self, vendor: Optional[str] = None) -> List[Any]:
        """List model infos from every provider, or from one vendor."""
        models = []
        for provider_vendor, provider in self._items.items():
            if vendor and provider_vendor != vendor:
                continue
            models.extend(provider.provide_language_model_chat_information({}, None))
        return models


@dataclass
class WebviewView:
    """The surface a webview view provider renders into."""
    view_type: str
    title: str = ""
    html: str = ""
    enable_scripts: bool = False


class WindowRegistry(_Registry):
    kind = "webview view provider"

    def __init__(self, message_sink: Optional[Callable[[str], None]] = None):
        super().__init__()
        self._message_sink = message_sink
        self.messages: List[str] = []

    def register_webview_view_provider(self, view_id: str, provider: Any) -> Disposable:
        return self._add(view_id, provider)

    def resolve_webview_view(self, view_id: str) -> WebviewView:
        provider = self.get(view_id)
        if provider is None:
            raise KeyError(f"Webview view not found: {view_id}")
        view = WebviewView(view_type=view_id)
        provider.resolve_webview_view(view)
        return view

    def show_information_message(self, message: str) -> None:
        self.messages.append(message)
        logger.info(message)
        if self._message_sink is not None:
            self._message_sink(message)


class ExtensionHost:
    """Bundles the registries an extension sees during activation."""

    def __init__(self, message_sink: Optional[Callable[[str], None]] = None):
        self.commands = CommandRegistry()
        self.chat = ChatRegistry()
        self.lm = LanguageModelRegistry()
        self.window = WindowRegistry(message_sink=message_sink)
