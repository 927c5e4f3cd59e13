"""
Base Language Model Provider Interface

Abstract base class for providers registered with the host's language
model registry.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from kozani.core.cancellation import CancellationToken
from kozani.core.messages import LanguageModelChatMessage


@dataclass
class ModelInfo:
    """Describes one model a provider exposes to the host."""
    id: str
    name: str
    family: str
    version: str
    max_input_tokens: int
    max_output_tokens: int
    capabilities: Dict[str, Any] = field(default_factory=dict)
    is_default: bool = False
    is_user_selectable: bool = True


class BaseLanguageModelProvider(ABC):
    """
    Interface the host calls to list models, run chat requests and
    count tokens.
    """

    @abstractmethod
    def provide_language_model_chat_information(
        self,
        options: Optional[Dict[str, Any]],
        token: Optional[CancellationToken],
    ) -> List[ModelInfo]:
        """
        List the models this provider serves.

        Args:
            options: Host query options (unused by most providers)
            token: Cancellation token

        Returns:
            Model descriptions
        """
        pass

    @abstractmethod
    def provide_language_model_chat_response(
        self,
        model: ModelInfo,
        messages: Sequence[LanguageModelChatMessage],
        options: Optional[Dict[str, Any]],
        progress: Any,
        token: Optional[CancellationToken],
    ) -> None:
        """
        Answer a chat request by reporting response parts to ``progress``.

        Args:
            model: The model the host selected
            messages: Conversation so far
            options: Host request options
            progress: Sink with a ``report(part)`` method
            token: Cancellation token
        """
        pass

    @abstractmethod
    def provide_token_count(
        self,
        model: ModelInfo,
        text: Union[str, LanguageModelChatMessage],
        token: Optional[CancellationToken],
    ) -> int:
        """Estimate how many tokens ``text`` takes for ``model``."""
        pass
