"""
Kozani Language Model Provider

Serves the single ``kozani-1`` model by forwarding the host's messages to
the Kozani backend and reporting each streamed chunk as a text part.
"""

import logging
import math
from typing import Any, Dict, List, Optional, Sequence, Union

from kozani.core.ai.base import BaseLanguageModelProvider, ModelInfo
from kozani.core.backend_client import BackendClient
from kozani.core.cancellation import CancellationToken
from kozani.core.exceptions import KozaniError, RequestCancelledError
from kozani.core.messages import (
    LanguageModelChatMessage,
    LanguageModelTextPart,
    text_of,
    to_backend_messages,
)

logger = logging.getLogger(__name__)

SIGN_IN_MESSAGE = "Please sign in with GitHub to use Kozani."

KOZANI_MODEL = ModelInfo(
    id="kozani-1",
    name="Kozani",
    family="kozani",
    version="1.0",
    max_input_tokens=128000,
    max_output_tokens=16384,
    capabilities={},
    is_default=True,
    is_user_selectable=True,
)


def backend_unavailable_message(api_url: str) -> str:
    return (
        f"Hello! I'm Kozani. The backend at {api_url} is not available yet.\n\n"
        "To complete setup, start your backend server."
    )


class KozaniModelProvider(BaseLanguageModelProvider):
    """Language model provider registered under the ``kozani`` vendor."""

    def __init__(self, auth, backend: BackendClient):
        """
        Args:
            auth: Identity broker with ``get_session(scopes, create_if_none)``
            backend: Client for the Kozani chat endpoint
        """
        self.auth = auth
        self.backend = backend

    def provide_language_model_chat_information(
        self,
        options: Optional[Dict[str, Any]],
        token: Optional[CancellationToken],
    ) -> List[ModelInfo]:
        logger.info("Providing model information")
        return [KOZANI_MODEL]

    def provide_language_model_chat_response(
        self,
        model: ModelInfo,
        messages: Sequence[LanguageModelChatMessage],
        options: Optional[Dict[str, Any]],
        progress: Any,
        token: Optional[CancellationToken],
    ) -> None:
        logger.info(f"Language model request received for {model.id}")

        session = self.auth.get_session(create_if_none=False)
        if session is None:
            progress.report(LanguageModelTextPart(SIGN_IN_MESSAGE))
            return

        try:
            self.backend.stream_chat(
                to_backend_messages(messages),
                session.access_token,
                token,
                lambda chunk: progress.report(LanguageModelTextPart(chunk)),
            )
        except RequestCancelledError:
            logger.info("Language model request cancelled")
        except (KozaniError, ValueError) as e:
            logger.warning(f"Backend not available, returning placeholder: {e}")
            progress.report(LanguageModelTextPart(backend_unavailable_message(self.backend.api_url)))

    def provide_token_count(
        self,
        model: ModelInfo,
        text: Union[str, LanguageModelChatMessage],
        token: Optional[CancellationToken],
    ) -> int:
        # Roughly four characters per token.
        return math.ceil(len(text_of(text)) / 4)
