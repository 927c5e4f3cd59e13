"""
Kozani Chat Participant

Handles ``@kozani`` requests: signs the user in through GitHub, streams
the backend's answer into the response as markdown, and falls back to a
setup guide when the backend cannot be reached.
"""

import logging
from typing import Optional

from kozani.core.backend_client import BackendClient
from kozani.core.cancellation import CancellationToken
from kozani.core.exceptions import KozaniError, RequestCancelledError
from kozani.core.messages import ChatContext, ChatRequest, ChatResult

logger = logging.getLogger(__name__)

PARTICIPANT_ID = "kozani.chat"
ICON_PATH = ("media", "icon.svg")

AUTH_REQUIRED_MARKDOWN = (
    "⚠️ **Authentication required**\n\n"
    "Please sign in with GitHub to use Kozani."
)
CANCELLED_MARKDOWN = "\n\n*Request cancelled*"


class KozaniChatParticipant:
    """
    Callable chat handler registered as ``kozani.chat``.

    The response object must offer ``markdown(text)`` and ``progress(text)``.
    """

    def __init__(self, auth, backend: BackendClient):
        self.auth = auth
        self.backend = backend

    def __call__(
        self,
        request: ChatRequest,
        context: Optional[ChatContext],
        response,
        token: Optional[CancellationToken],
    ) -> ChatResult:
        logger.info(f"Chat participant request: {request.prompt!r}")

        session = self.auth.get_session(create_if_none=True)
        if session is None:
            response.markdown(AUTH_REQUIRED_MARKDOWN)
            return ChatResult(metadata={"title": "Auth Required"})

        response.progress("Thinking...")

        context = context or ChatContext()
        status = "ok"
        try:
            self.backend.stream_chat(
                context.to_messages(request.prompt),
                session.access_token,
                token,
                response.markdown,
            )
        except RequestCancelledError:
            response.markdown(CANCELLED_MARKDOWN)
            status = "cancelled"
        except (KozaniError, ValueError) as e:
            logger.warning(f"Backend not available, showing setup help: {e}")
            self._render_setup_help(response, session.account.label, request.prompt)
            status = "unavailable"

        return ChatResult(metadata={"title": "Kozani Chat", "status": status})

    def _render_setup_help(self, response, label: str, prompt: str) -> None:
        api_url = self.backend.api_url
        response.markdown(f"👋 Hello **{label}**!\n\n")
        response.markdown(f"You asked: *{prompt}*\n\n")
        response.markdown("---\n\n")
        response.markdown("✅ **GitHub Auth working!**\n\n")
        response.markdown("Your GitHub token is ready to send to the Kozani backend.\n\n")
        response.markdown(f"The backend at `{api_url}` could not be reached. To complete the setup:\n")
        response.markdown(f"1. Start your backend server at `{api_url}`\n")
        response.markdown("2. Implement the `POST /api/chat` endpoint\n")
        response.markdown("3. Validate the GitHub token and process the request\n")
