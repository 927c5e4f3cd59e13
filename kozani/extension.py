"""
Kozani extension entry points.

``activate`` wires the Kozani language model provider, the ``@kozani``
chat participant, the sign-in/sign-out commands and the sidebar view into
a host; every registration lands in ``context.subscriptions``.
"""

import logging
from typing import Optional

from kozani.config.settings import KozaniSettings, load_settings
from kozani.core.ai.model_provider import KozaniModelProvider
from kozani.core.backend_client import BackendClient
from kozani.core.chat_participant import ICON_PATH, PARTICIPANT_ID, KozaniChatParticipant
from kozani.core.github_auth import GitHubAuthenticationProvider
from kozani.host.context import ExtensionContext
from kozani.host.registry import ExtensionHost
from kozani.services.session_store import SessionStore
from kozani.ui.sidebar import SIDEBAR_VIEW_ID, SidebarViewProvider

logger = logging.getLogger(__name__)

VENDOR = "kozani"
SIGN_IN_COMMAND = "kozani-ext.signIn"
SIGN_OUT_COMMAND = "kozani-ext.signOut"


def build_auth_provider(settings: KozaniSettings) -> GitHubAuthenticationProvider:
    return GitHubAuthenticationProvider(
        store=SessionStore(settings.session_path),
        client_id=settings.github_client_id,
        scopes=settings.github_scopes,
    )


def activate(
    context: ExtensionContext,
    host: ExtensionHost,
    settings: Optional[KozaniSettings] = None,
    auth=None,
    backend: Optional[BackendClient] = None,
) -> None:
    """
    Register Kozani's contributions with ``host``.

    Args:
        context: Activation context; receives all disposables
        host: Registries to contribute to
        settings: Resolved settings (loaded from disk when omitted)
        auth: Identity broker (GitHub provider built from settings when omitted)
        backend: Backend client (built from settings when omitted)
    """
    logger.info("Extension activating...")

    settings = settings or load_settings()
    auth = auth or build_auth_provider(settings)
    backend = backend or BackendClient(settings.api_url, timeout=settings.timeout)

    context.subscriptions.append(
        host.lm.register_language_model_chat_provider(VENDOR, KozaniModelProvider(auth, backend))
    )
    logger.info("Language model provider registered")

    participant = host.chat.create_chat_participant(PARTICIPANT_ID, KozaniChatParticipant(auth, backend))
    participant.icon_path = context.as_absolute_path(*ICON_PATH)
    context.subscriptions.append(participant.disposable)
    logger.info("Chat participant registered")

    def sign_in():
        session = auth.get_session(create_if_none=True)
        if session:
            host.window.show_information_message(f"Signed in as {session.account.label}")
        return session

    def sign_out():
        if auth.remove_session():
            host.window.show_information_message("Signed out of GitHub")
            return True
        return False

    context.subscriptions.append(host.commands.register_command(SIGN_IN_COMMAND, sign_in))
    context.subscriptions.append(host.commands.register_command(SIGN_OUT_COMMAND, sign_out))

    context.subscriptions.append(
        host.window.register_webview_view_provider(
            SIDEBAR_VIEW_ID, SidebarViewProvider(auth, settings.api_url)
        )
    )

    logger.info("Extension activated")


def deactivate() -> None:
    logger.info("Extension deactivated")
