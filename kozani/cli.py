"""
Kozani CLI: terminal host for the Kozani extension.

Activates the extension against an in-process host and drives the
``@kozani`` chat participant (or the ``kozani`` language model) from the
command line.
"""

import argparse
import json
import logging
import sys
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests

from kozani import __version__
from kozani.config.settings import (
    KozaniSettings,
    config_values,
    get_config_path,
    get_config_value,
    load_settings,
    set_config_value,
)
from kozani.core.ai.model_provider import SIGN_IN_MESSAGE, backend_unavailable_message
from kozani.core.cancellation import CancellationToken, CancellationTokenSource
from kozani.core.chat_participant import PARTICIPANT_ID
from kozani.core.messages import ChatContext, ChatRequest, ChatResult, LanguageModelChatMessage
from kozani.extension import (
    SIGN_IN_COMMAND,
    SIGN_OUT_COMMAND,
    VENDOR,
    activate,
    build_auth_provider,
    deactivate,
)
from kozani.host.context import ExtensionContext
from kozani.host.registry import ExtensionHost
from kozani.ui.colors import (
    ACCENT_FG,
    CHAT_LABEL_USER,
    ERROR_FG,
    MUTED_FG,
    SUCCESS_FG,
    WARNING_FG,
    colorize,
    supports_color,
)
from kozani.ui.terminal import TerminalProgress, TerminalResponseStream

logger = logging.getLogger(__name__)

EXTENSION_PATH = Path(__file__).resolve().parent.parent
LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s - %(message)s"

POLL_INTERVAL = 0.1
# How long to wait for a cancelled request to wind down before moving on.
CANCEL_GRACE = 5.0


class TerminalHost:
    """An activated extension plus the terminal it talks to."""

    def __init__(self, settings: KozaniSettings, color: bool):
        self.settings = settings
        self.color = color
        self.host = ExtensionHost(message_sink=self._info)
        self.context = ExtensionContext(extension_path=EXTENSION_PATH)
        self.auth = build_auth_provider(settings)
        activate(self.context, self.host, settings=settings, auth=self.auth)

    def _info(self, message: str) -> None:
        print(colorize(f"✓ {message}", SUCCESS_FG, enabled=self.color))

    def error(self, message: str) -> None:
        print(colorize(f"❌ {message}", ERROR_FG, enabled=self.color), file=sys.stderr)

    def close(self) -> None:
        self.context.dispose_all()
        deactivate()


# =====================================================================
#  REQUEST EXECUTION
# =====================================================================

def run_cancellable(target: Callable[[CancellationToken], Any], name: str = "kozani-request") -> Tuple[Any, bool]:
    """
    Run ``target(token)`` on a worker thread while the main thread waits.

    Ctrl-C cancels the token instead of killing the process; further Ctrl-C
    presses while the request winds down are absorbed. A cancelled worker
    gets CANCEL_GRACE seconds to finish before it is abandoned.

    Returns:
        (target's return value or None, whether the request was cancelled)
    """
    source = CancellationTokenSource()
    outcome: Dict[str, Any] = {}

    def run():
        try:
            outcome["result"] = target(source.token)
        except Exception as e:
            logger.error("Request failed", exc_info=True)
            outcome["error"] = e

    worker = threading.Thread(target=run, name=name, daemon=True)
    worker.start()
    deadline: Optional[float] = None
    try:
        while worker.is_alive():
            try:
                worker.join(POLL_INTERVAL)
            except KeyboardInterrupt:
                source.cancel()
            if source.token.is_cancellation_requested:
                if deadline is None:
                    deadline = time.monotonic() + CANCEL_GRACE
                elif time.monotonic() >= deadline:
                    logger.warning(f"Cancelled request did not stop within {CANCEL_GRACE}s, abandoning it")
                    break
        cancelled = source.token.is_cancellation_requested
    finally:
        source.dispose()

    if "error" in outcome:
        raise outcome["error"]
    return outcome.get("result"), cancelled


def run_chat_request(
    terminal: TerminalHost,
    prompt: str,
    chat_context: Optional[ChatContext] = None,
) -> Tuple[Optional[ChatResult], TerminalResponseStream]:
    """Send one prompt through the chat participant."""
    participant = terminal.host.chat.get(PARTICIPANT_ID)
    response = TerminalResponseStream(color=terminal.color)
    try:
        result, _ = run_cancellable(
            lambda token: participant.handler(ChatRequest(prompt=prompt), chat_context, response, token)
        )
    finally:
        response.finish()
    return result, response


def run_model_request(terminal: TerminalHost, prompt: str) -> Tuple[TerminalProgress, bool]:
    """Send one prompt straight to the ``kozani`` language model."""
    provider = terminal.host.lm.get(VENDOR)
    model = terminal.host.lm.select_chat_models(VENDOR)[0]
    progress = TerminalProgress()
    try:
        _, cancelled = run_cancellable(
            lambda token: provider.provide_language_model_chat_response(
                model, [LanguageModelChatMessage.user(prompt)], {}, progress, token
            )
        )
    finally:
        if progress.text and not progress.text.endswith("\n"):
            progress.out.write("\n")
    return progress, cancelled


# =====================================================================
#  SUBCOMMAND HANDLERS
# =====================================================================

def cmd_ask(terminal: TerminalHost, args) -> int:
    prompt = " ".join(args.prompt).strip()
    if not prompt:
        terminal.error("Prompt must not be empty")
        return 1

    if args.lm:
        progress, cancelled = run_model_request(terminal, prompt)
        failures = (SIGN_IN_MESSAGE, backend_unavailable_message(terminal.settings.api_url))
        return 1 if cancelled or progress.text in failures else 0

    result, _ = run_chat_request(terminal, prompt)
    return 0 if result and result.metadata.get("status") == "ok" else 1


def cmd_chat(terminal: TerminalHost, args) -> int:
    """Interactive loop; history accumulates across turns."""
    chat_context = ChatContext()
    label = colorize("you ›", CHAT_LABEL_USER, enabled=terminal.color)
    print(colorize(
        f"Kozani chat, backend {terminal.settings.api_url}. "
        "/clear resets history, /exit quits, Ctrl-C cancels a reply.",
        MUTED_FG, enabled=terminal.color,
    ))

    while True:
        try:
            prompt = input(f"{label} ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            return 0

        if not prompt:
            continue
        if prompt in ("/exit", "/quit"):
            return 0
        if prompt == "/clear":
            chat_context = ChatContext()
            print(colorize("History cleared", MUTED_FG, enabled=terminal.color))
            continue
        if prompt == "/signin":
            terminal.host.commands.execute_command(SIGN_IN_COMMAND)
            continue
        if prompt == "/signout":
            terminal.host.commands.execute_command(SIGN_OUT_COMMAND)
            continue

        result, response = run_chat_request(terminal, prompt, chat_context)
        if result and result.metadata.get("status") == "ok":
            chat_context.add_turn("user", prompt)
            chat_context.add_turn("assistant", response.text)


def cmd_sign_in(terminal: TerminalHost, args) -> int:
    signed_in = terminal.host.commands.execute_command(SIGN_IN_COMMAND)
    if not signed_in:
        terminal.error("GitHub sign-in failed (run with --verbose for details)")
        return 1
    return 0


def cmd_sign_out(terminal: TerminalHost, args) -> int:
    if not terminal.host.commands.execute_command(SIGN_OUT_COMMAND):
        print(colorize("Not signed in", MUTED_FG, enabled=terminal.color))
    return 0


def cmd_models(terminal: TerminalHost, args) -> int:
    for model in terminal.host.lm.select_chat_models(VENDOR):
        default = " (default)" if model.is_default else ""
        print(
            f"{colorize(model.id, ACCENT_FG, enabled=terminal.color)}{default}  "
            f"{model.name} v{model.version}  "
            f"in={model.max_input_tokens} out={model.max_output_tokens}"
        )
    return 0


def _parse_config_value(text: str) -> Any:
    """JSON literals (numbers, lists, booleans) are stored typed; anything else as a string."""
    try:
        return json.loads(text)
    except ValueError:
        return text


def cmd_config(terminal: TerminalHost, args) -> int:
    """Show or change config.json values."""
    if args.action == "set":
        if not set_config_value(args.key, _parse_config_value(args.value)):
            terminal.error(f"Could not write {get_config_path()}")
            return 1
        print(colorize(f"✓ {args.key} saved to {get_config_path()}", SUCCESS_FG, enabled=terminal.color))
        return 0

    if args.action == "get":
        value = get_config_value(args.key)
        if value is None:
            print(colorize(f"{args.key} is not set", WARNING_FG, enabled=terminal.color))
            return 1
        print(json.dumps(value) if not isinstance(value, str) else value)
        return 0

    print(json.dumps(config_values(), indent=4))
    return 0


def cmd_doctor(terminal: TerminalHost, args) -> int:
    """Print resolved configuration and check that the backend answers."""
    settings = terminal.settings
    print(f"Config file:   {get_config_path()}")
    print(f"Session file:  {settings.session_path}")
    print(f"Backend URL:   {settings.api_url}")
    print(f"OAuth client:  {'configured' if settings.github_client_id else 'not configured'}")

    github = terminal.auth.get_session(create_if_none=False)
    print(f"GitHub:        {f'signed in as {github.account.label}' if github else 'not signed in'}")

    try:
        requests.get(settings.api_url, timeout=5)
        print(colorize("Backend:       reachable", SUCCESS_FG, enabled=terminal.color))
        return 0
    except requests.exceptions.RequestException as e:
        logger.debug(f"Backend reachability check failed: {e}")
        print(colorize("Backend:       unreachable", ERROR_FG, enabled=terminal.color))
        return 1


# =====================================================================
#  CLI ENTRY WITH SUBCOMMANDS
# =====================================================================

def _create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="kozani",
        description="Kozani: GitHub-authenticated chat with the Kozani backend",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  kozani ask "how do I rebase?"   # One-shot question
  kozani chat                     # Interactive session
  kozani sign-in                  # GitHub device sign-in
  kozani ask --lm "summarize"     # Ask the language model directly
  kozani config set api_url http://localhost:5000
  kozani doctor                   # Check configuration and backend
        """
    )
    parser.add_argument("--version", action="version", version=f"kozani {__version__}")
    parser.add_argument("--api-url", type=str, help="Backend URL (overrides KOZANI_API_URL and config)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable info logging")
    parser.add_argument("--no-color", action="store_true", help="Disable ANSI colors")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parser_ask = subparsers.add_parser("ask", help="Ask a single question")
    parser_ask.add_argument("prompt", nargs="+", help="Question text")
    parser_ask.add_argument(
        "--lm", action="store_true",
        help="Ask the kozani language model directly instead of the @kozani participant",
    )

    subparsers.add_parser("chat", help="Interactive chat (default)")
    subparsers.add_parser("sign-in", help="Sign in with GitHub")
    subparsers.add_parser("sign-out", help="Forget the stored GitHub session")
    subparsers.add_parser("models", help="List available models")
    subparsers.add_parser("doctor", help="Check configuration and backend reachability")

    parser_config = subparsers.add_parser("config", help="Show or change config.json values")
    config_actions = parser_config.add_subparsers(dest="action")
    config_actions.add_parser("list", help="Print the whole config file")
    parser_get = config_actions.add_parser("get", help="Print one value")
    parser_get.add_argument("key", help="Dot-notation key, e.g. github.client_id")
    parser_set = config_actions.add_parser("set", help="Set one value")
    parser_set.add_argument("key", help="Dot-notation key, e.g. api_url")
    parser_set.add_argument("value", help="Value; JSON literals such as 30 or [\"read:user\"] are stored typed")

    return parser


COMMANDS = {
    "ask": cmd_ask,
    "chat": cmd_chat,
    None: cmd_chat,
    "sign-in": cmd_sign_in,
    "sign-out": cmd_sign_out,
    "models": cmd_models,
    "doctor": cmd_doctor,
    "config": cmd_config,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point with subcommand routing."""
    parser = _create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format=LOG_FORMAT,
    )

    color = not args.no_color and supports_color(sys.stdout)
    try:
        settings = load_settings(api_url=args.api_url)
    except ValueError as e:
        print(colorize(f"❌ Could not load config: {e}", ERROR_FG, enabled=color), file=sys.stderr)
        return 1

    terminal = TerminalHost(settings, color=color)
    try:
        return COMMANDS[args.command](terminal, args)
    finally:
        terminal.close()


if __name__ == "__main__":
    sys.exit(main())
