# kozani/ui/sidebar.py
"""
Sidebar webview for Kozani: sign-in status, backend URL and a sign-in
button. Pure HTML templating; the host owns rendering.
"""

import html
import logging
import secrets
from typing import Optional

logger = logging.getLogger(__name__)

SIDEBAR_VIEW_ID = "kozani.sidebar"
SIGN_IN_COMMAND = "kozani-ext.signIn"


def render_sidebar_html(account_label: Optional[str], api_url: str, nonce: str) -> str:
    """Build the sidebar page. ``account_label`` is None when signed out."""
    url = html.escape(api_url)
    if account_label:
        status = f'<p class="status ok">Signed in as <strong>{html.escape(account_label)}</strong></p>'
        action = ""
    else:
        status = '<p class="status">Not signed in</p>'
        action = (
            f'<a class="button" href="command:{SIGN_IN_COMMAND}">Sign in with GitHub</a>'
        )

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta http-equiv="Content-Security-Policy" content="default-src 'none'; style-src 'nonce-{nonce}';">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Kozani</title>
<style nonce="{nonce}">
body {{ font-family: var(--vscode-font-family, sans-serif); padding: 0 12px; }}
.status.ok {{ color: var(--vscode-testing-iconPassed, #3fb950); }}
.button {{ display: inline-block; padding: 4px 12px; text-decoration: none; }}
code {{ word-break: break-all; }}
</style>
</head>
<body>
<h2>Kozani</h2>
{status}
<p>Backend: <code>{url}</code></p>
{action}
<p>Ask questions with <code>@kozani</code> in the chat view.</p>
</body>
</html>
"""


class SidebarViewProvider:
    """Webview view provider registered as ``kozani.sidebar``."""

    def __init__(self, auth, api_url: str):
        self.auth = auth
        self.api_url = api_url

    def resolve_webview_view(self, view) -> None:
        session = self.auth.get_session(create_if_none=False)
        label = session.account.label if session else None
        view.title = "Kozani"
        view.enable_scripts = False
        view.html = render_sidebar_html(label, self.api_url, secrets.token_hex(16))
        logger.debug(f"Resolved sidebar view (signed_in={bool(label)})")
