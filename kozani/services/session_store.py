"""
Session Store

Persists the signed-in GitHub session between runs.
"""

import logging
from pathlib import Path
from typing import Optional

from kozani.core.auth import AuthenticationAccount, AuthenticationSession
from kozani.services.config_service import ConfigService

logger = logging.getLogger(__name__)


class SessionStore:
    """Reads and writes one AuthenticationSession as JSON."""

    def __init__(self, path: Path):
        self._service = ConfigService(config_path=path, file_mode=0o600)

    @property
    def path(self) -> Path:
        return self._service.config_path

    def load(self) -> Optional[AuthenticationSession]:
        try:
            data = self._service.load()
        except ValueError as e:
            logger.warning(f"Ignoring unreadable session file: {e}")
            return None

        token = str(data.get("access_token") or "").strip()
        if not token:
            return None

        account = data.get("account") or {}
        scopes = data.get("scopes") or []
        if not isinstance(account, dict) or not isinstance(scopes, list):
            logger.warning(f"Ignoring malformed session file {self.path}")
            return None

        return AuthenticationSession(
            id=str(data.get("id") or ""),
            access_token=token,
            account=AuthenticationAccount(
                id=str(account.get("id") or ""),
                label=str(account.get("label") or ""),
            ),
            scopes=[str(s) for s in scopes],
        )

    def save(self, session: AuthenticationSession) -> bool:
        return self._service.save({
            "id": session.id,
            "access_token": session.access_token,
            "account": {"id": session.account.id, "label": session.account.label},
            "scopes": list(session.scopes),
        })

    def clear(self) -> bool:
        return self._service.delete()
