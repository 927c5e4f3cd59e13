"""
GitHub authentication provider.

Resolves a GitHub session for Kozani from, in order: the stored session,
a token in ``KOZANI_GITHUB_TOKEN`` / ``GITHUB_TOKEN``, or (when the caller
allows creating one) the OAuth device flow. Failures never propagate to
callers; ``get_session`` logs them and returns None.
"""

import logging
import os
import time
from dataclasses import dataclass
from typing import Callable, Dict, Any, List, Optional, Sequence

import requests

from kozani.core.auth import AuthenticationAccount, AuthenticationSession
from kozani.core.exceptions import AuthenticationError
from kozani.services.session_store import SessionStore

logger = logging.getLogger(__name__)

GITHUB_BASE_URL = "https://github.com"
GITHUB_API_BASE_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
DEVICE_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:device_code"
TOKEN_ENV_VARS = ("KOZANI_GITHUB_TOKEN", "GITHUB_TOKEN")


@dataclass(frozen=True)
class DeviceCodeResponse:
    device_code: str
    user_code: str
    verification_uri: str
    expires_in: int
    interval: int


def _print_device_code(device_code: DeviceCodeResponse) -> None:
    print(
        f"To sign in, open {device_code.verification_uri} "
        f"and enter the code {device_code.user_code}"
    )


class GitHubAuthenticationProvider:
    """
    Identity broker backed by GitHub OAuth.

    Args:
        store: Where a created session is persisted
        client_id: OAuth app client id, required for the device flow
        scopes: Default scopes requested when none are given
        on_device_code: Called with the user code and verification URL
        http: requests.Session used for all GitHub calls
        sleep: Poll delay function (replaced in tests)
    """

    def __init__(
        self,
        store: SessionStore,
        client_id: Optional[str] = None,
        scopes: Optional[Sequence[str]] = None,
        on_device_code: Optional[Callable[[DeviceCodeResponse], None]] = None,
        http: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        timeout: float = 30,
    ):
        self.store = store
        self.client_id = client_id
        self.scopes: List[str] = list(scopes or ["read:user", "user:email"])
        self.on_device_code = on_device_code or _print_device_code
        self.http = http or requests.Session()
        self.sleep = sleep
        self.timeout = timeout
        self._env_session: Optional[AuthenticationSession] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_session(
        self,
        scopes: Optional[Sequence[str]] = None,
        create_if_none: bool = False,
    ) -> Optional[AuthenticationSession]:
        """
        Return the current GitHub session, optionally signing in.

        Returns:
            The session, or None if there is none (or sign-in failed)
        """
        scopes = list(scopes or self.scopes)
        try:
            stored = self.store.load()
            if stored is not None and stored.covers(scopes):
                return stored

            env_token = self._token_from_env()
            if env_token:
                if self._env_session is None or self._env_session.access_token != env_token:
                    self._env_session = self._session_for_token(env_token, scopes)
                return self._env_session

            if not create_if_none:
                return None
            return self.create_session(scopes)
        except (AuthenticationError, requests.exceptions.RequestException) as e:
            logger.error(f"Failed to get GitHub session: {e}")
            return None

    def create_session(self, scopes: Optional[Sequence[str]] = None) -> AuthenticationSession:
        """
        Run the device flow and store the resulting session.

        Raises:
            AuthenticationError: Missing client id, denied or expired code
        """
        scopes = list(scopes or self.scopes)
        if not self.client_id:
            raise AuthenticationError(
                "No GitHub OAuth client id configured. "
                "Set KOZANI_GITHUB_CLIENT_ID or github.client_id in config.json, "
                "or export GITHUB_TOKEN."
            )

        device_code = self.request_device_code(scopes)
        self.on_device_code(device_code)
        access_token = self.poll_access_token(device_code)

        session = self._session_for_token(access_token, scopes)
        self.store.save(session)
        logger.info(f"Signed in to GitHub as {session.account.label}")
        return session

    def remove_session(self) -> bool:
        """Forget the stored session. Returns True if one existed."""
        removed = self.store.clear()
        if removed:
            logger.info("Signed out of GitHub")
        return removed

    # ------------------------------------------------------------------
    # Device flow
    # ------------------------------------------------------------------

    def _post_json(self, url: str, body: Dict[str, Any]) -> Dict[str, Any]:
        response = self.http.post(
            url,
            json=body,
            headers={"Accept": "application/json"},
            timeout=self.timeout,
        )
        if not response.ok:
            raise AuthenticationError(f"GitHub returned {response.status_code} for {url}")
        try:
            data = response.json()
        except ValueError:
            data = {}
        return data if isinstance(data, dict) else {}

    def request_device_code(self, scopes: Sequence[str]) -> DeviceCodeResponse:
        data = self._post_json(
            f"{GITHUB_BASE_URL}/login/device/code",
            {"client_id": self.client_id, "scope": " ".join(scopes)},
        )
        device_code = DeviceCodeResponse(
            device_code=str(data.get("device_code", "")),
            user_code=str(data.get("user_code", "")),
            verification_uri=str(data.get("verification_uri", "")),
            expires_in=int(data.get("expires_in", 0) or 0),
            interval=int(data.get("interval", 5) or 5),
        )
        if not device_code.device_code or not device_code.user_code or not device_code.verification_uri:
            raise AuthenticationError("GitHub device code flow returned an invalid response")
        return device_code

    def poll_access_token(self, device_code: DeviceCodeResponse) -> str:
        interval = max(1, device_code.interval)
        waited = 0
        while True:
            if device_code.expires_in > 0 and waited > device_code.expires_in:
                raise AuthenticationError("GitHub device code expired before authorization completed")

            data = self._post_json(
                f"{GITHUB_BASE_URL}/login/oauth/access_token",
                {
                    "client_id": self.client_id,
                    "device_code": device_code.device_code,
                    "grant_type": DEVICE_GRANT_TYPE,
                },
            )
            token = str(data.get("access_token", "") or "").strip()
            if token:
                return token

            error = str(data.get("error", "") or "").strip()
            if error == "slow_down":
                interval += 5
            elif error and error != "authorization_pending":
                raise AuthenticationError(f"GitHub device auth failed: {error}")

            self.sleep(interval)
            waited += interval

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _token_from_env() -> Optional[str]:
        for name in TOKEN_ENV_VARS:
            value = os.environ.get(name, "").strip()
            if value:
                return value
        return None

    def fetch_account(self, access_token: str) -> AuthenticationAccount:
        """Look up the GitHub user a token belongs to."""
        response = self.http.get(
            f"{GITHUB_API_BASE_URL}/user",
            headers={
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": GITHUB_API_VERSION,
            },
            timeout=self.timeout,
        )
        if response.status_code == 401:
            raise AuthenticationError("GitHub rejected the access token")
        if not response.ok:
            raise AuthenticationError(f"GitHub user lookup failed: HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise AuthenticationError(f"GitHub user lookup returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise AuthenticationError("GitHub user lookup returned an unexpected payload")

        login = str(data.get("login") or "").strip()
        if not login:
            raise AuthenticationError("GitHub user lookup returned no login")
        return AuthenticationAccount(id=str(data.get("id", "")), label=login)

    def _session_for_token(self, access_token: str, scopes: List[str]) -> AuthenticationSession:
        account = self.fetch_account(access_token)
        return AuthenticationSession(
            id=f"github-{account.id or account.label}",
            access_token=access_token,
            account=account,
            scopes=scopes,
        )
