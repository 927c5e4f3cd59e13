"""
Settings

Resolves Kozani's runtime settings from (highest first): explicit
overrides, environment variables, ``~/.kozani/config.json``, defaults.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, List, Optional

from kozani.services.config_service import ConfigService, DEFAULT_CONFIG_DIR

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:5000"
DEFAULT_TIMEOUT = 60
GITHUB_AUTH_SCOPES = ["read:user", "user:email"]

_config_service: Optional[ConfigService] = None


@dataclass
class KozaniSettings:
    """Resolved settings for one process."""
    api_url: str = DEFAULT_API_URL
    timeout: float = DEFAULT_TIMEOUT
    github_client_id: Optional[str] = None
    github_scopes: List[str] = field(default_factory=lambda: list(GITHUB_AUTH_SCOPES))
    session_path: Path = DEFAULT_CONFIG_DIR / "session.json"

    def __post_init__(self):
        self.api_url = self.api_url.rstrip("/")


def get_config_path() -> Path:
    env_path = os.environ.get("KOZANI_CONFIG")
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_DIR / "config.json"


def _get_config_service() -> ConfigService:
    """Get or create global config service instance."""
    global _config_service
    if _config_service is None or _config_service.config_path != get_config_path():
        _config_service = ConfigService(config_path=get_config_path())
    return _config_service


def config_values() -> Dict[str, Any]:
    """Return the config.json contents ({} when absent)."""
    service = _get_config_service()
    service.load()
    return service.get_all()


def get_config_value(key: str) -> Any:
    service = _get_config_service()
    service.load()
    return service.get(key)


def set_config_value(key: str, value: Any) -> bool:
    """Set a dot-notation key in config.json and save it."""
    service = _get_config_service()
    service.load()
    service.set(key, value)
    return service.save()


def load_settings(api_url: Optional[str] = None) -> KozaniSettings:
    """
    Build KozaniSettings for this process.

    Args:
        api_url: Explicit backend URL (e.g. from ``--api-url``), wins over
            ``KOZANI_API_URL`` and the config file

    Raises:
        ValueError: If config.json exists but is not valid JSON
    """
    service = _get_config_service()
    service.load()

    timeout = service.get("timeout", DEFAULT_TIMEOUT)
    try:
        timeout = float(timeout)
    except (TypeError, ValueError):
        logger.warning(f"Invalid timeout {timeout!r} in config, using {DEFAULT_TIMEOUT}s")
        timeout = DEFAULT_TIMEOUT

    scopes = service.get("github.scopes") or GITHUB_AUTH_SCOPES
    session_path = service.get("session_path")

    settings = KozaniSettings(
        api_url=(
            api_url
            or os.environ.get("KOZANI_API_URL")
            or service.get("api_url")
            or DEFAULT_API_URL
        ),
        timeout=timeout,
        github_client_id=(
            os.environ.get("KOZANI_GITHUB_CLIENT_ID")
            or service.get("github.client_id")
        ),
        github_scopes=list(scopes),
        session_path=(
            Path(session_path).expanduser() if session_path
            else service.config_path.parent / "session.json"
        ),
    )
    logger.debug(f"Resolved settings: api_url={settings.api_url} timeout={settings.timeout}")
    return settings
