"""
Configuration Service

JSON-file backed key/value store used for both the user configuration
(``~/.kozani/config.json``) and the stored GitHub session.
"""

import json
import logging
import os
from pathlib import Path
from typing import Dict, Any, Optional

logger = logging.getLogger("Kozani.ConfigService")

DEFAULT_CONFIG_DIR = Path.home() / ".kozani"


class ConfigService:
    """
    Service class for a single JSON document on disk.

    Provides:
    - Loading (a missing file is an empty document)
    - Saving (parent directories are created)
    - Dot-notation access to nested keys
    """

    def __init__(self, config_path: Optional[Path] = None, file_mode: Optional[int] = None):
        """
        Initialize config service.

        Args:
            config_path: Path to the JSON file
            file_mode: Permission bits the file is created with (e.g. 0o600)
        """
        self.file_mode = file_mode
        if config_path is None:
            config_path = DEFAULT_CONFIG_DIR / "config.json"

        self.config_path = Path(config_path)
        self._config: Dict[str, Any] = {}

        if self.config_path.exists():
            self._load_config()

    def _load_config(self) -> None:
        """Load configuration from file, keeping an empty document on errors."""
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                data = json.load(f)
            self._config = data if isinstance(data, dict) else {}
            logger.info(f"Configuration loaded from {self.config_path}")
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load config: {e}")
            self._config = {}

    def load(self) -> Dict[str, Any]:
        """
        Load configuration from file.

        Returns:
            Configuration dictionary (empty if the file does not exist)

        Raises:
            ValueError: If the file is not valid JSON
        """
        if not self.config_path.exists():
            logger.debug(f"No config file at {self.config_path}, using defaults")
            self._config = {}
            return {}

        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Error parsing {self.config_path.name}: {e}")
            raise ValueError(
                f"Error parsing {self.config_path}: {e}\n"
                "Please ensure it is valid JSON."
            ) from e

        self._config = data if isinstance(data, dict) else {}
        return self._config.copy()

    def save(self, data: Optional[Dict[str, Any]] = None) -> bool:
        """
        Save configuration to file.

        Args:
            data: Optional data to save (uses internal config if None)

        Returns:
            True if successful
        """
        if data is not None:
            self._config = data

        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with self._open_for_write() as f:
                json.dump(self._config, f, indent=4)
        except OSError as e:
            logger.error(f"Failed to save config: {e}")
            return False

        logger.info(f"Configuration saved to {self.config_path}")
        return True

    def _open_for_write(self):
        if self.file_mode is None:
            return self.config_path.open("w", encoding="utf-8")
        fd = os.open(self.config_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, self.file_mode)
        try:
            # os.open only applies the mode to new files.
            os.chmod(self.config_path, self.file_mode)
        except OSError:
            os.close(fd)
            raise
        return os.fdopen(fd, "w", encoding="utf-8")

    def delete(self) -> bool:
        """Remove the file from disk. Returns False if it did not exist."""
        self._config = {}
        if not self.config_path.exists():
            return False
        self.config_path.unlink()
        logger.info(f"Removed {self.config_path}")
        return True

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value.

        Args:
            key: Configuration key (supports dot notation: "github.client_id")
            default: Default value if key not found

        Returns:
            Configuration value
        """
        value: Any = self._config
        for k in key.split("."):
            if not isinstance(value, dict):
                return default
            value = value.get(k)
            if value is None:
                return default
        return value

    def set(self, key: str, value: Any) -> None:
        """
        Set configuration value.

        Args:
            key: Configuration key (supports dot notation)
            value: Value to set
        """
        keys = key.split(".")
        config = self._config
        for k in keys[:-1]:
            if not isinstance(config.get(k), dict):
                config[k] = {}
            config = config[k]
        config[keys[-1]] = value

    def get_all(self) -> Dict[str, Any]:
        return self._config.copy()
