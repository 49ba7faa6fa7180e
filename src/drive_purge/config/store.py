"""Persistent key-value store for saved configuration."""

import json
from pathlib import Path
from typing import Optional

from ..common.exceptions import ConfigError
from ..common.files import write_private_file
from ..common.logging import get_logger
from .settings import Settings

logger = get_logger(__name__)

# Keys that may be saved with `drive-purge config set`
STORABLE_KEYS = ("gemini_api_key", "gemini_model")


class ConfigStore:
    """Small JSON file holding values the user saved between runs."""

    def __init__(self, store_path: Path) -> None:
        """Initialize the store.

        Args:
            store_path: Path to the JSON file
        """
        self.store_path = store_path

    def _read(self) -> dict[str, str]:
        if not self.store_path.exists():
            return {}

        try:
            with open(self.store_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Failed to read {self.store_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Malformed config store: {self.store_path}")
        return {str(k): str(v) for k, v in data.items()}

    def _write(self, data: dict[str, str]) -> None:
        write_private_file(self.store_path, json.dumps(data, indent=2))

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        """Save a value. A blank value removes the key instead."""
        value = value.strip()
        if not value:
            self.unset(key)
            return

        data = self._read()
        data[key] = value
        self._write(data)
        logger.debug(f"Saved config key: {key}")

    def unset(self, key: str) -> bool:
        """Remove a key.

        Returns:
            True if the key was present
        """
        data = self._read()
        if key not in data:
            return False
        del data[key]
        self._write(data)
        logger.debug(f"Removed config key: {key}")
        return True

    def clear(self) -> None:
        if self.store_path.exists():
            self.store_path.unlink()
            logger.debug("Cleared config store")

    def as_dict(self) -> dict[str, str]:
        return self._read()


def resolve_api_key(settings: Settings, store: ConfigStore) -> Optional[str]:
    """Pick the Gemini API key from settings, then from the saved store."""
    if settings.gemini_api_key:
        return settings.gemini_api_key
    return store.get("gemini_api_key")


def resolve_model(settings: Settings, store: ConfigStore) -> str:
    """Pick the Gemini model.

    An explicitly configured setting (environment or .env) wins over the
    saved value, which in turn wins over the built-in default.
    """
    if "gemini_model" in settings.model_fields_set:
        return settings.gemini_model
    return store.get("gemini_model") or settings.gemini_model
