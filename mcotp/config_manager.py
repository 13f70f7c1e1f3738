"""
Configuration management using database storage.

Provides access to configuration values with defaults and type conversion.
The CONFIG_SCHEMA describes editable keys for building configuration UIs.
"""

import logging
from typing import Any, Dict, Optional

from .database import ConfigRepository, Database

# Configuration groups define the logical sections in the config UI
CONFIG_GROUPS = {
    "playback": {"label": "Playback", "order": 1},
    "server": {"label": "Server", "order": 2},
}

# Schema defining metadata for each editable configuration key
CONFIG_SCHEMA = {
    # Playback
    "restore_on_startup": {
        "group": "playback",
        "label": "Resume On Startup",
        "description": "Pick up the saved queue and play mode when the player starts.",
        "control": "toggle",
    },
    "autosave_snapshot": {
        "group": "playback",
        "label": "Save Queue On Every Song",
        "description": "Save the queue each time a new song starts, not just at shutdown.",
        "control": "toggle",
    },
    "fetch_timeout_seconds": {
        "group": "playback",
        "label": "Catalog Timeout",
        "description": "How long startup waits for the first batch of songs.",
        "control": "slider",
        "min": 1,
        "max": 60,
        "step": 1,
        "display_format": "seconds",
    },
    # Server
    "web_host": {
        "group": "server",
        "label": "Listen Address",
        "description": "Interface the command API listens on. Takes effect on restart.",
        "control": "text",
        "placeholder": "0.0.0.0",
    },
    "web_port": {
        "group": "server",
        "label": "Listen Port",
        "description": "Port the command API listens on. Takes effect on restart.",
        "control": "text",
        "placeholder": "8000",
    },
}

# Key holding the saved queue snapshot (internal, not in CONFIG_SCHEMA)
SNAPSHOT_KEY = "queue_snapshot"


class ConfigManager:
    """Manages configuration stored in database."""

    DEFAULTS = {
        "restore_on_startup": "true",
        "autosave_snapshot": "true",
        "fetch_timeout_seconds": "10",
        "web_host": "0.0.0.0",
        "web_port": "8000",
        SNAPSHOT_KEY: None,
    }

    def __init__(self, database: Database):
        """
        Initialize ConfigManager.

        Args:
            database: Database instance
        """
        self.database = database
        self.repository = ConfigRepository(database)
        self.logger = logging.getLogger(__name__)
        self.repository.initialize_defaults(self.DEFAULTS)

    def get(self, key: str, default: Any = None) -> Optional[str]:
        """
        Get a configuration value.

        Args:
            key: Configuration key
            default: Default value if not found (uses DEFAULTS if None)

        Returns:
            Configuration value as string, or None if not found
        """
        if default is None:
            default = self.DEFAULTS.get(key)

        entry = self.repository.get(key)
        if entry:
            return entry.value if entry.value else default
        return default

    def get_int(self, key: str, default: Optional[int] = None) -> Optional[int]:
        """Get configuration value as integer."""
        value = self.get(key)
        if value is None or value == "":
            return default
        try:
            return int(value)
        except ValueError:
            self.logger.warning("Invalid integer value for %s: %s", key, value)
            return default

    def get_float(self, key: str, default: Optional[float] = None) -> Optional[float]:
        """Get configuration value as float."""
        value = self.get(key)
        if value is None or value == "":
            return default
        try:
            return float(value)
        except ValueError:
            self.logger.warning("Invalid float value for %s: %s", key, value)
            return default

    def get_bool(self, key: str, default: Optional[bool] = None) -> Optional[bool]:
        """Get configuration value as boolean."""
        value = self.get(key)
        if value is None or value == "":
            return default
        return value.lower() in ("true", "1", "yes", "on")

    def set(self, key: str, value: Any) -> bool:
        """
        Set a configuration value.

        Args:
            key: Configuration key
            value: Value to set (will be converted to string)

        Returns:
            True if successful
        """
        return self.repository.set(key, str(value))

    def get_all(self) -> dict:
        """
        Get all configuration values, excluding the saved queue snapshot.

        Returns:
            Dictionary of all configuration key-value pairs
        """
        entries = self.repository.get_all()
        config = {entry.key: entry.value for entry in entries}

        result = self.DEFAULTS.copy()
        result.update(config)
        result.pop(SNAPSHOT_KEY, None)
        return result

    def get_full_config(self) -> Dict[str, Any]:
        """
        Get complete configuration data for a UI.

        Returns:
            Dictionary with 'values', 'schema', and 'groups' keys.
        """
        return {
            "values": self.get_all(),
            "schema": {key: dict(key_def) for key, key_def in CONFIG_SCHEMA.items()},
            "groups": CONFIG_GROUPS.copy(),
        }
