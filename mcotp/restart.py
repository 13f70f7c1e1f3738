"""
Restart persistence.

Saves the queue engine's snapshot into the config table so the next process
can resume the same queue and play mode.
"""

import logging
from typing import Optional

from .codec import QueueSnapshot
from .config_manager import SNAPSHOT_KEY, ConfigManager
from .queue import QueueEngine


class RestartStore:
    """Loads and saves queue snapshots."""

    def __init__(self, config_manager: ConfigManager):
        self.config_manager = config_manager
        self.logger = logging.getLogger(__name__)

    def save(self, engine: QueueEngine) -> bool:
        """Save the engine's current snapshot. Call on the control thread."""
        return self.write(engine.snapshot())

    def write(self, snapshot: QueueSnapshot) -> bool:
        """Persist an already-taken snapshot."""
        saved = self.config_manager.set(SNAPSHOT_KEY, snapshot.to_json())
        if saved:
            self.logger.debug(
                "Saved snapshot with %d future items", len(snapshot.future_items)
            )
        return saved

    def load(self) -> Optional[QueueSnapshot]:
        """
        Load the saved snapshot.

        Returns:
            The snapshot, or None if there is none or it can't be read
        """
        text = self.config_manager.get(SNAPSHOT_KEY)
        if not text:
            return None
        try:
            return QueueSnapshot.from_json(text)
        except ValueError as e:
            self.logger.warning("Ignoring unreadable saved snapshot: %s", e)
            return None

    def clear(self) -> bool:
        return self.config_manager.set(SNAPSHOT_KEY, "")
