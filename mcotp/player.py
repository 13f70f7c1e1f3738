"""
In-process playback engine.

Holds the ordered buffer of playable items and the index of the one playing.
The queue engine feeds it batches at the tail and trims played items from the
head. Listeners are told whenever the current item changes; that is what
drives refills.

Audio output is not handled here. Something that actually plays audio would
call advance() when a song finishes.
"""

import logging
from typing import Callable, List, Optional

from .models import QueueItem

TransitionListener = Callable[[Optional[QueueItem]], None]


class PlaylistPlayer:
    """Item buffer with a current position."""

    def __init__(self):
        self._items: List[QueueItem] = []
        self._current_index: Optional[int] = None
        self._listeners: List[TransitionListener] = []
        self.is_playing = False
        self.logger = logging.getLogger(__name__)

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def items(self) -> List[QueueItem]:
        return list(self._items)

    @property
    def item_count(self) -> int:
        return len(self._items)

    @property
    def current_index(self) -> Optional[int]:
        return self._current_index

    @property
    def current_item(self) -> Optional[QueueItem]:
        if self._current_index is None:
            return None
        return self._items[self._current_index]

    @property
    def next_index(self) -> int:
        """Index of the item after the current one, or -1 if there is none."""
        if self._current_index is None or self._current_index + 1 >= len(self._items):
            return -1
        return self._current_index + 1

    def has_next(self) -> bool:
        return self.next_index >= 0

    def get_item_at(self, index: int) -> QueueItem:
        return self._items[index]

    def upcoming_items(self) -> List[QueueItem]:
        """Items queued after the current one."""
        if self._current_index is None:
            return list(self._items)
        return self._items[self._current_index + 1:]

    # =========================================================================
    # Listeners
    # =========================================================================

    def add_listener(self, listener: TransitionListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: TransitionListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify_transition(self) -> None:
        item = self.current_item
        self.logger.debug("Now playing: %s", item.media_id if item else None)
        for listener in list(self._listeners):
            listener(item)

    # =========================================================================
    # Buffer changes
    # =========================================================================

    def add_items(self, items: List[QueueItem]) -> None:
        """Append items. If nothing was current, the first new item becomes current."""
        if not items:
            return
        self._items.extend(items)
        if self._current_index is None:
            self._current_index = 0
            self._notify_transition()

    def remove_items(self, start: int, end: Optional[int] = None) -> None:
        """
        Remove items in [start, end). The range is clipped to the buffer.

        If the current item is removed, the item that slides into its place
        becomes current (or the new last item, or nothing).
        """
        count = len(self._items)
        start = max(0, start)
        end = count if end is None else min(end, count)
        if start >= end:
            return

        del self._items[start:end]
        removed = end - start

        if self._current_index is None:
            return
        if self._current_index >= end:
            self._current_index -= removed
        elif self._current_index >= start:
            if not self._items:
                self._current_index = None
            else:
                self._current_index = min(start, len(self._items) - 1)
            self._notify_transition()

    def set_items(self, items: List[QueueItem]) -> None:
        """Replace the whole buffer; the first item becomes current."""
        previous = self.current_item
        self._items = list(items)
        self._current_index = 0 if self._items else None
        if self.current_item is not previous:
            self._notify_transition()

    def set_item(self, item: QueueItem) -> None:
        """Replace the whole buffer with a single item and make it current."""
        self.set_items([item])

    def clear(self) -> None:
        self.set_items([])

    # =========================================================================
    # Transport
    # =========================================================================

    def seek_to_next(self) -> bool:
        """Jump to the next item. Returns False if there is none."""
        next_index = self.next_index
        if next_index < 0:
            return False
        self._current_index = next_index
        self._notify_transition()
        return True

    def advance(self) -> bool:
        """Called when the current song finishes."""
        return self.seek_to_next()

    def play(self) -> None:
        self.is_playing = True

    def pause(self) -> None:
        self.is_playing = False
