"""
Playback queue engine for mcotp.

Owns the active song provider and keeps the playback buffer topped up with its
batches. The user never sees a playlist; they see play modes. Switching modes
swaps the provider and throws away whatever the old one had queued.

The engine is driven from a single control thread. Catalog work runs on the
BackgroundRunner's worker and comes back through the Dispatcher, so no method
here blocks on the database. At most one fetch is outstanding; each fetch is
tagged with a generation number and results from an older generation are
ignored.
"""

import copy
import logging
import time
from concurrent.futures import Future
from typing import Any, Dict, List, Optional, Tuple

from .background import BackgroundRunner
from .catalog import CatalogService
from .codec import QueueSnapshot, decode_provider, encode_provider
from .models import QueueItem
from .player import PlaylistPlayer
from .providers import MajorMode, ShuffleProvider, SongProvider


class QueueEngine:
    """Feeds provider batches into the playback buffer."""

    def __init__(
        self,
        catalog: CatalogService,
        player: PlaylistPlayer,
        runner: BackgroundRunner,
        snapshot: Optional[QueueSnapshot] = None,
    ):
        """
        Initialize QueueEngine.

        Args:
            catalog: Catalog queried by providers (on the worker thread)
            player: Playback buffer to manage
            runner: Background runner for catalog work
            snapshot: Saved state to resume from, if any
        """
        self.catalog = catalog
        self.player = player
        self.runner = runner
        self.logger = logging.getLogger(__name__)

        self._provider: SongProvider = ShuffleProvider()
        self._generation = 0
        self._pending: Optional[Future] = None

        self.player.add_listener(self._on_transition)

        if snapshot is not None:
            self.restore(snapshot)

    # =========================================================================
    # State
    # =========================================================================

    @property
    def provider(self) -> SongProvider:
        return self._provider

    @property
    def major_mode(self) -> MajorMode:
        return self._provider.mode

    @property
    def sub_mode(self) -> str:
        return self._provider.sub_mode

    @property
    def is_fetching(self) -> bool:
        return self._pending is not None

    def get_status(self) -> Dict[str, Any]:
        """Get a summary of the current mode and buffer for display."""
        current = self.player.current_item
        return {
            "mode": self.major_mode.value,
            "sub_mode": self.sub_mode,
            "provider": encode_provider(self._provider),
            "current_item": current.to_dict() if current else None,
            "upcoming": [item.to_dict() for item in self.player.upcoming_items()],
            "is_playing": self.player.is_playing,
        }

    # =========================================================================
    # Fetching
    # =========================================================================

    def _cancel_pending(self) -> None:
        """Drop any outstanding fetch; its result will be ignored if it still arrives."""
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        self._generation += 1

    def _submit(self, task, on_result) -> None:
        self._generation += 1
        generation = self._generation

        def on_done(future: Future):
            if generation != self._generation or future.cancelled():
                self.logger.debug("Ignoring stale result from generation %s", generation)
                return
            self._pending = None
            try:
                result = future.result()
            except Exception as e:
                self.logger.error("Catalog request failed: %s", e, exc_info=True)
                result = None
            on_result(result)

        self._pending = self.runner.submit(task, on_done)

    def _request_next_batch(self, play_now: bool) -> None:
        # The worker advances a copy; the live provider is replaced only when
        # the batch is accepted.
        work = copy.copy(self._provider)
        forced = work.forced_song_id is not None

        def fetch() -> Tuple[SongProvider, List[QueueItem]]:
            songs = work.next_batch(self.catalog)
            return work, self.catalog.queue_items(songs)

        def on_result(result: Optional[Tuple[SongProvider, List[QueueItem]]]):
            if result is None:
                self._on_incoming_batch([], play_now)
                return
            advanced, items = result
            self._provider = advanced
            if not items and forced and isinstance(advanced, ShuffleProvider):
                self.logger.info("Forced song is gone, asking shuffle again")
                self._request_next_batch(play_now)
                return
            self._on_incoming_batch(items, play_now)

        self.logger.debug("Requesting next batch from %s", self._provider)
        self._submit(fetch, on_result)

    def refill(self) -> None:
        """Request another batch if the buffer has nothing after the current item."""
        if self._pending is None and not self.player.has_next():
            self._request_next_batch(False)

    def _on_transition(self, item: Optional[QueueItem]) -> None:
        self.refill()

    # =========================================================================
    # Buffer management
    # =========================================================================

    def _on_incoming_batch(self, items: List[QueueItem], play_now: bool) -> None:
        self.logger.debug("Received batch with %d items", len(items))
        if not items:
            if isinstance(self._provider, ShuffleProvider):
                # Falling back would just ask the same provider again
                self.logger.warning("Shuffle returned nothing; the catalog may be empty")
                return
            self.logger.info("%s has finished, swapping back to shuffle", type(self._provider).__name__)
            self.swap_provider(ShuffleProvider(), play_now)
            return
        self.append_batch(items, play_now)

    def append_batch(self, items: List[QueueItem], play_now: bool = False) -> None:
        """
        Add a non-empty batch to the tail of the buffer.

        Played items are trimmed so only the previous and current items remain
        ahead of the queue. With play_now, playback jumps to the first new item.
        """
        had_current = self.player.current_item is not None
        self.player.add_items(items)

        last_played_index = self.player.next_index - 2
        if last_played_index > 0:
            self.player.remove_items(0, last_played_index)

        if play_now and had_current:
            self.logger.debug("Playing new batch immediately")
            self.player.seek_to_next()

    def swap_provider(self, provider: SongProvider, switch_now: bool = False) -> None:
        """
        Make a new provider active.

        Everything queued after the current item is discarded and the new
        provider's first batch is requested.

        Args:
            provider: The new provider
            switch_now: Jump to the new provider's first song as soon as it arrives
        """
        self._cancel_pending()
        self._provider = provider
        self.logger.info(
            "Switching to %s (mode: %s %s)",
            type(provider).__name__,
            provider.mode.value,
            provider.sub_mode,
        )

        next_index = self.player.next_index
        if next_index >= 0:
            self.player.remove_items(next_index)
        self._request_next_batch(switch_now)

    def play_song(self, song_id: int) -> None:
        """
        Load one song into the playing position, then continue with shuffle.

        The lookup runs in the background. A missing song leaves everything as it was.
        """
        self._cancel_pending()

        def lookup() -> Optional[QueueItem]:
            song = self.catalog.get_song(song_id)
            return self.catalog.queue_item(song) if song else None

        def on_result(item: Optional[QueueItem]):
            if item is None:
                self.logger.warning("Song %s not found, ignoring play request", song_id)
                self.refill()
                return
            # Must be set before set_item(); its transition refills from the active provider
            self._provider = ShuffleProvider()
            self.logger.info("Playing song %s, switching to shuffle", song_id)
            self.player.set_item(item)
            self.refill()

        self._submit(lookup, on_result)

    # =========================================================================
    # Persistence
    # =========================================================================

    def snapshot(self) -> QueueSnapshot:
        """Capture the current item, the items after it, and the provider state."""
        return QueueSnapshot(
            provider=encode_provider(self._provider),
            current_item=self.player.current_item,
            future_items=self.player.upcoming_items(),
        )

    def restore(self, snapshot: QueueSnapshot) -> None:
        """Resume from a snapshot. Items come from the snapshot itself, not the catalog."""
        self._cancel_pending()
        self._provider = decode_provider(snapshot.provider)

        items = list(snapshot.future_items)
        if snapshot.current_item is not None:
            items.insert(0, snapshot.current_item)
        self.player.set_items(items)
        self.logger.info(
            "Restored %d queued items with %s", len(items), type(self._provider).__name__
        )
        self.refill()

    def start(self) -> None:
        """Make sure something is queued, e.g. on first run with no snapshot."""
        self.refill()

    def shutdown(self) -> None:
        """Cancel any outstanding fetch and stop listening to the player."""
        self._cancel_pending()
        self.player.remove_listener(self._on_transition)

    # =========================================================================
    # Control-thread helpers
    # =========================================================================

    def wait_until_idle(self, timeout: float = 5.0) -> bool:
        """
        Run dispatched callbacks until no fetch is outstanding.

        Must be called from the control thread. Intended for startup and tests.

        Returns:
            True if the engine went idle before the timeout
        """
        dispatcher = self.runner.dispatcher
        deadline = time.monotonic() + timeout
        while self._pending is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            dispatcher.run_once(timeout=remaining)
        dispatcher.run_pending()
        return self._pending is None
