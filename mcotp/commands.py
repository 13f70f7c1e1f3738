"""
Queue-change commands.

The small command surface the UI uses to change play modes. Each command
decides which provider should be active, based on the current provider and
the song that is playing, and hands it to the queue engine.
"""

import logging
from typing import Optional

from .ids import (
    ALBUM_PREFIX,
    BAND_PREFIX,
    DECADE_PREFIX,
    LOCATION_PREFIX,
    SONG_PREFIX,
    YEAR_PREFIX,
    parse_id,
)
from .providers import (
    AlbumSequentialProvider,
    BandSequentialProvider,
    BandShuffleProvider,
    BlockPartyProvider,
    DoubleShotProvider,
    LocationShuffleProvider,
    MajorMode,
    ShuffleProvider,
    YearRangeShuffleProvider,
)
from .queue import QueueEngine


class QueueCommands:
    """Mode-change operations issued into a QueueEngine."""

    def __init__(self, engine: QueueEngine):
        """
        Initialize QueueCommands.

        Args:
            engine: QueueEngine to drive
        """
        self.engine = engine
        self.player = engine.player
        self.logger = logging.getLogger(__name__)

    def change_band_lock(self, force_band_id: Optional[int] = None) -> None:
        """
        Toggle locking onto a band.

        With a band id, always lock onto that band and switch immediately.
        Without one, lock onto the playing song's band, or unlock if already
        in band mode.
        """
        if force_band_id is None and self.engine.major_mode == MajorMode.BAND:
            self.engine.swap_provider(ShuffleProvider(), False)
            return

        band_id = force_band_id
        if band_id is None:
            current = self.player.current_item
            band_id = current.band_id if current else None
        if band_id is None:
            self.logger.debug("Band lock ignored, nothing is playing")
            return
        self.engine.swap_provider(BandShuffleProvider(band_id), force_band_id is not None)

    def change_album_lock(self, force_album_id: Optional[int] = None) -> None:
        """
        Toggle album play-through.

        The album is played from just after the current song (when it is on
        that album) round to the current song.
        """
        if force_album_id is None and self.engine.major_mode == MajorMode.ALBUM:
            self.engine.swap_provider(ShuffleProvider(), False)
            return

        current = self.player.current_item
        album_id = force_album_id
        if album_id is None:
            album_id = current.album_id if current else None
        if not album_id:
            self.logger.debug("Album lock ignored, no album to lock onto")
            return
        song_id = current.song_id if current else None
        self.engine.swap_provider(
            AlbumSequentialProvider(album_id, start_song_id=song_id), force_album_id is not None
        )

    def change_year_lock(self) -> None:
        """Toggle locking onto the playing song's release year."""
        current = self.player.current_item
        year = current.release_year if current else 0
        if not year or self.engine.major_mode == MajorMode.YEAR:
            self.engine.swap_provider(ShuffleProvider(), False)
        else:
            self.engine.swap_provider(YearRangeShuffleProvider.for_year(year), False)

    def change_location_lock(self, location_id: int) -> None:
        """Lock onto every band under a location, switching immediately."""
        self.engine.swap_provider(LocationShuffleProvider(location_id), True)

    def change_sub_mode(self) -> None:
        """
        Cycle the sub-mode of the current major mode.

        Collection: shuffle -> double-shot -> block party -> shuffle.
        Band: shuffle <-> sequential, with sequential starting after the current song.
        """
        provider = self.engine.provider
        mode = self.engine.major_mode

        if mode == MajorMode.COLLECTION:
            if isinstance(provider, DoubleShotProvider):
                self.engine.swap_provider(BlockPartyProvider(), False)
            elif isinstance(provider, BlockPartyProvider):
                self.engine.swap_provider(ShuffleProvider(), False)
            else:
                self.engine.swap_provider(DoubleShotProvider(), False)
        elif mode == MajorMode.BAND:
            band_id = provider.band_id
            if isinstance(provider, BandSequentialProvider):
                self.engine.swap_provider(BandShuffleProvider(band_id), False)
            else:
                current = self.player.current_item
                song_id = current.song_id if current and current.band_id == band_id else None
                self.engine.swap_provider(
                    BandSequentialProvider(band_id, start_song_id=song_id), False
                )
        else:
            self.logger.debug("No sub-modes in %s mode", mode.value)

    def force_play_item(self, item_id: str) -> None:
        """
        Play something picked from the library, by external id.

        Bands, albums, decades, years, and locations switch mode immediately;
        a song replaces the playing item and returns to shuffle.

        Raises:
            InvalidExternalId: If the id is malformed or not playable
        """
        prefix, internal_id = parse_id(item_id)
        self.logger.info("Force-playing %s", item_id)
        if prefix == BAND_PREFIX:
            self.change_band_lock(internal_id)
        elif prefix == ALBUM_PREFIX:
            self.change_album_lock(internal_id)
        elif prefix == DECADE_PREFIX:
            self.engine.swap_provider(YearRangeShuffleProvider.for_decade(internal_id), True)
        elif prefix == YEAR_PREFIX:
            self.engine.swap_provider(YearRangeShuffleProvider.for_year(internal_id), True)
        elif prefix == LOCATION_PREFIX:
            self.change_location_lock(internal_id)
        elif prefix == SONG_PREFIX:
            self.engine.play_song(internal_id)
