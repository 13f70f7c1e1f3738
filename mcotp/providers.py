"""
Song providers.

A provider is a selection policy that hands out ordered batches of songs. The
queue engine owns exactly one provider at a time and asks it for another batch
whenever the playback buffer runs low.

Each variant is a dataclass whose fields are the complete state needed to
resume it: constructor parameters plus progress flags such as ``completed``
and ``block_next``. That keeps persistence a plain mapping over ``kind``
(see codec.py).

An empty batch is not an error. It means "this provider has nothing more to
give" and the engine falls back to ShuffleProvider.
"""

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, List, Optional

from .catalog import CatalogService
from .models import Song

logger = logging.getLogger(__name__)

PREFERRED_BATCH_SIZE = 10
DOUBLE_SHOT_SIZE = 2
BLOCK_SIZE = 5
BLOCK_ATTEMPTS = 5


class MajorMode(Enum):
    """Coarse play mode, derived from whichever provider is active."""

    COLLECTION = "collection"
    BAND = "band"
    ALBUM = "album"
    YEAR = "year"
    LOCATION = "location"


class ProviderKind(Enum):
    """Persistence tag for each provider variant. Order matches legacy integer tags."""

    CATALOG_SHUFFLE = "catalog_shuffle"
    BAND_SHUFFLE = "band_shuffle"
    BAND_SEQUENTIAL = "band_sequential"
    YEAR_SHUFFLE = "year_shuffle"
    ALBUM_SEQUENTIAL = "album_sequential"
    DOUBLE_SHOT = "double_shot"
    BLOCK_PARTY = "block_party"
    LOCATION_SHUFFLE = "location_shuffle"


@dataclass
class SongProvider:
    """
    Base for all provider variants.

    ``forced_song_id`` makes the first call return just that song (looked up by
    id), after which the variant's normal policy takes over. If the song no
    longer exists that first call returns an empty batch.
    """

    kind: ClassVar[ProviderKind]
    mode: ClassVar[MajorMode] = MajorMode.COLLECTION
    sub_mode_label: ClassVar[str] = ""

    forced_song_id: Optional[int] = field(default=None, kw_only=True)

    def next_batch(self, catalog: CatalogService) -> List[Song]:
        """Get the next ordered batch of songs. May be empty."""
        if self.forced_song_id is not None:
            song_id = self.forced_song_id
            self.forced_song_id = None
            song = catalog.get_song(song_id)
            if song is not None:
                return [song]
            logger.warning("Forced song %s no longer exists", song_id)
            return []
        return self._next_batch(catalog)

    def _next_batch(self, catalog: CatalogService) -> List[Song]:
        raise NotImplementedError

    @property
    def sub_mode(self) -> str:
        """Display label distinguishing variants within a major mode."""
        return self.sub_mode_label


@dataclass
class ShuffleProvider(SongProvider):
    """
    Default provider: random songs from the whole collection. Never runs out.

    There are three techniques for choosing a random song:

    1) unweighted: pick uniformly from all songs. Biased towards bands with
       lots of short songs.
    2) band-weighted: pick a band, then a song by that band. Biased towards
       bands with only a few songs.
    3) album-weighted: pick an album, then a song from it. Biased towards
       bands with lots of albums.

    Unweighted is used half of the time, the other two a quarter each.
    """

    kind: ClassVar[ProviderKind] = ProviderKind.CATALOG_SHUFFLE

    def _pick_song(self, catalog: CatalogService) -> Optional[Song]:
        technique = random.randrange(4)
        if technique == 0:
            album = catalog.get_random_album()
            if album is not None:
                return catalog.get_random_song_for_album(album.id)
        elif technique == 1:
            band = catalog.get_random_band()
            if band is not None:
                return catalog.get_random_song_for_band(band.id)
        # Collections without albums (or bands) still get a song this way
        return catalog.get_random_song()

    def _next_batch(self, catalog: CatalogService) -> List[Song]:
        batch = []
        for _ in range(PREFERRED_BATCH_SIZE):
            song = self._pick_song(catalog)
            if song is not None:
                batch.append(song)
        return batch


@dataclass
class BandShuffleProvider(SongProvider):
    """Random songs by one band."""

    kind: ClassVar[ProviderKind] = ProviderKind.BAND_SHUFFLE
    mode: ClassVar[MajorMode] = MajorMode.BAND

    band_id: int

    def _next_batch(self, catalog: CatalogService) -> List[Song]:
        return catalog.get_random_songs_for_band(self.band_id, PREFERRED_BATCH_SIZE)


def rotate_after(songs: List[Song], start_song_id: Optional[int]) -> List[Song]:
    """
    Reorder a list so it starts just after the given song and ends with it.

    [s1..sk..sn] with start sk becomes [s(k+1)..sn, s1..sk]. The list is
    returned unchanged if the start song is absent or not given.
    """
    if start_song_id is None:
        return list(songs)
    for index, song in enumerate(songs):
        if song.id == start_song_id:
            return songs[index + 1:] + songs[: index + 1]
    return list(songs)


@dataclass
class BandSequentialProvider(SongProvider):
    """
    All of a band's songs in chronological order, exactly once.

    With a start song, the pass begins right after it and wraps around to end
    on it. The whole pass is one batch; every later call is empty.
    """

    kind: ClassVar[ProviderKind] = ProviderKind.BAND_SEQUENTIAL
    mode: ClassVar[MajorMode] = MajorMode.BAND
    sub_mode_label: ClassVar[str] = "Sequential Mode"

    band_id: int
    start_song_id: Optional[int] = None
    completed: bool = False

    def _next_batch(self, catalog: CatalogService) -> List[Song]:
        if self.completed:
            logger.debug("Band sequential provider has already completed")
            return []
        self.completed = True
        logger.debug("Band sequential provider starting for band %s", self.band_id)
        return rotate_after(catalog.get_sequential_songs_for_band(self.band_id), self.start_song_id)


@dataclass
class AlbumSequentialProvider(SongProvider):
    """One pass through an album in track order, optionally rotated to start after a song."""

    kind: ClassVar[ProviderKind] = ProviderKind.ALBUM_SEQUENTIAL
    mode: ClassVar[MajorMode] = MajorMode.ALBUM

    album_id: int
    start_song_id: Optional[int] = None
    completed: bool = False

    def _next_batch(self, catalog: CatalogService) -> List[Song]:
        if self.completed:
            logger.debug("Album provider has already completed")
            return []
        self.completed = True
        logger.debug("Album provider starting for album %s", self.album_id)
        return rotate_after(catalog.get_songs_for_album(self.album_id), self.start_song_id)


@dataclass
class YearRangeShuffleProvider(SongProvider):
    """Random songs released between start_year and end_year, inclusive."""

    kind: ClassVar[ProviderKind] = ProviderKind.YEAR_SHUFFLE
    mode: ClassVar[MajorMode] = MajorMode.YEAR

    start_year: int
    end_year: int

    @classmethod
    def for_decade(cls, start_year: int) -> "YearRangeShuffleProvider":
        return cls(start_year, start_year + 9)

    @classmethod
    def for_year(cls, year: int) -> "YearRangeShuffleProvider":
        return cls(year, year)

    @property
    def sub_mode(self) -> str:
        if self.start_year == self.end_year:
            return str(self.start_year)
        return f"{self.start_year}-{self.end_year}"

    def _next_batch(self, catalog: CatalogService) -> List[Song]:
        return catalog.get_random_songs_for_year_range(
            self.start_year, self.end_year, PREFERRED_BATCH_SIZE
        )


@dataclass
class LocationShuffleProvider(SongProvider):
    """
    Random songs by bands attached anywhere beneath a location.

    The band set and label are looked up once and then reused for the life of
    the provider; they are not persisted.
    """

    kind: ClassVar[ProviderKind] = ProviderKind.LOCATION_SHUFFLE
    mode: ClassVar[MajorMode] = MajorMode.LOCATION

    location_id: int
    _band_ids: Optional[List[int]] = field(default=None, init=False, repr=False, compare=False)
    _label: Optional[str] = field(default=None, init=False, repr=False, compare=False)

    def _resolve(self, catalog: CatalogService) -> List[int]:
        if self._band_ids is None:
            location_ids = catalog.get_descendant_location_ids(self.location_id)
            self._band_ids = catalog.get_band_ids_for_locations(location_ids)
            self._label = catalog.get_location_label(self.location_id)
            logger.debug(
                "Location %s covers %d locations and %d bands",
                self.location_id,
                len(location_ids),
                len(self._band_ids),
            )
        return self._band_ids

    @property
    def sub_mode(self) -> str:
        return self._label or "Location Lock"

    def _next_batch(self, catalog: CatalogService) -> List[Song]:
        return catalog.get_random_songs_for_bands(self._resolve(catalog), PREFERRED_BATCH_SIZE)


@dataclass
class DoubleShotProvider(SongProvider):
    """Two songs at a time, each pair from a freshly chosen random band."""

    kind: ClassVar[ProviderKind] = ProviderKind.DOUBLE_SHOT
    sub_mode_label: ClassVar[str] = "Double-Shot Weekend"

    def _next_batch(self, catalog: CatalogService) -> List[Song]:
        band = catalog.get_random_band()
        if band is None:
            return []
        logger.debug("Requesting %d songs for band %s %s", DOUBLE_SHOT_SIZE, band.id, band.name)
        return catalog.get_random_songs_for_band(band.id, DOUBLE_SHOT_SIZE)


@dataclass
class BlockPartyProvider(SongProvider):
    """
    Alternates a block of songs by one band with a block of unrelated songs.

    For the band block, up to BLOCK_ATTEMPTS random bands are tried to find one
    with a full block; the last attempt is accepted whatever its size.
    """

    kind: ClassVar[ProviderKind] = ProviderKind.BLOCK_PARTY
    sub_mode_label: ClassVar[str] = "Block Party Weekend"

    block_next: bool = True

    def _band_block(self, catalog: CatalogService) -> List[Song]:
        block: List[Song] = []
        for _ in range(BLOCK_ATTEMPTS):
            band = catalog.get_random_band()
            if band is None:
                return []
            block = catalog.get_random_songs_for_band(band.id, BLOCK_SIZE)
            if len(block) >= BLOCK_SIZE:
                break
        return block

    def _next_batch(self, catalog: CatalogService) -> List[Song]:
        if self.block_next:
            songs = self._band_block(catalog)
        else:
            songs = catalog.get_random_songs(BLOCK_SIZE)
        self.block_next = not self.block_next
        return songs
