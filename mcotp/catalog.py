"""
Catalog query service.

Read-only view of the music catalog used by song providers and library
browsing. Every lookup tolerates missing rows by returning None or an empty
list, since ids saved by an earlier session may have been removed since.
"""

import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional

from .database import (
    AlbumRepository,
    BandRepository,
    Database,
    LocationRepository,
    SongRepository,
)
from .ids import SONG_PREFIX, external_id
from .models import Album, Band, QueueItem, Song


class CatalogService:
    """Queries over bands, albums, songs, and locations."""

    def __init__(self, database: Database):
        """
        Initialize CatalogService.

        Args:
            database: Database instance holding the catalog
        """
        self.database = database
        self.bands = BandRepository(database)
        self.albums = AlbumRepository(database)
        self.songs = SongRepository(database)
        self.locations = LocationRepository(database)
        self.logger = logging.getLogger(__name__)

    # =========================================================================
    # Songs
    # =========================================================================

    def get_song(self, song_id: int) -> Optional[Song]:
        return self.songs.get(song_id)

    def get_random_song(self) -> Optional[Song]:
        return self.songs.get_random()

    def get_random_song_for_band(self, band_id: int) -> Optional[Song]:
        return self.songs.get_random_for_band(band_id)

    def get_random_song_for_album(self, album_id: int) -> Optional[Song]:
        return self.songs.get_random_for_album(album_id)

    def get_random_songs(self, count: int) -> List[Song]:
        return self.songs.get_random_songs(count)

    def get_random_songs_for_band(self, band_id: int, count: int) -> List[Song]:
        return self.songs.get_random_songs_for_band(band_id, count)

    def get_random_songs_for_bands(self, band_ids: List[int], count: int) -> List[Song]:
        return self.songs.get_random_songs_for_bands(band_ids, count)

    def get_songs_for_album(self, album_id: int) -> List[Song]:
        """All songs on an album, in track order."""
        return self.songs.get_for_album(album_id)

    def get_sequential_songs_for_band(self, band_id: int) -> List[Song]:
        """All songs by a band, in chronological order."""
        return self.songs.get_sequential_for_band(band_id)

    def get_random_songs_for_year_range(
        self, start_year: int, end_year: int, count: int
    ) -> List[Song]:
        return self.songs.get_random_songs_for_year_range(start_year, end_year, count)

    # =========================================================================
    # Bands and albums
    # =========================================================================

    def get_band(self, band_id: int) -> Optional[Band]:
        return self.bands.get(band_id)

    def get_album(self, album_id: int) -> Optional[Album]:
        return self.albums.get(album_id)

    def get_random_band(self) -> Optional[Band]:
        return self.bands.get_random()

    def get_random_album(self) -> Optional[Album]:
        return self.albums.get_random()

    # =========================================================================
    # Years
    # =========================================================================

    def get_years_by_decade(self) -> Dict[int, List[int]]:
        """Map each decade (e.g. 1990) to the years present in it, in order."""
        grouped: Dict[int, List[int]] = OrderedDict()
        for year in self.songs.get_years():
            grouped.setdefault(year - year % 10, []).append(year)
        return grouped

    def get_decades(self) -> List[int]:
        return list(self.get_years_by_decade())

    def get_years_for_decade(self, decade: int) -> List[int]:
        return self.get_years_by_decade().get(decade, [])

    # =========================================================================
    # Locations
    # =========================================================================

    def get_descendant_location_ids(self, location_id: int) -> List[int]:
        return self.locations.get_descendant_ids(location_id)

    def get_band_ids_for_locations(self, location_ids: List[int]) -> List[int]:
        return self.bands.get_ids_for_locations(location_ids)

    def get_location_label(self, location_id: int) -> Optional[str]:
        return self.locations.get_full_label(location_id)

    # =========================================================================
    # Queue items
    # =========================================================================

    def queue_item(self, song: Song) -> Optional[QueueItem]:
        """
        Build the self-contained playable item for a song.

        Returns None if the song's band has disappeared from the catalog.
        """
        band = self.bands.get(song.band_id)
        if band is None:
            self.logger.warning("Song %s refers to missing band %s", song.id, song.band_id)
            return None

        album = self.albums.get(song.album_id) if song.album_id is not None else None
        if album is not None and album.year is not None:
            year = album.year
        else:
            year = song.year

        return QueueItem(
            media_id=external_id(SONG_PREFIX, song.id),
            song_id=song.id,
            band_id=song.band_id,
            artist_name=band.name,
            song_title=song.name,
            display_title=song.name,
            uri=song.path,
            track_number=song.album_track_num or 0,
            release_year=year or 0,
            album_id=album.id if album else None,
            album_title=album.name if album else None,
        )

    def queue_items(self, songs: Iterable[Song]) -> List[QueueItem]:
        """Build playable items for a batch, skipping songs that cannot be resolved."""
        items = []
        for song in songs:
            item = self.queue_item(song)
            if item is not None:
                items.append(item)
        return items
