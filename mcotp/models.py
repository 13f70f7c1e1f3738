"""
Data models for mcotp.

Defines typed dataclasses for catalog entities and the playable queue item.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class Band:
    """Band entity. Owns albums and songs."""

    id: int
    name: str
    path: str


@dataclass
class Album:
    """Album entity, owned by exactly one band."""

    id: int
    name: str
    path: str
    band_id: int
    year: Optional[int] = None


@dataclass
class Song:
    """Song entity. Always belongs to a band, optionally to an album."""

    id: int
    name: str
    path: str
    band_id: int
    album_id: Optional[int] = None
    year: Optional[int] = None
    album_track_num: Optional[int] = None


@dataclass
class Location:
    """Node in the geographic hierarchy bands can be attached to."""

    id: int
    name: str
    parent_id: Optional[int] = None


@dataclass
class ConfigEntry:
    """Configuration entry."""

    key: str
    value: str
    updated_at: Optional[datetime] = None


@dataclass
class QueueItem:
    """
    Playable item held by the playback engine.

    Carries everything needed to display and play a song, so a saved queue can
    be restored without touching the catalog.
    """

    media_id: str  # External id like "song:42"
    song_id: int
    band_id: int
    artist_name: str
    song_title: str
    display_title: str
    uri: str
    track_number: int = 0  # 0 when unknown
    release_year: int = 0  # 0 when unknown
    album_id: Optional[int] = None
    album_title: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase document stored in snapshots."""
        data: Dict[str, Any] = {
            "mediaId": self.media_id,
            "songId": self.song_id,
            "bandId": self.band_id,
            "artistName": self.artist_name,
            "songTitle": self.song_title,
            "songDisplayTitle": self.display_title,
            "trackNumber": self.track_number,
            "releaseYear": self.release_year,
            "uri": self.uri,
        }
        if self.album_id is not None:
            data["albumId"] = self.album_id
        if self.album_title is not None:
            data["albumTitle"] = self.album_title
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QueueItem":
        """
        Build a QueueItem from a snapshot document.

        Raises:
            KeyError: If a required key is missing
        """
        return cls(
            media_id=data["mediaId"],
            song_id=int(data["songId"]),
            band_id=int(data["bandId"]),
            artist_name=data["artistName"],
            song_title=data["songTitle"],
            display_title=data.get("songDisplayTitle", data["songTitle"]),
            uri=data["uri"],
            track_number=int(data.get("trackNumber", 0)),
            release_year=int(data.get("releaseYear", 0)),
            album_id=int(data["albumId"]) if "albumId" in data else None,
            album_title=data.get("albumTitle"),
        )
