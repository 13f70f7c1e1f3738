"""
Persistence codec for providers and queue snapshots.

Provider documents look like ``{"type": "album_sequential", "albumId": 4,
"partitionId": 17, "isCompleted": false}``. Decoding never fails: a missing,
unknown, or malformed document decodes to ShuffleProvider, so playback can
always start.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .models import QueueItem
from .providers import (
    AlbumSequentialProvider,
    BandSequentialProvider,
    BandShuffleProvider,
    BlockPartyProvider,
    DoubleShotProvider,
    LocationShuffleProvider,
    ProviderKind,
    ShuffleProvider,
    SongProvider,
    YearRangeShuffleProvider,
)

logger = logging.getLogger(__name__)

_LEGACY_KINDS = list(ProviderKind)


def _optional_int(doc: Dict[str, Any], key: str) -> Optional[int]:
    value = doc.get(key)
    # Older documents used -1 for "not set"
    if value is None or value == -1:
        return None
    return int(value)


_ENCODERS: Dict[ProviderKind, Callable[[Any], Dict[str, Any]]] = {
    ProviderKind.CATALOG_SHUFFLE: lambda p: {},
    ProviderKind.BAND_SHUFFLE: lambda p: {"bandId": p.band_id},
    ProviderKind.BAND_SEQUENTIAL: lambda p: {
        "bandId": p.band_id,
        "forcedStartSongId": p.start_song_id,
        "isCompleted": p.completed,
    },
    ProviderKind.YEAR_SHUFFLE: lambda p: {"startYear": p.start_year, "endYear": p.end_year},
    ProviderKind.ALBUM_SEQUENTIAL: lambda p: {
        "albumId": p.album_id,
        "partitionId": p.start_song_id,
        "isCompleted": p.completed,
    },
    ProviderKind.DOUBLE_SHOT: lambda p: {},
    ProviderKind.BLOCK_PARTY: lambda p: {"doBlockNext": p.block_next},
    ProviderKind.LOCATION_SHUFFLE: lambda p: {"locationId": p.location_id},
}

_DECODERS: Dict[ProviderKind, Callable[[Dict[str, Any]], SongProvider]] = {
    ProviderKind.CATALOG_SHUFFLE: lambda d: ShuffleProvider(),
    ProviderKind.BAND_SHUFFLE: lambda d: BandShuffleProvider(int(d["bandId"])),
    ProviderKind.BAND_SEQUENTIAL: lambda d: BandSequentialProvider(
        int(d["bandId"]),
        start_song_id=_optional_int(d, "forcedStartSongId"),
        completed=bool(d.get("isCompleted", False)),
    ),
    ProviderKind.YEAR_SHUFFLE: lambda d: YearRangeShuffleProvider(
        int(d["startYear"]), int(d["endYear"])
    ),
    ProviderKind.ALBUM_SEQUENTIAL: lambda d: AlbumSequentialProvider(
        int(d["albumId"]),
        start_song_id=_optional_int(d, "partitionId"),
        completed=bool(d.get("isCompleted", False)),
    ),
    ProviderKind.DOUBLE_SHOT: lambda d: DoubleShotProvider(),
    ProviderKind.BLOCK_PARTY: lambda d: BlockPartyProvider(
        block_next=bool(d.get("doBlockNext", True))
    ),
    ProviderKind.LOCATION_SHUFFLE: lambda d: LocationShuffleProvider(int(d["locationId"])),
}


def encode_provider(provider: SongProvider) -> Dict[str, Any]:
    """Encode a provider's full state as a tagged document."""
    doc: Dict[str, Any] = {"type": provider.kind.value}
    for key, value in _ENCODERS[provider.kind](provider).items():
        if value is not None:
            doc[key] = value
    if provider.forced_song_id is not None:
        doc["forcedSongId"] = provider.forced_song_id
    return doc


def _decode_kind(tag: Any) -> Optional[ProviderKind]:
    if isinstance(tag, bool):
        return None
    if isinstance(tag, int):
        if 0 <= tag < len(_LEGACY_KINDS):
            return _LEGACY_KINDS[tag]
        return None
    try:
        return ProviderKind(tag)
    except ValueError:
        return None


def decode_provider(doc: Optional[Dict[str, Any]]) -> SongProvider:
    """
    Rebuild a provider from a tagged document.

    Args:
        doc: Document produced by encode_provider (or an older format)

    Returns:
        The provider, or ShuffleProvider if the document can't be used
    """
    if not isinstance(doc, dict):
        logger.warning("Provider state is not a document, using shuffle: %r", doc)
        return ShuffleProvider()

    kind = _decode_kind(doc.get("type", ProviderKind.CATALOG_SHUFFLE.value))
    if kind is None:
        logger.warning("Unknown provider type %r, using shuffle", doc.get("type"))
        return ShuffleProvider()

    try:
        provider = _DECODERS[kind](doc)
        provider.forced_song_id = _optional_int(doc, "forcedSongId")
    except (KeyError, TypeError, ValueError) as e:
        logger.warning("Malformed %s provider state %r (%s), using shuffle", kind.value, doc, e)
        return ShuffleProvider()
    return provider


@dataclass
class QueueSnapshot:
    """
    Everything needed to resume playback after a restart.

    ``current_item`` followed by ``future_items`` is the playback buffer from
    the playing item onward. Items carry their own metadata, so restoring does
    not need the catalog.
    """

    provider: Dict[str, Any]
    current_item: Optional[QueueItem] = None
    future_items: List[QueueItem] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.current_item is not None:
            data["currentItem"] = self.current_item.to_dict()
        data["futureItems"] = [item.to_dict() for item in self.future_items]
        data["provider"] = self.provider
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QueueSnapshot":
        """
        Parse a snapshot document.

        Items that can't be parsed are dropped with a warning; the provider
        document is kept as-is and validated by decode_provider.
        """
        current = None
        if data.get("currentItem") is not None:
            current = _parse_item(data["currentItem"])
        future = []
        for raw in data.get("futureItems") or []:
            item = _parse_item(raw)
            if item is not None:
                future.append(item)
        provider = data.get("provider")
        return cls(
            provider=provider if isinstance(provider, dict) else {},
            current_item=current,
            future_items=future,
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, text: str) -> "QueueSnapshot":
        """
        Parse a JSON snapshot.

        Raises:
            ValueError: If the text is not a JSON object
        """
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("Snapshot must be a JSON object")
        return cls.from_dict(data)


def _parse_item(raw: Any) -> Optional[QueueItem]:
    try:
        return QueueItem.from_dict(raw)
    except (KeyError, TypeError, ValueError) as e:
        logger.warning("Dropping unreadable queue item %r: %s", raw, e)
        return None
