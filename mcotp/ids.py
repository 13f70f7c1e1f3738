"""
External identifiers.

Catalog rows use integer ids that are only unique per table. Everything that
leaves the catalog (queue items, browse results, play-item commands) uses a
prefixed string id such as "band:12" that is unique across types.
"""

from typing import Tuple

BAND_PREFIX = "band"
ALBUM_PREFIX = "album"
SONG_PREFIX = "song"
DECADE_PREFIX = "decade"
YEAR_PREFIX = "year"
LOCATION_PREFIX = "location"
GROUP_PREFIX = "group"

_INT_PREFIXES = {
    BAND_PREFIX,
    ALBUM_PREFIX,
    SONG_PREFIX,
    DECADE_PREFIX,
    YEAR_PREFIX,
    LOCATION_PREFIX,
}


class InvalidExternalId(ValueError):
    """Raised when an external id cannot be parsed."""


def external_id(prefix: str, internal_id) -> str:
    """Build an external id from a prefix and an internal id."""
    return f"{prefix}:{internal_id}"


def split_id(value: str) -> Tuple[str, str]:
    """Split an external id into (prefix, raw id)."""
    prefix, sep, raw = value.partition(":")
    if not sep or not prefix or not raw:
        raise InvalidExternalId(f"Malformed external id: {value!r}")
    return prefix, raw


def parse_id(value: str) -> Tuple[str, int]:
    """
    Parse an external id whose payload is an integer.

    Args:
        value: External id like "album:7"

    Returns:
        Tuple of (prefix, integer id)

    Raises:
        InvalidExternalId: If the id is malformed or its type has no integer payload
    """
    prefix, raw = split_id(value)
    if prefix not in _INT_PREFIXES:
        raise InvalidExternalId(f"Unknown id type {prefix!r} in {value!r}")
    try:
        return prefix, int(raw)
    except ValueError:
        raise InvalidExternalId(f"Non-numeric id in {value!r}") from None
