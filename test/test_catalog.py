"""
Unit tests for CatalogService.
"""

from mcotp.catalog import CatalogService


def test_queue_item_for_album_track(catalog):
    """Album tracks carry album details and the album's year."""
    item = catalog.queue_item(catalog.get_song(2))

    assert item.media_id == "song:2"
    assert item.song_id == 2
    assert item.band_id == 1
    assert item.artist_name == "Alpha"
    assert item.song_title == "Two"
    assert item.display_title == "Two"
    assert item.uri == "/music/Alpha/First/02 Two.mp3"
    assert item.track_number == 2
    assert item.release_year == 1994
    assert item.album_id == 1
    assert item.album_title == "First"


def test_queue_item_for_loose_song(catalog):
    item = catalog.queue_item(catalog.get_song(6))

    assert item.release_year == 1992
    assert item.track_number == 0
    assert item.album_id is None
    assert item.album_title is None


def test_queue_item_with_missing_band(temp_db):
    """Songs whose band is gone are skipped rather than failing the batch."""
    catalog = CatalogService(temp_db)
    band_id = catalog.bands.add("Alpha", "/music/Alpha")
    good = catalog.songs.add("Kept", "/music/Alpha/Kept.mp3", band_id)
    orphan = catalog.songs.add("Orphan", "/music/Orphan.mp3", 999)

    assert catalog.queue_item(catalog.get_song(orphan)) is None
    items = catalog.queue_items([catalog.get_song(good), catalog.get_song(orphan)])
    assert [item.song_id for item in items] == [good]


def test_years_by_decade(catalog):
    assert catalog.get_years_by_decade() == {
        1980: [1988],
        1990: [1992, 1994, 1997],
        2000: [2001, 2005],
    }
    assert catalog.get_decades() == [1980, 1990, 2000]
    assert catalog.get_years_for_decade(1990) == [1992, 1994, 1997]
    assert catalog.get_years_for_decade(1970) == []


def test_random_picks_on_empty_catalog(temp_db):
    catalog = CatalogService(temp_db)
    assert catalog.get_random_song() is None
    assert catalog.get_random_band() is None
    assert catalog.get_random_album() is None
    assert catalog.get_random_songs(10) == []


def test_location_helpers(catalog):
    descendants = catalog.get_descendant_location_ids(1)
    assert catalog.get_band_ids_for_locations(descendants) == [1, 2, 3]
    assert catalog.get_location_label(6) == "Asia/Japan"
