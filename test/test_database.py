"""
Unit tests for the catalog database and repositories.
"""

from mcotp.database import BandRepository, ConfigRepository, Database, LocationRepository


def test_schema_is_idempotent(temp_db):
    """Opening the same file twice keeps the data."""
    BandRepository(temp_db).add("Alpha", "/music/Alpha")
    reopened = Database(db_path=temp_db.db_path)
    assert [b.name for b in BandRepository(reopened).get_all()] == ["Alpha"]


def test_song_year_prefers_album_year(catalog):
    """Album tracks report the album's year; loose songs keep their own."""
    assert catalog.songs.get(1).year == 1994
    assert catalog.songs.get(4).year == 1997
    assert catalog.songs.get(6).year == 1992
    assert catalog.songs.get(999) is None


def test_sequential_order_for_band(catalog):
    """Songs come back by year, then album, then track."""
    songs = catalog.songs.get_sequential_for_band(1)
    assert [s.id for s in songs] == [6, 1, 2, 3, 4, 5]


def test_album_songs_in_track_order(catalog):
    assert [s.name for s in catalog.songs.get_for_album(1)] == ["One", "Two", "Three"]


def test_loose_songs_for_band(catalog):
    assert [s.name for s in catalog.songs.get_loose_for_band(1)] == ["Demo"]


def test_random_song_limits(catalog):
    """Random queries respect the limit and never invent songs."""
    assert len(catalog.songs.get_random_songs(4)) == 4
    assert len(catalog.songs.get_random_songs(100)) == 15
    band_songs = catalog.songs.get_random_songs_for_band(2, 3)
    assert len(band_songs) == 3
    assert all(s.band_id == 2 for s in band_songs)
    assert catalog.songs.get_random_songs_for_bands([], 10) == []


def test_random_songs_for_year_range(catalog):
    songs = catalog.songs.get_random_songs_for_year_range(1994, 1994, 10)
    assert sorted(s.id for s in songs) == [1, 2, 3, 13]


def test_years(catalog):
    assert catalog.songs.get_years() == [1988, 1992, 1994, 1997, 2001, 2005]


def test_band_letters(catalog):
    assert catalog.bands.get_initial_letters() == ["A", "B", "D", "E"]
    assert [b.name for b in catalog.bands.get_starting_with("B")] == ["Beta", "Bravo"]


def test_get_many_bands_sorted_by_name(catalog):
    assert [b.name for b in catalog.bands.get_many([3, 1, 2])] == ["Alpha", "Beta", "Bravo"]
    assert catalog.bands.get_many([]) == []


def test_location_descendants(catalog):
    """A location's descendants include itself and every nested child."""
    assert sorted(catalog.locations.get_descendant_ids(1)) == [1, 2, 3, 4]
    assert catalog.locations.get_descendant_ids(3) == [3]
    assert catalog.locations.get_descendant_ids(999) == []


def test_location_descendants_survive_cycles(temp_db):
    """A parent loop in the data does not hang the walk."""
    locations = LocationRepository(temp_db)
    first = locations.add("First")
    second = locations.add("Second", first)
    conn = temp_db.get_connection()
    try:
        conn.execute("UPDATE locations SET parent_id = ? WHERE id = ?", (second, first))
        conn.commit()
    finally:
        conn.close()

    assert sorted(locations.get_descendant_ids(first)) == [first, second]


def test_location_full_label(catalog):
    assert catalog.locations.get_full_label(3) == "Europe/UK/London"
    assert catalog.locations.get_full_label(1) == "Europe"
    assert catalog.locations.get_full_label(999) is None


def test_band_ids_for_locations(catalog):
    assert catalog.bands.get_ids_for_locations([1, 2, 3, 4]) == [1, 2, 3]
    assert catalog.bands.get_ids_for_locations([]) == []


def test_config_repository(temp_db):
    """Defaults are only written for missing keys; set overwrites."""
    repo = ConfigRepository(temp_db)
    repo.initialize_defaults({"a": "1", "b": None})
    assert repo.get("a").value == "1"
    assert repo.get("b") is None

    assert repo.set("a", "2")
    repo.initialize_defaults({"a": "1"})
    assert repo.get("a").value == "2"
    assert [entry.key for entry in repo.get_all()] == ["a"]
