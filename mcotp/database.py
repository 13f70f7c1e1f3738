"""
Database module for mcotp.

Handles SQLite database initialization, schema creation, connection management,
and the repositories used to read and populate the music catalog.
"""

import logging
import sqlite3
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .models import Album, Band, ConfigEntry, Location, Song

# Year of a song: the album year wins when the song is on an album
_SONG_YEAR = "COALESCE(a.year, s.year)"

_SONG_COLUMNS = (
    "s.id, s.name, s.path, s.band_id, s.album_id, s.album_track_num, "
    f"{_SONG_YEAR} AS year"
)

_SONG_SELECT = f"SELECT {_SONG_COLUMNS} FROM songs s LEFT JOIN albums a ON a.id = s.album_id"


class Database:
    """Manages SQLite database connection and schema."""

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize database connection.

        Args:
            db_path: Path to SQLite database file. If None, uses ~/.mcotp/mcotp.db
        """
        self.logger = logging.getLogger(__name__)

        if db_path is None:
            home = Path.home()
            mcotp_dir = home / ".mcotp"
            mcotp_dir.mkdir(exist_ok=True)
            db_path = str(mcotp_dir / "mcotp.db")

        self.db_path = db_path
        self._ensure_schema()
        self.logger.info("Database initialized at %s", self.db_path)

    def _ensure_schema(self):
        """Ensure database schema exists."""
        conn = self.get_connection()
        try:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS bands (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    path TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS albums (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    path TEXT NOT NULL,
                    band_id INTEGER NOT NULL,
                    year INTEGER,
                    FOREIGN KEY (band_id) REFERENCES bands(id)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS songs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    path TEXT NOT NULL,
                    band_id INTEGER NOT NULL,
                    album_id INTEGER,
                    year INTEGER,
                    album_track_num INTEGER,
                    FOREIGN KEY (band_id) REFERENCES bands(id),
                    FOREIGN KEY (album_id) REFERENCES albums(id)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS locations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    parent_id INTEGER,
                    FOREIGN KEY (parent_id) REFERENCES locations(id)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS band_locations (
                    band_id INTEGER NOT NULL,
                    location_id INTEGER NOT NULL,
                    PRIMARY KEY (band_id, location_id)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS config (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            cursor.execute("CREATE INDEX IF NOT EXISTS idx_songs_band ON songs(band_id)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_songs_album ON songs(album_id)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_albums_band ON albums(band_id)")
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_locations_parent ON locations(parent_id)"
            )

            conn.commit()
        finally:
            conn.close()
        self.logger.debug("Database schema created/verified")

    def get_connection(self):
        """
        Get a new database connection (thread-safe).

        Each thread should get its own connection. Caller is responsible
        for closing the connection when done.
        """
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def close(self):
        """Close database connection (no-op since we use per-call connections)."""
        pass

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()


def _row_to_band(row) -> Band:
    return Band(id=row["id"], name=row["name"], path=row["path"])


def _row_to_album(row) -> Album:
    return Album(
        id=row["id"],
        name=row["name"],
        path=row["path"],
        band_id=row["band_id"],
        year=row["year"],
    )


def _row_to_song(row) -> Song:
    return Song(
        id=row["id"],
        name=row["name"],
        path=row["path"],
        band_id=row["band_id"],
        album_id=row["album_id"],
        year=row["year"],
        album_track_num=row["album_track_num"],
    )


def _row_to_location(row) -> Location:
    return Location(id=row["id"], name=row["name"], parent_id=row["parent_id"])


def _placeholders(values: List[int]) -> str:
    return ", ".join("?" for _ in values)


class _Repository:
    """Shared query helpers for repositories."""

    def __init__(self, database: Database):
        self.database = database
        self.logger = logging.getLogger(__name__)

    def _fetch_all(self, query: str, params: Iterable = ()) -> List[sqlite3.Row]:
        conn = self.database.get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(query, tuple(params))
            return cursor.fetchall()
        finally:
            conn.close()

    def _fetch_one(self, query: str, params: Iterable = ()) -> Optional[sqlite3.Row]:
        conn = self.database.get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(query, tuple(params))
            return cursor.fetchone()
        finally:
            conn.close()

    def _insert(self, query: str, params: Iterable) -> int:
        conn = self.database.get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(query, tuple(params))
            conn.commit()
            return cursor.lastrowid
        finally:
            conn.close()


class BandRepository(_Repository):
    """Band queries."""

    def add(self, name: str, path: str) -> int:
        """Insert a band and return its id."""
        return self._insert("INSERT INTO bands (name, path) VALUES (?, ?)", (name, path))

    def get(self, band_id: int) -> Optional[Band]:
        row = self._fetch_one("SELECT * FROM bands WHERE id = ?", (band_id,))
        return _row_to_band(row) if row else None

    def get_all(self) -> List[Band]:
        return [_row_to_band(r) for r in self._fetch_all("SELECT * FROM bands ORDER BY name")]

    def get_many(self, band_ids: List[int]) -> List[Band]:
        if not band_ids:
            return []
        rows = self._fetch_all(
            f"SELECT * FROM bands WHERE id IN ({_placeholders(band_ids)}) ORDER BY name",
            band_ids,
        )
        return [_row_to_band(r) for r in rows]

    def get_random(self) -> Optional[Band]:
        row = self._fetch_one("SELECT * FROM bands ORDER BY random() LIMIT 1")
        return _row_to_band(row) if row else None

    def get_initial_letters(self) -> List[str]:
        rows = self._fetch_all(
            "SELECT DISTINCT substr(name, 1, 1) AS letter FROM bands ORDER BY letter"
        )
        return [row["letter"] for row in rows]

    def get_starting_with(self, letter: str) -> List[Band]:
        rows = self._fetch_all(
            "SELECT * FROM bands WHERE substr(name, 1, 1) = ? ORDER BY name", (letter,)
        )
        return [_row_to_band(r) for r in rows]

    def get_ids_for_locations(self, location_ids: List[int]) -> List[int]:
        """Get ids of bands attached to any of the given locations."""
        if not location_ids:
            return []
        rows = self._fetch_all(
            "SELECT DISTINCT band_id FROM band_locations "
            f"WHERE location_id IN ({_placeholders(location_ids)}) ORDER BY band_id",
            location_ids,
        )
        return [row["band_id"] for row in rows]

    def add_location(self, band_id: int, location_id: int) -> None:
        """Attach a band to a location."""
        self._insert(
            "INSERT OR IGNORE INTO band_locations (band_id, location_id) VALUES (?, ?)",
            (band_id, location_id),
        )


class AlbumRepository(_Repository):
    """Album queries."""

    def add(self, name: str, path: str, band_id: int, year: Optional[int] = None) -> int:
        """Insert an album and return its id."""
        return self._insert(
            "INSERT INTO albums (name, path, band_id, year) VALUES (?, ?, ?, ?)",
            (name, path, band_id, year),
        )

    def get(self, album_id: int) -> Optional[Album]:
        row = self._fetch_one("SELECT * FROM albums WHERE id = ?", (album_id,))
        return _row_to_album(row) if row else None

    def get_all_for_band(self, band_id: int) -> List[Album]:
        rows = self._fetch_all(
            "SELECT * FROM albums WHERE band_id = ? ORDER BY year, name", (band_id,)
        )
        return [_row_to_album(r) for r in rows]

    def get_random(self) -> Optional[Album]:
        row = self._fetch_one("SELECT * FROM albums ORDER BY random() LIMIT 1")
        return _row_to_album(row) if row else None


class SongRepository(_Repository):
    """Song queries. Year columns resolve to the album year when there is one."""

    def add(
        self,
        name: str,
        path: str,
        band_id: int,
        album_id: Optional[int] = None,
        year: Optional[int] = None,
        album_track_num: Optional[int] = None,
    ) -> int:
        """Insert a song and return its id."""
        return self._insert(
            "INSERT INTO songs (name, path, band_id, album_id, year, album_track_num) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (name, path, band_id, album_id, year, album_track_num),
        )

    def get(self, song_id: int) -> Optional[Song]:
        row = self._fetch_one(f"{_SONG_SELECT} WHERE s.id = ?", (song_id,))
        return _row_to_song(row) if row else None

    def get_random(self) -> Optional[Song]:
        row = self._fetch_one(f"{_SONG_SELECT} ORDER BY random() LIMIT 1")
        return _row_to_song(row) if row else None

    def get_random_for_band(self, band_id: int) -> Optional[Song]:
        row = self._fetch_one(
            f"{_SONG_SELECT} WHERE s.band_id = ? ORDER BY random() LIMIT 1", (band_id,)
        )
        return _row_to_song(row) if row else None

    def get_random_for_album(self, album_id: int) -> Optional[Song]:
        row = self._fetch_one(
            f"{_SONG_SELECT} WHERE s.album_id = ? ORDER BY random() LIMIT 1", (album_id,)
        )
        return _row_to_song(row) if row else None

    def get_random_songs(self, limit: int) -> List[Song]:
        rows = self._fetch_all(f"{_SONG_SELECT} ORDER BY random() LIMIT ?", (limit,))
        return [_row_to_song(r) for r in rows]

    def get_random_songs_for_band(self, band_id: int, limit: int) -> List[Song]:
        rows = self._fetch_all(
            f"{_SONG_SELECT} WHERE s.band_id = ? ORDER BY random() LIMIT ?", (band_id, limit)
        )
        return [_row_to_song(r) for r in rows]

    def get_random_songs_for_bands(self, band_ids: List[int], limit: int) -> List[Song]:
        if not band_ids:
            return []
        rows = self._fetch_all(
            f"{_SONG_SELECT} WHERE s.band_id IN ({_placeholders(band_ids)}) "
            "ORDER BY random() LIMIT ?",
            [*band_ids, limit],
        )
        return [_row_to_song(r) for r in rows]

    def get_for_album(self, album_id: int) -> List[Song]:
        """Get an album's songs in track order."""
        rows = self._fetch_all(
            f"{_SONG_SELECT} WHERE s.album_id = ? ORDER BY s.album_track_num, s.name",
            (album_id,),
        )
        return [_row_to_song(r) for r in rows]

    def get_sequential_for_band(self, band_id: int) -> List[Song]:
        """Get a band's songs in chronological order, album tracks kept together."""
        rows = self._fetch_all(
            f"{_SONG_SELECT} WHERE s.band_id = ? "
            f"ORDER BY {_SONG_YEAR}, s.album_id, s.album_track_num, s.name, s.id",
            (band_id,),
        )
        return [_row_to_song(r) for r in rows]

    def get_loose_for_band(self, band_id: int) -> List[Song]:
        """Get a band's songs that are not on any album."""
        rows = self._fetch_all(
            f"{_SONG_SELECT} WHERE s.band_id = ? AND s.album_id IS NULL ORDER BY s.name",
            (band_id,),
        )
        return [_row_to_song(r) for r in rows]

    def get_random_songs_for_year_range(
        self, start_year: int, end_year: int, limit: int
    ) -> List[Song]:
        rows = self._fetch_all(
            f"{_SONG_SELECT} WHERE {_SONG_YEAR} BETWEEN ? AND ? ORDER BY random() LIMIT ?",
            (start_year, end_year, limit),
        )
        return [_row_to_song(r) for r in rows]

    def get_years(self) -> List[int]:
        rows = self._fetch_all(
            f"SELECT DISTINCT {_SONG_YEAR} AS year FROM songs s "
            "LEFT JOIN albums a ON a.id = s.album_id "
            f"WHERE {_SONG_YEAR} IS NOT NULL ORDER BY year"
        )
        return [row["year"] for row in rows]


class LocationRepository(_Repository):
    """Location hierarchy queries."""

    def add(self, name: str, parent_id: Optional[int] = None) -> int:
        """Insert a location and return its id."""
        return self._insert(
            "INSERT INTO locations (name, parent_id) VALUES (?, ?)", (name, parent_id)
        )

    def get(self, location_id: int) -> Optional[Location]:
        row = self._fetch_one("SELECT * FROM locations WHERE id = ?", (location_id,))
        return _row_to_location(row) if row else None

    def get_top_level(self) -> List[Location]:
        rows = self._fetch_all("SELECT * FROM locations WHERE parent_id IS NULL ORDER BY name")
        return [_row_to_location(r) for r in rows]

    def get_children(self, parent_id: int) -> List[Location]:
        rows = self._fetch_all(
            "SELECT * FROM locations WHERE parent_id = ? ORDER BY name", (parent_id,)
        )
        return [_row_to_location(r) for r in rows]

    def get_child_ids(self, parent_ids: List[int]) -> List[int]:
        if not parent_ids:
            return []
        rows = self._fetch_all(
            f"SELECT id FROM locations WHERE parent_id IN ({_placeholders(parent_ids)})",
            parent_ids,
        )
        return [row["id"] for row in rows]

    def get_descendant_ids(self, location_id: int) -> List[int]:
        """
        Get a location's id plus the ids of everything beneath it.

        Returns an empty list if the location does not exist.
        """
        if self.get(location_id) is None:
            return []
        found = [location_id]
        seen = {location_id}
        children = self.get_child_ids([location_id])
        while children:
            # Guard against cycles in hand-edited data
            children = [c for c in children if c not in seen]
            found.extend(children)
            seen.update(children)
            children = self.get_child_ids(children)
        return found

    def get_full_label(self, location_id: int) -> Optional[str]:
        """Get a "Parent/Child" style label for a location."""
        location = self.get(location_id)
        if location is None:
            return None
        parts = [location.name]
        seen = {location.id}
        while location.parent_id is not None and location.parent_id not in seen:
            location = self.get(location.parent_id)
            if location is None:
                break
            seen.add(location.id)
            parts.insert(0, location.name)
        return "/".join(parts)


class ConfigRepository(_Repository):
    """Key/value configuration storage."""

    def initialize_defaults(self, defaults: Dict[str, Optional[str]]) -> None:
        """Insert default values for keys that are not set yet."""
        conn = self.database.get_connection()
        try:
            cursor = conn.cursor()
            for key, value in defaults.items():
                if value is None:
                    continue
                cursor.execute(
                    "INSERT OR IGNORE INTO config (key, value) VALUES (?, ?)", (key, str(value))
                )
            conn.commit()
        finally:
            conn.close()

    def get(self, key: str) -> Optional[ConfigEntry]:
        row = self._fetch_one("SELECT * FROM config WHERE key = ?", (key,))
        if not row:
            return None
        return ConfigEntry(key=row["key"], value=row["value"], updated_at=row["updated_at"])

    def get_all(self) -> List[ConfigEntry]:
        rows = self._fetch_all("SELECT * FROM config ORDER BY key")
        return [ConfigEntry(key=r["key"], value=r["value"], updated_at=r["updated_at"]) for r in rows]

    def set(self, key: str, value: str) -> bool:
        conn = self.database.get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO config (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (key, value),
            )
            conn.commit()
            return True
        except sqlite3.Error as e:
            self.logger.error("Failed to set config %s: %s", key, e)
            return False
        finally:
            conn.close()
