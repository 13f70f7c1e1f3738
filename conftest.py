"""
Pytest configuration for mcotp tests.

Provides:
- temp_db: an empty database in a temporary file
- catalog: a small sample catalog (bands, albums, songs, locations)
- engine: a QueueEngine over the sample catalog, driven from the test thread
"""

import os
import tempfile

import pytest

from mcotp.background import BackgroundRunner, Dispatcher
from mcotp.catalog import CatalogService
from mcotp.database import Database
from mcotp.player import PlaylistPlayer
from mcotp.queue import QueueEngine


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    db = Database(db_path=path)
    yield db
    db.close()
    os.unlink(path)


def populate_catalog(catalog):
    """
    Fill a catalog with sample data. Ids are assigned in insertion order:

    Bands:  1 Alpha, 2 Beta, 3 Bravo, 4 Delta, 5 Echo
    Albums: 1 First (Alpha, 1994), 2 Second (Alpha, 1997), 3 Beta LP (Beta, 2001)
    Songs:  1-3 on First, 4-5 on Second, 6 Demo (Alpha, 1992, no album),
            7-12 on Beta LP, 13 Single (Bravo, 1994), 14 Tokyo (Delta, 2005),
            15 Osaka (Echo, 1988)
    Locations: 1 Europe > 2 UK > 3 London, 1 Europe > 4 Germany, 5 Asia > 6 Japan
    Band locations: Alpha in London, Beta in Germany, Bravo in UK,
                    Delta in Japan, Echo in Asia
    """
    bands = catalog.bands
    albums = catalog.albums
    songs = catalog.songs
    locations = catalog.locations

    alpha = bands.add("Alpha", "/music/Alpha")
    beta = bands.add("Beta", "/music/Beta")
    bravo = bands.add("Bravo", "/music/Bravo")
    delta = bands.add("Delta", "/music/Delta")
    echo = bands.add("Echo", "/music/Echo")

    first = albums.add("First", "/music/Alpha/First", alpha, 1994)
    second = albums.add("Second", "/music/Alpha/Second", alpha, 1997)
    beta_lp = albums.add("Beta LP", "/music/Beta/Beta LP", beta, 2001)

    for track, name in enumerate(["One", "Two", "Three"], start=1):
        songs.add(name, f"/music/Alpha/First/{track:02d} {name}.mp3", alpha, first, None, track)
    for track, name in enumerate(["Four", "Five"], start=1):
        songs.add(name, f"/music/Alpha/Second/{track:02d} {name}.mp3", alpha, second, None, track)
    songs.add("Demo", "/music/Alpha/Demo.mp3", alpha, None, 1992)
    for track in range(1, 7):
        songs.add(f"B{track}", f"/music/Beta/Beta LP/{track:02d}.mp3", beta, beta_lp, None, track)
    songs.add("Single", "/music/Bravo/Single.mp3", bravo, None, 1994)
    songs.add("Tokyo", "/music/Delta/Tokyo.mp3", delta, None, 2005)
    songs.add("Osaka", "/music/Echo/Osaka.mp3", echo, None, 1988)

    europe = locations.add("Europe")
    uk = locations.add("UK", europe)
    london = locations.add("London", uk)
    germany = locations.add("Germany", europe)
    asia = locations.add("Asia")
    japan = locations.add("Japan", asia)

    bands.add_location(alpha, london)
    bands.add_location(beta, germany)
    bands.add_location(bravo, uk)
    bands.add_location(delta, japan)
    bands.add_location(echo, asia)


@pytest.fixture
def catalog(temp_db):
    """Create a CatalogService over the sample catalog."""
    service = CatalogService(temp_db)
    populate_catalog(service)
    return service


@pytest.fixture
def dispatcher():
    return Dispatcher()


@pytest.fixture
def runner(dispatcher):
    """Create a BackgroundRunner whose results are drained by the test thread."""
    background = BackgroundRunner(dispatcher)
    yield background
    background.shutdown()


@pytest.fixture
def engine(catalog, runner):
    """Create a QueueEngine with an empty player. The test thread is the control thread."""
    queue_engine = QueueEngine(catalog, PlaylistPlayer(), runner)
    yield queue_engine
    queue_engine.shutdown()
