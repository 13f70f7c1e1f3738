"""
API endpoint tests for mcotp.

A background thread stands in for the control thread, draining the
Dispatcher the way MusicServer.run() does.
"""

import threading
import time
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from mcotp.background import BackgroundRunner, Dispatcher
from mcotp.commands import QueueCommands
from mcotp.config_manager import ConfigManager
from mcotp.library import LibraryBrowser
from mcotp.player import PlaylistPlayer
from mcotp.queue import QueueEngine
from mcotp.web.server import create_app


@pytest.fixture
def app_components(catalog, temp_db):
    """Create all app components with a running control thread."""
    dispatcher = Dispatcher()
    runner = BackgroundRunner(dispatcher)
    engine = QueueEngine(catalog, PlaylistPlayer(), runner)

    control = threading.Thread(
        target=dispatcher.run_forever, kwargs={"poll_interval": 0.05}, daemon=True
    )
    control.start()
    dispatcher.call(engine.start).result(timeout=5)

    yield {
        "dispatcher": dispatcher,
        "engine": engine,
        "commands": QueueCommands(engine),
        "browser": LibraryBrowser(catalog),
        "config": ConfigManager(temp_db),
    }

    dispatcher.call(engine.shutdown).result(timeout=5)
    dispatcher.stop()
    control.join(timeout=2)
    runner.shutdown()


@pytest.fixture
def client(app_components):
    app = create_app(
        app_components["engine"],
        app_components["commands"],
        app_components["dispatcher"],
        app_components["browser"],
        app_components["config"],
    )
    return TestClient(app)


def wait_for_status(client, predicate, timeout=5.0):
    """Poll /api/status until predicate(status) holds."""
    deadline = time.monotonic() + timeout
    while True:
        status = client.get("/api/status").json()
        if predicate(status):
            return status
        assert time.monotonic() < deadline, f"Timed out waiting, last status: {status}"
        time.sleep(0.05)


def has_upcoming(status):
    return status["current_item"] is not None and len(status["upcoming"]) > 0


# =========================================================================
# Status
# =========================================================================


def test_status(client):
    status = wait_for_status(client, has_upcoming)
    assert status["mode"] == "collection"
    assert status["sub_mode"] == ""
    assert status["provider"] == {"type": "catalog_shuffle"}
    assert status["is_playing"] is False
    assert "songId" in status["current_item"]


def test_snapshot(client):
    wait_for_status(client, has_upcoming)
    response = client.get("/api/snapshot")
    assert response.status_code == 200
    data = response.json()
    assert data["provider"] == {"type": "catalog_shuffle"}
    assert "currentItem" in data
    assert len(data["futureItems"]) > 0


# =========================================================================
# Commands
# =========================================================================


def test_play_band(client):
    wait_for_status(client, has_upcoming)
    response = client.post("/api/play-item", json={"id": "band:2"})
    assert response.status_code == 200
    assert response.json()["mode"] == "band"

    status = wait_for_status(client, lambda s: s["current_item"]["bandId"] == 2)
    assert all(item["bandId"] == 2 for item in status["upcoming"])


def test_play_song(client):
    wait_for_status(client, has_upcoming)
    client.post("/api/play-item", json={"id": "song:15"})
    status = wait_for_status(client, lambda s: s["current_item"]["songId"] == 15)
    assert status["mode"] == "collection"


@pytest.mark.parametrize("item_id", ["garbage", "group:A", "band:x"])
def test_play_invalid_item(client, item_id):
    response = client.post("/api/play-item", json={"id": item_id})
    assert response.status_code == 400


def test_play_item_requires_id(client):
    response = client.post("/api/play-item", json={})
    assert response.status_code == 422


def test_band_command_toggles(client):
    wait_for_status(client, has_upcoming)
    assert client.post("/api/commands/band").json()["mode"] == "band"
    assert client.post("/api/commands/band").json()["mode"] == "collection"


def test_album_command(client):
    wait_for_status(client, has_upcoming)
    client.post("/api/play-item", json={"id": "song:2"})
    wait_for_status(client, lambda s: s["current_item"]["songId"] == 2)

    status = client.post("/api/commands/album").json()
    assert status["mode"] == "album"
    status = wait_for_status(client, lambda s: len(s["upcoming"]) == 3)
    assert [item["songId"] for item in status["upcoming"]] == [3, 1, 2]


def test_year_command(client):
    wait_for_status(client, has_upcoming)
    status = client.post("/api/commands/year").json()
    assert status["mode"] == "year"
    assert status["sub_mode"] == str(status["current_item"]["releaseYear"])


def test_submode_command(client):
    wait_for_status(client, has_upcoming)
    status = client.post("/api/commands/submode").json()
    assert status["mode"] == "collection"
    assert status["sub_mode"] == "Double-Shot Weekend"


def test_next(client):
    before = wait_for_status(client, has_upcoming)
    response = client.post("/api/player/next")
    assert response.status_code == 200
    data = response.json()
    assert data["advanced"] is True
    assert data["current_item"] == before["upcoming"][0]


# =========================================================================
# Library
# =========================================================================


def test_library_root(client):
    response = client.get("/api/library")
    assert response.status_code == 200
    data = response.json()
    assert data["parent_id"] == "root"
    assert [c["media_id"] for c in data["children"]] == [
        "bands",
        "grouped-bands",
        "years",
        "locations",
    ]


def test_library_children(client):
    response = client.get("/api/library/band:1")
    assert response.status_code == 200
    assert [c["title"] for c in response.json()["children"]] == [
        "First (1994)",
        "Second (1997)",
        "Demo",
    ]


def test_library_unknown(client):
    assert client.get("/api/library/bogus").status_code == 404


def test_library_navigate(client):
    response = client.post(
        "/api/library/navigate",
        json={"parent_ids": ["locations", "location:5"], "focus_id": "band:5"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["breadcrumbs"] == ["locations"]
    assert data["current_id"] == "location:5"
    assert data["focus_index"] == 1


def test_library_navigate_stops_at_unknown(client):
    response = client.post(
        "/api/library/navigate",
        json={"parent_ids": ["bands", "bogus", "band:1"], "focus_id": "album:1"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["current_id"] == "bands"
    assert data["focus_index"] is None


def test_library_navigate_error(client, app_components):
    browser = app_components["browser"]
    with patch.object(browser, "get_children", side_effect=RuntimeError("disk gone")):
        response = client.post(
            "/api/library/navigate",
            json={"parent_ids": ["bands"], "focus_id": "band:1"},
        )
    assert response.status_code == 500


# =========================================================================
# Configuration
# =========================================================================


def test_get_config(client):
    data = client.get("/api/config").json()
    assert data["values"]["web_port"] == "8000"
    assert "queue_snapshot" not in data["values"]
    assert "web_port" in data["schema"]
    assert "playback" in data["groups"]


def test_update_config(client, app_components):
    response = client.patch("/api/config", json={"key": "web_port", "value": "9000"})
    assert response.status_code == 200
    assert app_components["config"].get("web_port") == "9000"


def test_update_unknown_config(client):
    response = client.patch("/api/config", json={"key": "queue_snapshot", "value": "{}"})
    assert response.status_code == 400
