"""
Unit tests for PlaylistPlayer.
"""

import pytest

from mcotp.models import QueueItem
from mcotp.player import PlaylistPlayer


def make_items(*song_ids):
    return [
        QueueItem(
            media_id=f"song:{song_id}",
            song_id=song_id,
            band_id=1,
            artist_name="Alpha",
            song_title=f"Song {song_id}",
            display_title=f"Song {song_id}",
            uri=f"/music/{song_id}.mp3",
        )
        for song_id in song_ids
    ]


@pytest.fixture
def player():
    return PlaylistPlayer()


@pytest.fixture
def transitions(player):
    """Record the song id of every transition."""
    seen = []
    player.add_listener(lambda item: seen.append(item.song_id if item else None))
    return seen


def song_ids(items):
    return [item.song_id for item in items]


def test_empty_player(player):
    assert player.current_item is None
    assert player.current_index is None
    assert player.next_index == -1
    assert not player.has_next()
    assert player.upcoming_items() == []


def test_first_items_become_current(player, transitions):
    player.add_items(make_items(1, 2, 3))
    assert player.current_item.song_id == 1
    assert player.next_index == 1
    assert transitions == [1]

    player.add_items(make_items(4))
    assert transitions == [1]
    assert song_ids(player.upcoming_items()) == [2, 3, 4]


def test_seek_to_next(player, transitions):
    player.add_items(make_items(1, 2))
    assert player.seek_to_next()
    assert player.current_item.song_id == 2
    assert not player.advance()
    assert player.current_item.song_id == 2
    assert transitions == [1, 2]


def test_remove_items_before_current(player, transitions):
    player.add_items(make_items(1, 2, 3, 4, 5))
    player.seek_to_next()
    player.seek_to_next()

    player.remove_items(0, 2)
    assert song_ids(player.items) == [3, 4, 5]
    assert player.current_index == 0
    assert player.current_item.song_id == 3
    assert transitions == [1, 2, 3]


def test_remove_items_after_current(player, transitions):
    player.add_items(make_items(1, 2, 3, 4))
    player.remove_items(1)
    assert song_ids(player.items) == [1]
    assert player.current_item.song_id == 1
    assert transitions == [1]


def test_remove_current_item(player, transitions):
    """The item sliding into the current slot becomes current."""
    player.add_items(make_items(1, 2, 3))
    player.seek_to_next()

    player.remove_items(1, 2)
    assert player.current_item.song_id == 3
    assert transitions == [1, 2, 3]


def test_remove_everything(player, transitions):
    player.add_items(make_items(1, 2))
    player.remove_items(0)
    assert player.current_item is None
    assert transitions == [1, None]


def test_remove_range_is_clipped(player):
    player.add_items(make_items(1, 2))
    player.remove_items(5, 10)
    player.remove_items(-3, 0)
    assert song_ids(player.items) == [1, 2]


def test_set_items(player, transitions):
    player.add_items(make_items(1, 2))
    player.set_items(make_items(7, 8))
    assert player.current_item.song_id == 7
    assert song_ids(player.upcoming_items()) == [8]
    assert transitions == [1, 7]

    player.set_item(make_items(9)[0])
    assert song_ids(player.items) == [9]

    player.clear()
    assert player.current_item is None
    assert transitions == [1, 7, 9, None]


def test_remove_listener(player, transitions):
    listener = player._listeners[0]
    player.remove_listener(listener)
    player.add_items(make_items(1))
    assert transitions == []


def test_play_pause(player):
    assert not player.is_playing
    player.play()
    assert player.is_playing
    player.pause()
    assert not player.is_playing
