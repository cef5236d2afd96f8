"""
Unit tests for the presence tracker.
"""

from bridgebot.realtime.player_presence_tracker import UNKNOWN_PLAYER_NAME, PresenceTracker


def test_join_then_lookup():
    tracker = PresenceTracker()
    tracker.record_join("p1", "Alice")

    assert tracker.lookup("p1") == "Alice"
    assert "p1" in tracker
    assert len(tracker) == 1


def test_lookup_unknown_player():
    """Ids never seen joining resolve to the Unknown sentinel."""
    assert PresenceTracker().lookup("p2") == UNKNOWN_PLAYER_NAME == "Unknown"


def test_forget_removes_entry():
    tracker = PresenceTracker()
    tracker.record_join("p1", "Alice")

    assert tracker.forget("p1") is True
    assert "p1" not in tracker
    assert tracker.lookup("p1") == "Unknown"


def test_forget_unknown_player_is_noop():
    tracker = PresenceTracker()
    tracker.record_join("p1", "Alice")

    assert tracker.forget("p2") is False
    assert tracker.online_players() == {"p1": "Alice"}


def test_rejoin_overwrites_name():
    tracker = PresenceTracker()
    tracker.record_join("p1", "Alice")
    tracker.record_join("p1", "Alicia")

    assert tracker.lookup("p1") == "Alicia"
    assert len(tracker) == 1


def test_duplicate_display_names_are_kept_apart():
    tracker = PresenceTracker()
    tracker.record_join("p1", "Steve")
    tracker.record_join("p2", "Steve")
    tracker.forget("p1")

    assert tracker.online_players() == {"p2": "Steve"}


def test_online_players_is_a_copy():
    tracker = PresenceTracker()
    tracker.record_join("p1", "Alice")
    snapshot = tracker.online_players()
    snapshot.clear()

    assert len(tracker) == 1
