"""
Player presence tracking for the bridge.

Maps a player's stable id to the display name seen when they joined, so a
leave record (which carries only the id) can still be announced by name.
Pure in-memory state, touched only from the bridge's handlers.
"""

from ..logging_config import get_logger

logger = get_logger(__name__)

UNKNOWN_PLAYER_NAME = "Unknown"


class PresenceTracker:
    """In-memory player id → display name cache."""

    def __init__(self) -> None:
        self._players: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._players)

    def __contains__(self, player_id: object) -> bool:
        return player_id in self._players

    def record_join(self, player_id: str, display_name: str) -> None:
        """Remember a joining player, replacing any stale entry for the id."""
        previous = self._players.get(player_id)
        if previous is not None and previous != display_name:
            logger.debug("Player display name changed", player_id=player_id, old=previous, new=display_name)
        self._players[player_id] = display_name

    def lookup(self, player_id: str) -> str:
        """
        Resolve a player id to a display name.

        Returns:
            The cached name, or UNKNOWN_PLAYER_NAME for ids never seen joining
        """
        return self._players.get(player_id, UNKNOWN_PLAYER_NAME)

    def forget(self, player_id: str) -> bool:
        """
        Drop a player's entry.

        Returns:
            True if an entry was removed
        """
        if self._players.pop(player_id, None) is None:
            logger.debug("Leave for untracked player", player_id=player_id)
            return False
        return True

    def online_players(self) -> dict[str, str]:
        """Snapshot of the current cache."""
        return dict(self._players)
