"""
Event types exchanged between the transports and the bridge.

Each transport emits a closed set of variants. The bridge dispatches on the
concrete class, so adding a variant means adding it to the union below and
to the bridge's handler table.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum


def _default_timestamp() -> datetime:
    """Factory function for default timestamp."""
    return datetime.now(UTC)


class ChatEventKind(Enum):
    """What a relayed chat line represents."""

    PLAYER_CHAT = "player_chat"
    SYSTEM_NOTICE = "system_notice"


class PresenceAction(Enum):
    """Direction of a presence change."""

    JOIN = "join"
    LEAVE = "leave"


@dataclass(frozen=True)
class ChatEvent:
    """
    A line of chat decoded from either transport.

    Carries no identity beyond its content; two identical lines are two
    events and both get relayed.
    """

    source_username: str
    content: str
    kind: ChatEventKind = ChatEventKind.PLAYER_CHAT
    message_type: str = "chat"
    timestamp: datetime = field(default_factory=_default_timestamp, compare=False)


@dataclass(frozen=True)
class PresenceEvent:
    """
    A player joining or leaving the game world.

    Leave records only carry the player id on the wire, so display_name is
    empty for them and the bridge resolves it from the presence tracker.
    """

    player_id: str
    display_name: str
    action: PresenceAction
    timestamp: datetime = field(default_factory=_default_timestamp, compare=False)


@dataclass(frozen=True)
class GameConnected:
    """The game session spawned and can carry chat."""

    host: str
    port: int


@dataclass(frozen=True)
class GameDisconnected:
    """The live game session was lost; a reconnect is scheduled."""

    reason: str


@dataclass(frozen=True)
class ChatReady:
    """The chat platform session is ready and the channel lookup has run."""

    channel_resolved: bool


@dataclass(frozen=True)
class TransportFailed:
    """A non-fatal error already handled by the transport that saw it."""

    transport: str
    error: BaseException


GameEvent = GameConnected | GameDisconnected | ChatEvent | PresenceEvent | TransportFailed
ChatPlatformEvent = ChatReady | ChatEvent | TransportFailed
