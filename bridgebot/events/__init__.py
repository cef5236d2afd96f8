"""Typed events flowing from the transports to the bridge."""

from .event_types import (
    ChatEvent,
    ChatEventKind,
    ChatPlatformEvent,
    ChatReady,
    GameConnected,
    GameDisconnected,
    GameEvent,
    PresenceAction,
    PresenceEvent,
    TransportFailed,
)

__all__ = [
    "ChatEvent",
    "ChatEventKind",
    "ChatPlatformEvent",
    "ChatReady",
    "GameConnected",
    "GameDisconnected",
    "GameEvent",
    "PresenceAction",
    "PresenceEvent",
    "TransportFailed",
]
