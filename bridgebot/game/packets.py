"""
Bedrock packet codec.

Decodes the two inbound packet kinds the relay cares about (text and
player_list) into events, and builds the two outbound packets it sends
(text and command_request). Field names follow the Bedrock protocol
definitions as exposed by the packet proxy.
"""

from typing import Any

from ..events.event_types import ChatEvent, ChatEventKind, PresenceAction, PresenceEvent
from ..exceptions import ProtocolDecodeError
from ..logging_config import get_logger

logger = get_logger(__name__)

TEXT_PACKET = "text"
PLAYER_LIST_PACKET = "player_list"
COMMAND_REQUEST_PACKET = "command_request"

RELAYED_TEXT_TYPES = frozenset({"chat", "translation"})
UNKNOWN_SOURCE = "Unknown"
COMMAND_MARKER = "/"

_PRESENCE_ACTIONS = {"add": PresenceAction.JOIN, "remove": PresenceAction.LEAVE}


def decode_text(params: dict[str, Any]) -> ChatEvent | None:
    """
    Decode a text packet.

    Returns:
        A ChatEvent for chat/translation packets, None for other text types
        (tips, popups, whispers and so on)
    """
    message_type = params.get("type")
    if message_type not in RELAYED_TEXT_TYPES:
        return None

    message = params.get("message") or ""
    if not isinstance(message, str):
        raise ProtocolDecodeError("Text packet message is not a string", packet_name=TEXT_PACKET)
    source_name = params.get("source_name") or params.get("sourceName") or UNKNOWN_SOURCE
    return ChatEvent(
        source_username=str(source_name),
        content=message,
        kind=ChatEventKind.PLAYER_CHAT,
        message_type=message_type,
    )


def decode_player_list(params: dict[str, Any]) -> list[PresenceEvent]:
    """
    Decode a player_list packet into presence events, in record order.

    Each record is tagged add/remove by its own "action" (or "type"); the
    batch-level "type" applies to records that carry neither.
    """
    records = params.get("records")
    if not isinstance(records, dict):
        return []

    batch_tag = records.get("type")
    entries = records.get("records")
    if not isinstance(entries, list):
        return []

    events = []
    for entry in entries:
        if not isinstance(entry, dict) or not entry.get("uuid"):
            logger.debug("Skipping player list record without uuid", record=entry)
            continue
        tag = entry.get("action") or entry.get("type") or batch_tag
        action = _PRESENCE_ACTIONS.get(tag) if isinstance(tag, str) else None
        if action is None:
            logger.debug("Skipping player list record without add/remove tag", player_id=entry["uuid"])
            continue
        display_name = entry.get("username", "") if action is PresenceAction.JOIN else ""
        events.append(PresenceEvent(player_id=str(entry["uuid"]), display_name=str(display_name), action=action))
    return events


def decode_packet(name: str, params: Any) -> list[ChatEvent | PresenceEvent]:
    """
    Decode any inbound packet into zero or more relay events.

    Raises:
        ProtocolDecodeError: If a relayed packet kind is malformed
    """
    if name not in (TEXT_PACKET, PLAYER_LIST_PACKET):
        return []
    if not isinstance(params, dict):
        raise ProtocolDecodeError("Packet params are not an object", packet_name=name)

    if name == TEXT_PACKET:
        event = decode_text(params)
        return [event] if event is not None else []
    return list(decode_player_list(params))


def encode_chat(source_name: str, message: str) -> tuple[str, dict[str, Any]]:
    """Build an outbound chat packet attributed to source_name."""
    return TEXT_PACKET, {
        "type": "chat",
        "needs_translation": False,
        "source_name": source_name,
        "message": message,
        "xuid": "",
        "platform_chat_id": "",
    }


def strip_command_marker(command: str) -> str:
    return command[1:] if command.startswith(COMMAND_MARKER) else command


def encode_command(command: str) -> tuple[str, dict[str, Any]]:
    """Build an outbound command request issued as the bot's own player."""
    return COMMAND_REQUEST_PACKET, {
        "command": strip_command_marker(command),
        "origin": {"type": "player", "uuid": "", "request_id": ""},
        "internal": False,
    }
