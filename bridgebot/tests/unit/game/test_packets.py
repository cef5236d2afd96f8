"""
Unit tests for the Bedrock packet codec.
"""

import pytest

from bridgebot.events.event_types import ChatEvent, ChatEventKind, PresenceAction, PresenceEvent
from bridgebot.exceptions import ProtocolDecodeError
from bridgebot.game.packets import (
    COMMAND_REQUEST_PACKET,
    TEXT_PACKET,
    decode_packet,
    decode_player_list,
    decode_text,
    encode_chat,
    encode_command,
    strip_command_marker,
)


class TestDecodeText:
    """Tests for text packet decoding."""

    def test_chat_message(self):
        """A chat text packet becomes a player chat event."""
        event = decode_text({"type": "chat", "source_name": "Steve", "message": "hello"})

        assert event == ChatEvent(source_username="Steve", content="hello")
        assert event.kind is ChatEventKind.PLAYER_CHAT
        assert event.message_type == "chat"

    def test_translation_message_is_relayed(self):
        event = decode_text({"type": "translation", "source_name": "", "message": "%multiplayer.player.joined"})

        assert event is not None
        assert event.message_type == "translation"
        assert event.source_username == "Unknown"

    @pytest.mark.parametrize("message_type", ["tip", "popup", "whisper", "announcement", "system", None])
    def test_other_text_types_are_dropped(self, message_type):
        assert decode_text({"type": message_type, "source_name": "Steve", "message": "x"}) is None

    def test_camel_case_source_name(self):
        event = decode_text({"type": "chat", "sourceName": "Alex", "message": "hi"})
        assert event.source_username == "Alex"

    def test_missing_source_name_falls_back_to_unknown(self):
        event = decode_text({"type": "chat", "message": "hi"})
        assert event.source_username == "Unknown"

    def test_missing_message_is_empty(self):
        event = decode_text({"type": "chat", "source_name": "Steve"})
        assert event.content == ""

    def test_non_string_message_raises(self):
        with pytest.raises(ProtocolDecodeError) as exc_info:
            decode_text({"type": "chat", "source_name": "Steve", "message": {"rawtext": []}})
        assert exc_info.value.packet_name == TEXT_PACKET


class TestDecodePlayerList:
    """Tests for player_list packet decoding."""

    def test_add_batch_preserves_order(self):
        events = decode_player_list(
            {
                "records": {
                    "type": "add",
                    "records": [
                        {"uuid": "u-1", "username": "Steve"},
                        {"uuid": "u-2", "username": "Alex"},
                    ],
                }
            }
        )

        assert events == [
            PresenceEvent(player_id="u-1", display_name="Steve", action=PresenceAction.JOIN),
            PresenceEvent(player_id="u-2", display_name="Alex", action=PresenceAction.JOIN),
        ]

    def test_remove_batch_carries_no_name(self):
        events = decode_player_list({"records": {"type": "remove", "records": [{"uuid": "u-1"}]}})

        assert len(events) == 1
        assert events[0].action is PresenceAction.LEAVE
        assert events[0].display_name == ""
        assert events[0].player_id == "u-1"

    def test_record_without_uuid_is_skipped(self):
        """One bad record does not drop the rest of the batch."""
        events = decode_player_list(
            {"records": {"type": "add", "records": [{"username": "Ghost"}, "junk", {"uuid": "u-3", "username": "Kai"}]}}
        )

        assert [e.player_id for e in events] == ["u-3"]

    def test_mixed_batch_uses_per_record_action(self):
        """Records tagged individually yield joins and leaves from one batch."""
        events = decode_player_list(
            {
                "records": {
                    "records": [
                        {"action": "add", "uuid": "u1", "username": "Steve"},
                        {"action": "remove", "uuid": "u2"},
                    ]
                }
            }
        )

        assert events == [
            PresenceEvent(player_id="u1", display_name="Steve", action=PresenceAction.JOIN),
            PresenceEvent(player_id="u2", display_name="", action=PresenceAction.LEAVE),
        ]

    def test_record_tag_overrides_batch_tag(self):
        events = decode_player_list(
            {
                "records": {
                    "type": "add",
                    "records": [{"uuid": "u1", "username": "Alex"}, {"type": "remove", "uuid": "u2"}],
                }
            }
        )

        assert [e.action for e in events] == [PresenceAction.JOIN, PresenceAction.LEAVE]

    def test_untagged_record_is_skipped(self):
        events = decode_player_list(
            {"records": {"records": [{"uuid": "u1", "username": "Kai"}, {"action": "add", "uuid": "u2", "username": "Zoe"}]}}
        )

        assert [e.player_id for e in events] == ["u2"]

    @pytest.mark.parametrize(
        "params",
        [
            {},
            {"records": None},
            {"records": {"type": "add", "records": [{"uuid": "u-1", "action": ["add"]}]}},
            {"records": {"type": "update", "records": [{"uuid": "u-1"}]}},
            {"records": {"type": "add", "records": None}},
        ],
    )
    def test_unusable_payloads_yield_nothing(self, params):
        assert decode_player_list(params) == []


class TestDecodePacket:
    """Tests for the packet dispatcher."""

    def test_unrelated_packet_is_ignored(self):
        assert decode_packet("move_player", {"x": 1}) == []

    def test_unrelated_packet_with_bad_params_is_ignored(self):
        assert decode_packet("move_player", "garbage") == []

    def test_text_packet(self):
        events = decode_packet("text", {"type": "chat", "source_name": "Steve", "message": "hi"})
        assert events == [ChatEvent("Steve", "hi")]

    def test_dropped_text_packet(self):
        assert decode_packet("text", {"type": "tip", "message": "hi"}) == []

    def test_player_list_packet(self):
        events = decode_packet("player_list", {"records": {"type": "add", "records": [{"uuid": "a", "username": "A"}]}})
        assert [e.display_name for e in events] == ["A"]

    def test_non_object_params_raise(self):
        with pytest.raises(ProtocolDecodeError):
            decode_packet("player_list", ["not", "an", "object"])


class TestEncode:
    """Tests for outbound packet construction."""

    def test_encode_chat(self):
        name, params = encode_chat("RelayBot", "[Discord] <bob> hi")

        assert name == TEXT_PACKET
        assert params == {
            "type": "chat",
            "needs_translation": False,
            "source_name": "RelayBot",
            "message": "[Discord] <bob> hi",
            "xuid": "",
            "platform_chat_id": "",
        }

    def test_encode_command_strips_marker(self):
        name, params = encode_command("/connect")

        assert name == COMMAND_REQUEST_PACKET
        assert params["command"] == "connect"
        assert params["origin"] == {"type": "player", "uuid": "", "request_id": ""}
        assert params["internal"] is False

    def test_encode_command_without_marker(self):
        _, params = encode_command("say hi")
        assert params["command"] == "say hi"

    def test_strip_command_marker_only_strips_one(self):
        assert strip_command_marker("//wand") == "/wand"
        assert strip_command_marker("") == ""
