"""
Unit tests for categorized message rendering.
"""

import pytest

from bridgebot.chat.formatting import CategorizedMessage, MessageCategory, describe, render_embed


@pytest.mark.parametrize(
    ("category", "title", "body", "expected"),
    [
        (MessageCategory.JOIN, "Steve", "", "**Steve** joined the server"),
        (MessageCategory.LEAVE, "Steve", "", "**Steve** left the server"),
        (MessageCategory.SYSTEM, "Game bot connected to the server", "", "⚙️ Game bot connected to the server"),
        (MessageCategory.PLAYER_CHAT, "Steve", "hello world", "hello world"),
    ],
)
def test_describe(category, title, body, expected):
    assert describe(CategorizedMessage(category=category, title=title, body=body)) == expected


def test_player_chat_embed_has_author_and_avatar():
    embed = render_embed(CategorizedMessage(MessageCategory.PLAYER_CHAT, "Steve", "hi"))

    assert embed.author.name == "Steve"
    assert embed.author.icon_url == "https://mc-heads.net/avatar/Steve/32"
    assert embed.description == "hi"
    assert embed.colour.value == 0x00AE86


def test_system_embed_has_no_author():
    embed = render_embed(CategorizedMessage(MessageCategory.SYSTEM, "Game bot disconnected: kicked"))

    assert embed.author.name is None
    assert embed.colour.value == 0xFFFF00


def test_embed_carries_timestamp():
    message = CategorizedMessage(MessageCategory.LEAVE, "Alex")
    embed = render_embed(message)

    assert embed.timestamp == message.timestamp
    assert embed.colour.value == 0xFF0000
