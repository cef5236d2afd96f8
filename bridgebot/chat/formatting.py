"""
Categorized chat-platform messages.

A categorized message is one delivery to the target channel; the category
only picks its colour and icon.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

import discord

AVATAR_URL_TEMPLATE = "https://mc-heads.net/avatar/{name}/32"


class MessageCategory(Enum):
    """Visual category of a relayed message."""

    PLAYER_CHAT = "player_chat"
    JOIN = "join"
    LEAVE = "leave"
    SYSTEM = "system"


CATEGORY_COLOURS: dict[MessageCategory, int] = {
    MessageCategory.PLAYER_CHAT: 0x00AE86,
    MessageCategory.JOIN: 0x00FF00,
    MessageCategory.LEAVE: 0xFF0000,
    MessageCategory.SYSTEM: 0xFFFF00,
}


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class CategorizedMessage:
    """Platform-neutral payload: category, title text, body text, timestamp."""

    category: MessageCategory
    title: str
    body: str = ""
    timestamp: datetime = field(default_factory=_now)


def describe(message: CategorizedMessage) -> str:
    """Body text shown for a categorized message."""
    if message.category is MessageCategory.JOIN:
        return f"**{message.title}** joined the server"
    if message.category is MessageCategory.LEAVE:
        return f"**{message.title}** left the server"
    if message.category is MessageCategory.SYSTEM:
        return f"⚙️ {message.title}"
    return message.body


def render_embed(message: CategorizedMessage) -> discord.Embed:
    """Render a categorized message as a Discord embed."""
    embed = discord.Embed(
        colour=discord.Colour(CATEGORY_COLOURS[message.category]),
        description=describe(message),
        timestamp=message.timestamp,
    )
    if message.category is MessageCategory.PLAYER_CHAT:
        embed.set_author(name=message.title, icon_url=AVATAR_URL_TEMPLATE.format(name=message.title))
    return embed
