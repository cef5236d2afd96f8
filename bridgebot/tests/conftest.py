"""
Test configuration and fixtures for the bridge bot test suite.

Provides fake game sessions and a fake Discord client so transports and the
bridge can be driven without any network.
"""

import os
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

# Set environment defaults before any config model is instantiated
os.environ.setdefault("DISCORD_TOKEN", "test-discord-token")
os.environ.setdefault("DISCORD_CHANNEL_ID", "424242")
os.environ.setdefault("LOGGING_ENVIRONMENT", "unit_test")
os.environ.setdefault("LOGGING_DISABLE_FILE_LOGGING", "true")

from bridgebot.config.models import BridgeConfig, ChatConfig, GameConfig, LoggingConfig, RelayConfig  # noqa: E402
from bridgebot.game.session import (  # noqa: E402
    PacketReceived,
    SessionClosed,
    SessionDisconnected,
    SessionFailed,
    SessionSpawned,
)

TEST_CHANNEL_ID = 424242
BOT_USER_ID = 9001


class FakeGameSession:
    """In-memory stand-in for a packet session."""

    def __init__(self, options, listener):
        self.options = options
        self.listener = listener
        self.open_error: BaseException | None = None
        self.write_error: BaseException | None = None
        self.opened = False
        self.closed = False
        self.written: list[tuple[str, dict[str, Any]]] = []

    async def open(self) -> None:
        if self.open_error is not None:
            raise self.open_error
        self.opened = True

    def write(self, name: str, params: dict[str, Any]) -> None:
        if self.write_error is not None:
            raise self.write_error
        self.written.append((name, params))

    async def close(self) -> None:
        self.closed = True

    # Server-side helpers

    def spawn(self) -> None:
        self.listener(self, SessionSpawned())

    def receive(self, name: str, params: Any) -> None:
        self.listener(self, PacketReceived(name, params))

    def fail(self, error: BaseException) -> None:
        self.listener(self, SessionFailed(error))

    def kick(self, reason: str = "kicked") -> None:
        self.listener(self, SessionDisconnected(reason))

    def close_remote(self) -> None:
        self.listener(self, SessionClosed())


class FakeSessionFactory:
    """Session factory recording every session it builds."""

    def __init__(self):
        self.sessions: list[FakeGameSession] = []
        self.open_error: BaseException | None = None

    def __call__(self, options, listener) -> FakeGameSession:
        session = FakeGameSession(options, listener)
        session.open_error = self.open_error
        self.sessions.append(session)
        return session

    @property
    def latest(self) -> FakeGameSession:
        return self.sessions[-1]


@pytest.fixture
def session_factory() -> FakeSessionFactory:
    return FakeSessionFactory()


@pytest.fixture
def game_config() -> GameConfig:
    return GameConfig(host="mc.example.net", port=19132, username="RelayBot")


@pytest.fixture
def chat_config() -> ChatConfig:
    return ChatConfig(token="test-discord-token", channel_id=TEST_CHANNEL_ID)


@pytest.fixture
def relay_config() -> RelayConfig:
    return RelayConfig(stagger_delay=0, reconnect_delay=0.01, post_spawn_delay=0.01)


@pytest.fixture
def bridge_config(game_config, chat_config, relay_config) -> BridgeConfig:
    return BridgeConfig(
        game=game_config,
        chat=chat_config,
        relay=relay_config,
        logging=LoggingConfig(environment="unit_test", disable_file_logging=True),
    )


@pytest.fixture
def events() -> list:
    """Collects everything a transport emits."""
    return []


@pytest.fixture
def text_channel() -> MagicMock:
    channel = MagicMock(spec=discord.TextChannel)
    channel.id = TEST_CHANNEL_ID
    channel.name = "minecraft-chat"
    channel.send = AsyncMock()
    return channel


@pytest.fixture
def discord_client(text_channel) -> MagicMock:
    client = MagicMock()
    client.user = MagicMock()
    client.user.id = BOT_USER_ID
    client.user.__str__.return_value = "RelayBot#0001"
    client.login = AsyncMock()
    client.connect = AsyncMock()
    client.close = AsyncMock()
    client.get_channel.return_value = text_channel
    client.fetch_channel = AsyncMock(return_value=text_channel)
    client.is_ready.return_value = True
    return client


@pytest.fixture
def make_message():
    """Factory for Discord message doubles."""

    def _make(author_name: str, content: str, author_id: int = 1, channel_id: int = TEST_CHANNEL_ID, bot: bool = False):
        message = MagicMock()
        message.author.id = author_id
        message.author.name = author_name
        message.author.bot = bot
        message.channel.id = channel_id
        message.content = content
        return message

    return _make
