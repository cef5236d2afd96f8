"""
Chat platform transport.

Owns the Discord session: logs in, resolves the single target channel once
the session is ready, filters inbound messages down to the ones worth
relaying and sends categorized messages to the channel. Low-level gateway
reconnection is left to discord.py.
"""

import asyncio
import sys
from collections.abc import Callable

import discord

from ..config.models import ChatConfig
from ..events.event_types import ChatEvent, ChatEventKind, ChatPlatformEvent, ChatReady, TransportFailed
from ..exceptions import ErrorContext, TransportConnectionError, handle_exception
from ..logging_config import get_logger
from ..realtime.connection_state_machine import ConnectionStateMachine
from .formatting import CategorizedMessage, MessageCategory, render_embed

logger = get_logger(__name__)

TRANSPORT_NAME = "chat"

ChatEventSink = Callable[[ChatPlatformEvent], None]


def build_intents() -> discord.Intents:
    """Guild, guild message and message content intents; nothing else."""
    intents = discord.Intents.none()
    intents.guilds = True
    intents.guild_messages = True
    intents.message_content = True
    return intents


class ChatTransport:
    """
    Discord session lifecycle, channel resolution and message filtering.

    Sends are no-ops until the target channel has been resolved.
    """

    def __init__(self, config: ChatConfig, sink: ChatEventSink, client: discord.Client | None = None):
        """
        Initialize the chat transport.

        Args:
            config: Chat section of the bridge configuration
            sink: Receives every event this transport emits
            client: Discord client to drive; a new one is built when omitted
        """
        self.config = config
        self.state = ConnectionStateMachine(TRANSPORT_NAME)
        self.target_channel: discord.abc.Messageable | None = None

        self._sink = sink
        self._client = client if client is not None else discord.Client(intents=build_intents())
        self._gateway_task: asyncio.Task | None = None
        self._channel_lookup_done = False
        self._context = ErrorContext(transport=TRANSPORT_NAME, channel_id=config.channel_id)

        self._client.event(self.on_ready)
        self._client.event(self.on_message)
        self._client.event(self.on_error)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """
        Log in and start the gateway connection in the background.

        Raises:
            TransportConnectionError: If the login is rejected or unreachable
        """
        if not self.state.can_start_connect():
            logger.info("Already connected or connecting", transport=TRANSPORT_NAME, state=self.state.state_id)
            return

        self.state.begin_connect()
        try:
            await self._client.login(self.config.token)
        except (discord.DiscordException, OSError) as e:
            self.state.halt()
            raise TransportConnectionError(
                f"Failed to login to Discord: {e}", self._context, transport=TRANSPORT_NAME
            ) from e

        self._gateway_task = asyncio.create_task(self._run_gateway(), name="chat-gateway")
        logger.info("Chat platform login succeeded", transport=TRANSPORT_NAME)

    async def _run_gateway(self) -> None:
        try:
            await self._client.connect(reconnect=True)
        except asyncio.CancelledError:
            raise
        except (discord.DiscordException, OSError) as e:
            error = handle_exception(e, self._context)
            logger.error("Chat gateway stopped", transport=TRANSPORT_NAME, error=str(e))
            if self.state.has_session():
                self.state.connection_lost(error=error)
            self._sink(TransportFailed(transport=TRANSPORT_NAME, error=error))

    async def disconnect(self) -> None:
        """Close the Discord client. Safe to call more than once."""
        self.state.halt()
        gateway_task = self._gateway_task
        self._gateway_task = None
        await self._client.close()
        if gateway_task is not None and not gateway_task.done():
            gateway_task.cancel()
        logger.info("Chat platform session closed", transport=TRANSPORT_NAME)

    def is_connected(self) -> bool:
        return self._client.is_ready()

    # ------------------------------------------------------------------
    # Discord event handlers
    # ------------------------------------------------------------------

    async def on_ready(self) -> None:
        logger.info("Chat bot logged in", transport=TRANSPORT_NAME, user=str(self._client.user))
        if self.state.connecting.is_active:
            self.state.handshake_succeeded()

        if not self._channel_lookup_done:
            self._channel_lookup_done = True
            await self._resolve_target_channel()

        self._sink(ChatReady(channel_resolved=self.target_channel is not None))

    async def _resolve_target_channel(self) -> None:
        channel_id = self.config.channel_id
        try:
            channel = self._client.get_channel(channel_id) or await self._client.fetch_channel(channel_id)
        except (discord.HTTPException, discord.InvalidData) as e:
            logger.error("Failed to fetch target channel", transport=TRANSPORT_NAME, channel_id=channel_id, error=str(e))
            return

        if not isinstance(channel, discord.abc.Messageable):
            logger.error("Target channel is not a text channel", transport=TRANSPORT_NAME, channel_id=channel_id)
            return

        self.target_channel = channel
        logger.info("Target channel set", transport=TRANSPORT_NAME, channel=getattr(channel, "name", str(channel_id)))

    async def on_message(self, message: discord.Message) -> None:
        """Emit messages posted in the target channel by anyone but this bot."""
        own_user = self._client.user
        if own_user is not None and message.author.id == own_user.id:
            return
        if self.config.ignore_bot_authors and message.author.bot:
            return
        if message.channel.id != self.config.channel_id:
            return

        logger.info("Chat message received", transport=TRANSPORT_NAME, author=message.author.name)
        self._sink(
            ChatEvent(
                source_username=message.author.name,
                content=message.content,
                kind=ChatEventKind.PLAYER_CHAT,
            )
        )

    async def on_error(self, event_method: str, *args, **kwargs) -> None:
        error = sys.exc_info()[1]
        logger.error("Chat client error", transport=TRANSPORT_NAME, event_method=event_method, error=str(error))
        if error is not None:
            self._sink(TransportFailed(transport=TRANSPORT_NAME, error=error))

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def send_plain(self, text: str) -> bool:
        """
        Send plain text to the target channel.

        Returns:
            True if the platform accepted the message
        """
        if self.target_channel is None:
            logger.error("Target channel not set", transport=TRANSPORT_NAME)
            return False
        try:
            await self.target_channel.send(text)
        except discord.HTTPException as e:
            handle_exception(e, self._context)
            return False
        return True

    async def send_categorized(self, kind: MessageCategory, title: str, body: str = "") -> bool:
        """
        Send one categorized message to the target channel.

        Returns:
            True if the platform accepted the message
        """
        if self.target_channel is None:
            logger.warning("Target channel not set; dropping message", transport=TRANSPORT_NAME, category=kind.value)
            return False

        message = CategorizedMessage(category=kind, title=title, body=body)
        try:
            await self.target_channel.send(embed=render_embed(message))
        except discord.HTTPException as e:
            handle_exception(e, self._context)
            return False
        logger.info("Sent categorized message", transport=TRANSPORT_NAME, category=kind.value, title=title)
        return True
