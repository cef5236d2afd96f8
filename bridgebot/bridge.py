"""
Bridge orchestrator.

Owns both transports and the presence tracker. Each transport pushes its
events onto its own queue; one pump task per queue hands them to the
matching handler one at a time, so events from one transport are handled in
delivery order and neither transport waits on the other.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from .chat.formatting import MessageCategory
from .chat.transport import ChatTransport
from .config.models import BridgeConfig
from .events.event_types import (
    ChatEvent,
    ChatPlatformEvent,
    ChatReady,
    GameConnected,
    GameDisconnected,
    GameEvent,
    PresenceAction,
    PresenceEvent,
    TransportFailed,
)
from .game.transport import GameTransport
from .logging_config import get_logger
from .realtime.player_presence_tracker import PresenceTracker

logger = get_logger(__name__)


class Bridge:
    """
    Relay between the game transport and the chat transport.

    Construct with from_config() in production; tests may pass transports
    directly and drive the handle_* coroutines without running the pumps.
    """

    def __init__(
        self,
        config: BridgeConfig,
        game: GameTransport | None = None,
        chat: ChatTransport | None = None,
        game_events: asyncio.Queue | None = None,
        chat_events: asyncio.Queue | None = None,
    ):
        self.config = config
        self.presence = PresenceTracker()
        self.game_events: asyncio.Queue[GameEvent] = game_events if game_events is not None else asyncio.Queue()
        self.chat_events: asyncio.Queue[ChatPlatformEvent] = chat_events if chat_events is not None else asyncio.Queue()

        self.game = game if game is not None else GameTransport(
            config.game,
            self.game_events.put_nowait,
            reconnect_delay=config.relay.reconnect_delay,
            post_spawn_command=config.relay.post_spawn_command,
            post_spawn_delay=config.relay.post_spawn_delay,
        )
        self.chat = chat if chat is not None else ChatTransport(config.chat, self.chat_events.put_nowait)

        self._pumps: list[asyncio.Task] = []
        self._stopped = False

    @classmethod
    def from_config(cls, config: BridgeConfig) -> "Bridge":
        """Build a bridge wired to real transports."""
        return cls(config)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """
        Start pumping events, log in to the chat platform, then join the game.

        The stagger between the two gives the chat transport a head start at
        resolving its channel; events relayed before that are dropped.

        Raises:
            TransportConnectionError: If the chat platform login fails
        """
        logger.info("Starting bridge")
        self._stopped = False
        self._start_pumps()

        await self.chat.connect()
        logger.info("Chat transport started")

        await asyncio.sleep(self.config.relay.stagger_delay)

        await self.game.connect()
        logger.info("Game transport started")
        logger.info("Bridge is running")

    async def stop(self) -> None:
        """Disconnect both transports and stop the pumps. Idempotent."""
        if self._stopped:
            return
        self._stopped = True
        logger.info("Stopping bridge")

        await self.game.disconnect()
        await self.chat.disconnect()

        pumps, self._pumps = self._pumps, []
        for pump in pumps:
            pump.cancel()
        await asyncio.gather(*pumps, return_exceptions=True)

    def _start_pumps(self) -> None:
        if self._pumps:
            return
        self._pumps = [
            asyncio.create_task(self._pump(self.game_events, self.handle_game_event), name="bridge-game-pump"),
            asyncio.create_task(self._pump(self.chat_events, self.handle_chat_event), name="bridge-chat-pump"),
        ]

    async def _pump(self, queue: asyncio.Queue, handler: Callable[[Any], Awaitable[None]]) -> None:
        while True:
            event = await queue.get()
            try:
                await handler(event)
            except asyncio.CancelledError:
                raise
            except Exception as e:  # noqa: BLE001
                # A failing handler drops only its own event
                logger.error("Bridge handler failed", event_type=type(event).__name__, error=str(e), exc_info=True)
            finally:
                queue.task_done()

    # ------------------------------------------------------------------
    # Game → chat
    # ------------------------------------------------------------------

    async def handle_game_event(self, event: GameEvent) -> None:
        if isinstance(event, ChatEvent):
            await self._on_game_chat(event)
        elif isinstance(event, PresenceEvent):
            await self._on_presence(event)
        elif isinstance(event, GameConnected):
            logger.info("Game bot connected", host=event.host, port=event.port)
            await self.chat.send_categorized(MessageCategory.SYSTEM, "Game bot connected to the server")
        elif isinstance(event, GameDisconnected):
            logger.info("Game bot disconnected", reason=event.reason)
            await self.chat.send_categorized(MessageCategory.SYSTEM, f"Game bot disconnected: {event.reason}")
        elif isinstance(event, TransportFailed):
            logger.error("Game transport error", error=str(event.error))

    async def _on_game_chat(self, event: ChatEvent) -> None:
        # Exact, case-sensitive match: a player sharing the bot's name is also dropped
        if event.source_username == self.game.username:
            return
        await self.chat.send_categorized(MessageCategory.PLAYER_CHAT, event.source_username, event.content)

    async def _on_presence(self, event: PresenceEvent) -> None:
        if event.action is PresenceAction.JOIN:
            self.presence.record_join(event.player_id, event.display_name)
            await self.chat.send_categorized(MessageCategory.JOIN, event.display_name)
            return

        display_name = self.presence.lookup(event.player_id)
        await self.chat.send_categorized(MessageCategory.LEAVE, display_name)
        self.presence.forget(event.player_id)

    # ------------------------------------------------------------------
    # Chat → game
    # ------------------------------------------------------------------

    async def handle_chat_event(self, event: ChatPlatformEvent) -> None:
        if isinstance(event, ChatEvent):
            self.game.send_chat(self.format_for_game(event))
        elif isinstance(event, ChatReady):
            logger.info("Chat bot ready", channel_resolved=event.channel_resolved)
        elif isinstance(event, TransportFailed):
            logger.error("Chat transport error", error=str(event.error))

    def format_for_game(self, event: ChatEvent) -> str:
        relay = self.config.relay
        return relay.message_format.format(
            platform=relay.platform_label,
            username=event.source_username,
            content=event.content,
        )
