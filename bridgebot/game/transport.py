"""
Game transport.

Owns the session to the Minecraft Bedrock server: connects, reconnects after
unexpected losses, decodes inbound packets into events and encodes outbound
chat and commands. Events are handed to a sink (the bridge's queue) and
never awaited here, so a slow consumer cannot stall packet handling.
"""

import asyncio
from collections.abc import Callable

from ..config.models import GameConfig
from ..events.event_types import GameConnected, GameDisconnected, GameEvent, TransportFailed
from ..exceptions import BridgeBotError, ErrorContext, ProtocolDecodeError, SendError, handle_exception, is_timeout
from ..logging_config import get_logger
from ..realtime.connection_state_machine import ConnectionStateMachine
from ..realtime.reconnect_supervisor import ReconnectSupervisor
from .packets import decode_packet, encode_chat, encode_command
from .session import (
    GameSession,
    GameSessionOptions,
    PacketReceived,
    SessionClosed,
    SessionDisconnected,
    SessionFailed,
    SessionListener,
    SessionSignal,
    SessionSpawned,
    create_packet_session,
)

logger = get_logger(__name__)

TRANSPORT_NAME = "game"
DEFAULT_RECONNECT_DELAY = 5.0
DEFAULT_POST_SPAWN_DELAY = 1.0

GameEventSink = Callable[[GameEvent], None]
SessionFactory = Callable[[GameSessionOptions, SessionListener], GameSession]


class GameTransport:
    """
    Connection lifecycle and packet translation for the game session.

    Only one session attempt is ever outstanding. The live session handle is
    present exactly while the state machine is connecting or connected.
    """

    def __init__(
        self,
        config: GameConfig,
        sink: GameEventSink,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        post_spawn_command: str | None = "/connect",
        post_spawn_delay: float = DEFAULT_POST_SPAWN_DELAY,
        session_factory: SessionFactory = create_packet_session,
    ):
        """
        Initialize the game transport.

        Args:
            config: Game section of the bridge configuration
            sink: Receives every event this transport emits
            reconnect_delay: Seconds between a lost session and the next attempt
            post_spawn_command: Issued once per spawn; None or "" disables it
            post_spawn_delay: Seconds between spawn and the post-spawn command
            session_factory: Builds the session for each attempt
        """
        self.config = config
        self.username = config.username
        self.options = GameSessionOptions.from_config(config)
        self.post_spawn_command = post_spawn_command
        self.post_spawn_delay = post_spawn_delay
        self.state = ConnectionStateMachine(TRANSPORT_NAME)
        self.supervisor = ReconnectSupervisor(TRANSPORT_NAME, reconnect_delay, self._on_reconnect_timer)

        self._sink = sink
        self._session_factory = session_factory
        self._session: GameSession | None = None
        self._post_spawn_handle: asyncio.TimerHandle | None = None
        self._background: set[asyncio.Task] = set()
        self._context = ErrorContext(transport=TRANSPORT_NAME, host=config.host, port=config.port)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """
        Start a session attempt.

        No-op while a session is connecting or connected. A failed attempt is
        treated like any other session loss and schedules a reconnect.
        """
        if not self.state.can_start_connect():
            logger.info("Already connected or connecting", transport=TRANSPORT_NAME, state=self.state.state_id)
            return

        # A manual connect from disconnecting supersedes the pending reconnect
        self.supervisor.cancel()
        self.state.begin_connect()
        self._log_connect_options()

        try:
            session = self._session_factory(self.options, self._on_session_signal)
        except (BridgeBotError, OSError, ValueError) as e:
            error = handle_exception(e, self._context)
            self._report_error(error)
            self._handle_session_lost(f"session could not be created: {error.message}", error)
            return

        self._session = session
        try:
            await session.open()
        except (BridgeBotError, OSError) as e:
            error = handle_exception(e, self._context)
            if session is self._session:
                self._report_error(error)
                self._handle_session_lost(f"connect failed: {error.message}", error)
            return

        if session is not self._session:
            # disconnect() ran while the handshake was in flight
            logger.debug("Discarding session opened after disconnect", transport=TRANSPORT_NAME)
            await session.close()

    async def disconnect(self) -> None:
        """
        Close the session and stop reconnecting until connect() is called again.

        Timers are cancelled before the first suspension point, so no
        automatic reconnect can start once this has been called.
        """
        self.supervisor.cancel()
        self._cancel_post_spawn()
        session = self._session
        self._session = None
        self.state.halt()

        if session is not None:
            logger.info("Disconnecting from game server", transport=TRANSPORT_NAME)
            await session.close()

    def is_connected(self) -> bool:
        return self.state.accepts_sends()

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    def send_chat(self, text: str) -> bool:
        """
        Send a chat line attributed to the bot's own identity.

        Returns:
            True if the packet was handed to the session
        """
        name, params = encode_chat(self.username, text)
        if not self._write(name, params):
            return False
        logger.info("Sent game chat", transport=TRANSPORT_NAME, message=text)
        return True

    def send_command(self, command: str) -> bool:
        """
        Send a command request; a leading "/" is optional.

        Returns:
            True if the packet was handed to the session
        """
        name, params = encode_command(command)
        if not self._write(name, params):
            return False
        logger.info("Sent game command", transport=TRANSPORT_NAME, command=f"/{params['command']}")
        return True

    def _write(self, name: str, params: dict) -> bool:
        if not self.state.accepts_sends() or self._session is None:
            logger.warning("Not connected to game server", transport=TRANSPORT_NAME, packet=name)
            return False
        try:
            self._session.write(name, params)
        except SendError:
            return False
        return True

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    def _on_session_signal(self, session: GameSession, signal: SessionSignal) -> None:
        if session is not self._session:
            logger.debug("Ignoring signal from stale session", transport=TRANSPORT_NAME, signal=type(signal).__name__)
            return

        if isinstance(signal, SessionSpawned):
            self._on_spawn()
        elif isinstance(signal, PacketReceived):
            self._on_packet(signal.name, signal.params)
        elif isinstance(signal, SessionFailed):
            self._report_error(signal.error)
            self._handle_session_lost(str(signal.error), signal.error)
        elif isinstance(signal, SessionDisconnected):
            logger.info("Disconnected from game server", transport=TRANSPORT_NAME, reason=signal.reason)
            self._handle_session_lost(signal.reason)
        elif isinstance(signal, SessionClosed):
            logger.info("Game connection closed", transport=TRANSPORT_NAME)
            self._handle_session_lost("connection closed")

    def _on_spawn(self) -> None:
        if not self.state.connecting.is_active:
            return
        self.state.handshake_succeeded()
        logger.info(
            "Successfully connected to game server",
            transport=TRANSPORT_NAME,
            host=self.config.host,
            port=self.config.port,
        )
        self._sink(GameConnected(host=self.config.host, port=self.config.port))

        if self.post_spawn_command:
            loop = asyncio.get_running_loop()
            self._post_spawn_handle = loop.call_later(self.post_spawn_delay, self._run_post_spawn_command)

    def _run_post_spawn_command(self) -> None:
        self._post_spawn_handle = None
        if self.post_spawn_command:
            self.send_command(self.post_spawn_command)

    def _on_packet(self, name: str, params) -> None:
        if name == "join":
            logger.info("Joining game server", transport=TRANSPORT_NAME)
            return
        if name == "login":
            logger.info("Logged in to game server", transport=TRANSPORT_NAME)
            return

        try:
            events = decode_packet(name, params)
        except ProtocolDecodeError:
            return

        for event in events:
            logger.info("Game event received", transport=TRANSPORT_NAME, event_type=type(event).__name__, detail=repr(event))
            self._sink(event)

    def _report_error(self, error: BaseException) -> None:
        logger.error("Game client error", transport=TRANSPORT_NAME, error=str(error))
        if is_timeout(error):
            logger.error(
                "Connection timed out - check the server address, port, that the server "
                "accepts external connections, and that no firewall blocks the port",
                transport=TRANSPORT_NAME,
                host=self.config.host,
                port=self.config.port,
            )
        self._sink(TransportFailed(transport=TRANSPORT_NAME, error=error))

    def _handle_session_lost(self, reason: str, error: BaseException | None = None) -> None:
        """Clear the live handle and ask the supervisor for one reconnect."""
        if self.state.idle.is_active:
            return

        session = self._session
        self._session = None
        self._cancel_post_spawn()

        if self.state.has_session():
            was_connected = self.state.connected.is_active
            self.state.connection_lost(error=error)
            if was_connected:
                self._sink(GameDisconnected(reason=reason))
        if session is not None:
            self._spawn_background(session.close())

        self.supervisor.schedule_reconnect()

    def _on_reconnect_timer(self) -> None:
        self._spawn_background(self._reconnect())

    async def _reconnect(self) -> None:
        # disconnect() may have run between the timer firing and this task starting
        if not self.state.disconnecting.is_active:
            return
        await self.connect()

    def _cancel_post_spawn(self) -> None:
        if self._post_spawn_handle is not None:
            self._post_spawn_handle.cancel()
            self._post_spawn_handle = None

    def _spawn_background(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def _log_connect_options(self) -> None:
        logger.info(
            "Connecting to game server",
            transport=TRANSPORT_NAME,
            host=self.options.host,
            port=self.options.port,
            username=self.options.username,
            version=self.options.version or "auto-detect",
            offline=self.options.offline,
        )
        if self.options.offline:
            logger.info("Using offline mode (no authentication)", transport=TRANSPORT_NAME)
        else:
            logger.info(
                "Using online mode (Microsoft authentication)",
                transport=TRANSPORT_NAME,
                auth_title=self.options.auth_title,
                flow=self.options.flow,
                profiles_folder=self.options.profiles_folder,
            )
