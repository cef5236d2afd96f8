"""
Game packet session.

The Bedrock RakNet protocol (and its Microsoft login flow) is served by a
packet proxy running next to the bridge. This module speaks to that proxy
over TCP with newline-delimited JSON frames:

    {"name": "<packet name>", "params": {...}}

The first frame sent is a "login" frame describing the game server and the
identity to join as. Inbound "spawn" and "disconnect" frames are lifecycle
signals; every other frame is handed on as a packet.
"""

import asyncio
import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from ..config.models import GameConfig
from ..exceptions import ErrorContext, SendError, TransportConnectionError, handle_exception
from ..logging_config import get_logger

logger = get_logger(__name__)

LOGIN_FRAME = "login"
SPAWN_FRAME = "spawn"
DISCONNECT_FRAME = "disconnect"

# player_list frames carry skin data and routinely exceed asyncio's 64 KiB default
DEFAULT_MAX_FRAME_BYTES = 16 * 1024 * 1024


@dataclass(frozen=True)
class SessionSpawned:
    """The player spawned in the world; the handshake is complete."""


@dataclass(frozen=True)
class PacketReceived:
    name: str
    params: Any


@dataclass(frozen=True)
class SessionFailed:
    error: BaseException


@dataclass(frozen=True)
class SessionDisconnected:
    """The server kicked or disconnected the player."""

    reason: str


@dataclass(frozen=True)
class SessionClosed:
    """The underlying connection ended."""


SessionSignal = SessionSpawned | PacketReceived | SessionFailed | SessionDisconnected | SessionClosed


class GameSession(Protocol):
    """Interface the game transport needs from a live session."""

    async def open(self) -> None:
        """Connect and start the handshake. Raises TransportConnectionError."""

    def write(self, name: str, params: dict[str, Any]) -> None:
        """Send one packet. Raises SendError."""

    async def close(self) -> None:
        """Close the session without emitting further signals."""


SessionListener = Callable[["GameSession", SessionSignal], None]


@dataclass(frozen=True)
class GameSessionOptions:
    """Everything the proxy needs to join a Bedrock server as the bot."""

    host: str
    port: int
    username: str
    offline: bool = True
    version: str | None = None
    auth_title: str | None = None
    flow: str | None = None
    profiles_folder: str | None = None
    connect_timeout: float = 15.0
    proxy_host: str = "127.0.0.1"
    proxy_port: int = 19150
    max_frame_bytes: int = DEFAULT_MAX_FRAME_BYTES

    @classmethod
    def from_config(cls, config: GameConfig) -> "GameSessionOptions":
        """Derive session options; authentication fields only apply online."""
        return cls(
            host=config.host,
            port=config.port,
            username=config.username,
            offline=config.offline,
            version=config.version,
            auth_title=None if config.offline else config.auth_title,
            flow=None if config.offline else config.flow,
            profiles_folder=None if config.offline else config.profiles_folder,
            connect_timeout=config.connect_timeout,
            proxy_host=config.proxy_host,
            proxy_port=config.proxy_port,
        )

    def login_params(self) -> dict[str, Any]:
        """Parameters of the login frame."""
        params: dict[str, Any] = {
            "host": self.host,
            "port": self.port,
            "username": self.username,
            "offline": self.offline,
            "skip_ping": True,
            "realms": False,
            "connect_timeout_ms": int(self.connect_timeout * 1000),
        }
        if not self.offline:
            params["auth_title"] = self.auth_title
            params["flow"] = self.flow
            params["profiles_folder"] = self.profiles_folder
        # Leaving version out lets the proxy auto-detect it
        if self.version:
            params["version"] = self.version
        return params


class PacketSession:
    """JSON-lines session to the packet proxy."""

    def __init__(self, options: GameSessionOptions, listener: SessionListener):
        self.options = options
        self._listener = listener
        self._writer: asyncio.StreamWriter | None = None
        self._read_task: asyncio.Task | None = None
        self._closing = False
        self._context = ErrorContext(transport="game", host=options.host, port=options.port)

    async def open(self) -> None:
        """
        Connect to the proxy and send the login frame.

        Raises:
            TransportConnectionError: If the proxy cannot be reached in time
        """
        try:
            reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(
                    self.options.proxy_host,
                    self.options.proxy_port,
                    limit=self.options.max_frame_bytes,
                ),
                timeout=self.options.connect_timeout,
            )
        except TimeoutError as e:
            raise TransportConnectionError(
                f"Connection to {self.options.host}:{self.options.port} timed out",
                self._context,
                transport="game",
                timed_out=True,
            ) from e
        except OSError as e:
            raise handle_exception(e, self._context) from e

        self.write(LOGIN_FRAME, self.options.login_params())
        self._read_task = asyncio.create_task(self._read_loop(reader), name="game-session-reader")

    def write(self, name: str, params: dict[str, Any]) -> None:
        """
        Send one frame.

        Raises:
            SendError: If the session is not open or the write fails
        """
        if self._writer is None or self._closing or self._writer.is_closing():
            raise SendError(f"Cannot send {name}: session is not open", self._context, transport="game")
        try:
            frame = json.dumps({"name": name, "params": params}, separators=(",", ":"))
            self._writer.write(frame.encode("utf-8") + b"\n")
        except (OSError, TypeError, ValueError) as e:
            raise SendError(f"Failed to send {name}: {e}", self._context, transport="game") from e

    async def close(self) -> None:
        """Close the connection. No signals are delivered afterwards."""
        self._closing = True
        if self._read_task is not None and self._read_task is not asyncio.current_task():
            self._read_task.cancel()
        if self._writer is not None:
            self._writer.close()
            try:
                await self._writer.wait_closed()
            except OSError as e:
                logger.debug("Error while closing game session", error=str(e))
        self._writer = None

    async def _read_loop(self, reader: asyncio.StreamReader) -> None:
        """
        Read frames until EOF or error.

        Ends with SessionClosed whatever stopped it, unless the session was
        closed locally or the task was cancelled.
        """
        try:
            while not self._closing:
                line = await reader.readline()
                if not line:
                    break
                self._dispatch_line(line)
        except OSError as e:
            self._signal(SessionFailed(handle_exception(e, self._context)))
        except (ValueError, asyncio.LimitOverrunError) as e:
            # readline() raises ValueError once a frame overruns max_frame_bytes
            error = TransportConnectionError(
                f"Game session frame exceeded {self.options.max_frame_bytes} bytes: {e}",
                self._context,
                transport="game",
            )
            self._signal(SessionFailed(error))
        except Exception as e:  # noqa: BLE001
            logger.error("Game session reader stopped unexpectedly", error=str(e), exc_info=True)
            self._signal(SessionFailed(handle_exception(e, self._context)))
        self._signal(SessionClosed())

    def _dispatch_line(self, line: bytes) -> None:
        try:
            frame = json.loads(line)
            name = frame["name"]
            params = frame.get("params", {})
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            logger.debug("Ignoring unreadable frame", error=str(e), frame_length=len(line))
            return

        if name == SPAWN_FRAME:
            self._signal(SessionSpawned())
        elif name == DISCONNECT_FRAME:
            reason = params.get("reason", "unknown") if isinstance(params, dict) else "unknown"
            self._signal(SessionDisconnected(str(reason)))
        else:
            self._signal(PacketReceived(str(name), params))

    def _signal(self, signal: SessionSignal) -> None:
        if not self._closing:
            self._listener(self, signal)


def create_packet_session(options: GameSessionOptions, listener: SessionListener) -> GameSession:
    """Default session factory used by the game transport."""
    return PacketSession(options, listener)
