"""
Connection state machine shared by both transports.

Every transport owns exactly one of these. The machine decides whether a
connect attempt may start and whether outbound sends are accepted, so that
neither question is answered by a flag that can drift away from the live
session handle.
"""

from datetime import UTC, datetime
from typing import Any

from statemachine import State, StateMachine

from ..logging_config import get_logger

logger = get_logger(__name__)


class ConnectionStateMachine(StateMachine):
    """
    Lifecycle of one transport session.

    States:
    - idle: No session and no reconnect pending
    - connecting: A session attempt is outstanding
    - connected: Handshake done; sends are accepted
    - disconnecting: Session lost; waiting for the reconnect timer

    Transitions:
    - idle → connecting: begin_connect (explicit connect())
    - disconnecting → connecting: begin_connect (reconnect timer)
    - connecting → connected: handshake_succeeded
    - connecting/connected → disconnecting: connection_lost
    - any → idle: halt (explicit disconnect())
    """

    idle = State("Idle", initial=True)
    connecting = State("Connecting")
    connected = State("Connected")
    disconnecting = State("Disconnecting")

    begin_connect = idle.to(connecting) | disconnecting.to(connecting)
    handshake_succeeded = connecting.to(connected)
    connection_lost = connecting.to(disconnecting) | connected.to(disconnecting)
    halt = idle.to.itself() | connecting.to(idle) | connected.to(idle) | disconnecting.to(idle)

    def __init__(self, transport_name: str):
        """
        Initialize connection state machine.

        Args:
            transport_name: Name used in log lines ("game" or "chat")
        """
        # on_enter_state runs during super().__init__() for the initial state
        self.transport_name = transport_name
        self.last_connected_time: datetime | None = None
        self.last_error: BaseException | None = None
        self.total_connections = 0
        self.total_disconnections = 0

        super().__init__()

    def on_enter_state(self, state: State, event=None, **kwargs) -> None:
        """Log every transition."""
        logger.debug(
            "Connection state transition",
            transport=self.transport_name,
            trigger_event=str(event) if event else "initial",
            to_state=state.id,
        )

    def on_handshake_succeeded(self) -> None:
        """Record connection time and count the connection."""
        self.last_connected_time = datetime.now(UTC)
        self.total_connections += 1
        self.last_error = None

    def on_connection_lost(self, error: BaseException | None = None) -> None:
        """Count the loss and remember what caused it."""
        self.total_disconnections += 1
        if error is not None:
            self.last_error = error

    @property
    def state_id(self) -> str:
        return self.current_state.id

    def can_start_connect(self) -> bool:
        """A connect attempt may start from idle or from a pending reconnect."""
        return self.idle.is_active or self.disconnecting.is_active

    def accepts_sends(self) -> bool:
        return self.connected.is_active

    def has_session(self) -> bool:
        """True in exactly the states that own a live session handle."""
        return self.connecting.is_active or self.connected.is_active

    def get_stats(self) -> dict[str, Any]:
        """
        Get connection statistics.

        Returns:
            Dictionary with connection metrics
        """
        return {
            "transport": self.transport_name,
            "current_state": self.state_id,
            "total_connections": self.total_connections,
            "total_disconnections": self.total_disconnections,
            "last_connected_time": self.last_connected_time.isoformat() if self.last_connected_time else None,
            "last_error": str(self.last_error) if self.last_error else None,
        }
