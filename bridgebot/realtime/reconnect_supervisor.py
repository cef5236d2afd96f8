"""
Single-timer reconnect supervisor.

Holds at most one pending reconnect timer per transport. Repeated
disconnect signals (an error followed by a close, say) collapse into the
one timer that is already pending.
"""

import asyncio
from collections.abc import Callable

from ..logging_config import get_logger

logger = get_logger(__name__)


class ReconnectSupervisor:
    """
    Schedule one deferred reconnect after an unexpected disconnect.

    The callback runs on the event loop when the timer fires; the handle is
    cleared first so the callback itself may schedule again.
    """

    def __init__(self, transport_name: str, delay: float, on_fire: Callable[[], None]):
        """
        Initialize the supervisor.

        Args:
            transport_name: Name used in log lines
            delay: Seconds between the disconnect and the reconnect attempt
            on_fire: Called when the timer fires
        """
        self.transport_name = transport_name
        self.delay = delay
        self._on_fire = on_fire
        self._handle: asyncio.TimerHandle | None = None
        self.total_scheduled = 0

    @property
    def is_pending(self) -> bool:
        return self._handle is not None

    def schedule_reconnect(self) -> bool:
        """
        Start the reconnect timer unless one is already pending.

        Returns:
            True if a new timer was started, False if one was already pending
        """
        if self._handle is not None:
            logger.debug("Reconnect already pending", transport=self.transport_name)
            return False

        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire)
        self.total_scheduled += 1
        logger.info("Reconnecting after delay", transport=self.transport_name, delay_seconds=self.delay)
        return True

    def cancel(self) -> bool:
        """
        Cancel the pending timer, if any.

        Returns:
            True if a pending timer was cancelled
        """
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        logger.debug("Pending reconnect cancelled", transport=self.transport_name)
        return True

    def _fire(self) -> None:
        self._handle = None
        self._on_fire()
