"""
Exception hierarchy for the bridge bot.

Every error raised by the relay derives from BridgeBotError, which carries a
structured ErrorContext and logs itself on construction. Components handle
the errors they detect; nothing here is meant to reach the process boundary
except ConfigurationError and a failed initial chat login.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar

import discord

from .logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ErrorContext:
    """
    Contextual information attached to a relay error.

    Identifies which transport and endpoint were involved so a log line is
    actionable without a stack trace.
    """

    transport: str | None = None
    host: str | None = None
    port: int | None = None
    channel_id: int | None = None
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert context to dictionary for logging."""
        return {
            "transport": self.transport,
            "host": self.host,
            "port": self.port,
            "channel_id": self.channel_id,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }


class BridgeBotError(Exception):
    """
    Base exception for all bridge bot errors.

    Subclasses pick the level they are logged at; decode noise is logged at
    debug while connection problems are logged as errors.
    """

    log_level: ClassVar[str] = "error"

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize bridge bot error.

        Args:
            message: Technical error message
            context: Error context information
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        self.details = details or {}
        self.timestamp = datetime.now()

        self._log_error()

    def _log_error(self) -> None:
        """Log the error with structured context."""
        log = getattr(logger, self.log_level)
        log(
            "Bridge error occurred",
            error_type=self.__class__.__name__,
            message=self.message,
            context=self.context.to_dict(),
            details=self.details,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context.to_dict(),
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class ConfigurationError(BridgeBotError):
    """Missing or invalid startup configuration. Always fatal."""

    def __init__(self, message: str, context: ErrorContext | None = None, config_key: str | None = None, **kwargs):
        super().__init__(message, context, **kwargs)
        self.config_key = config_key
        if config_key:
            self.details["config_key"] = config_key


class TransportConnectionError(BridgeBotError):
    """Handshake, login, timeout or network failure on a transport."""

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        transport: str = "unknown",
        timed_out: bool = False,
        **kwargs,
    ):
        super().__init__(message, context, **kwargs)
        self.transport = transport
        self.timed_out = timed_out
        self.details["transport"] = transport
        if timed_out:
            self.details["timed_out"] = True


class ProtocolDecodeError(BridgeBotError):
    """A malformed or unrecognized inbound packet. Ignored by callers."""

    log_level: ClassVar[str] = "debug"

    def __init__(self, message: str, context: ErrorContext | None = None, packet_name: str | None = None, **kwargs):
        super().__init__(message, context, **kwargs)
        self.packet_name = packet_name
        if packet_name:
            self.details["packet_name"] = packet_name


class SendError(BridgeBotError):
    """An outbound send failed. Logged and dropped, never retried."""

    log_level: ClassVar[str] = "warning"

    def __init__(self, message: str, context: ErrorContext | None = None, transport: str = "unknown", **kwargs):
        super().__init__(message, context, **kwargs)
        self.transport = transport
        self.details["transport"] = transport


def is_timeout(exc: BaseException) -> bool:
    """Return True for errors that read as a connect or read timeout."""
    if isinstance(exc, TimeoutError):
        return True
    if isinstance(exc, TransportConnectionError) and exc.timed_out:
        return True
    text = str(exc)
    return "timed out" in text or "Timeout" in text


def create_error_context(**kwargs) -> ErrorContext:
    """
    Create an error context with the given parameters.

    Args:
        **kwargs: Context parameters

    Returns:
        ErrorContext object
    """
    return ErrorContext(**kwargs)


def handle_exception(exc: Exception, context: ErrorContext | None = None) -> BridgeBotError:
    """
    Convert a foreign exception into a bridge error.

    Args:
        exc: The original exception
        context: Error context

    Returns:
        BridgeBotError instance
    """
    if isinstance(exc, BridgeBotError):
        return exc

    transport = context.transport if context and context.transport else "unknown"
    details = {"original_type": type(exc).__name__}

    if isinstance(exc, discord.HTTPException):
        return SendError(str(exc), context, transport=transport, details=details)
    # JSONDecodeError is a ValueError, so it lands here too
    if isinstance(exc, json.JSONDecodeError | ValueError | TypeError | KeyError):
        return ProtocolDecodeError(str(exc), context, details=details)
    if isinstance(exc, TimeoutError):
        return TransportConnectionError(str(exc) or "Connection timed out", context, transport, True, details=details)
    if isinstance(exc, ConnectionError | OSError):
        return TransportConnectionError(str(exc), context, transport, details=details)
    return BridgeBotError(str(exc), context, details=details)
