"""
Bridge bot process entry point.

Loads configuration, sets up logging, starts the bridge and runs until
SIGINT or SIGTERM. Exit code 0 on a signalled shutdown, 1 when the bridge
cannot start.
"""

import asyncio
import signal
import sys

from .bridge import Bridge
from .config import BridgeConfig, load_config
from .exceptions import BridgeBotError, ConfigurationError
from .logging_config import get_logger, setup_logging

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_STARTUP_FAILURE = 1


def _install_signal_handlers(loop: asyncio.AbstractEventLoop, stop_event: asyncio.Event) -> None:
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _request_stop, sig, stop_event)
        except NotImplementedError:
            # Windows event loops have no add_signal_handler
            signal.signal(sig, lambda signum, frame: loop.call_soon_threadsafe(stop_event.set))


def _request_stop(sig: signal.Signals, stop_event: asyncio.Event) -> None:
    logger.info("Received signal, shutting down", signal=sig.name)
    stop_event.set()


async def run(config: BridgeConfig, stop_event: asyncio.Event | None = None) -> int:
    """
    Run the bridge until stop_event is set.

    Args:
        config: Validated bridge configuration
        stop_event: Set to request shutdown; signal handlers set it when omitted

    Returns:
        Process exit code
    """
    if stop_event is None:
        stop_event = asyncio.Event()
        _install_signal_handlers(asyncio.get_running_loop(), stop_event)

    bridge = Bridge.from_config(config)
    try:
        await bridge.start()
    except BridgeBotError as e:
        logger.critical("Failed to start bridge", error=str(e))
        await bridge.stop()
        return EXIT_STARTUP_FAILURE

    await stop_event.wait()
    await bridge.stop()
    logger.info("Bridge stopped")
    return EXIT_OK


def main() -> int:
    """Console script entry point."""
    try:
        config = load_config()
    except ConfigurationError as e:
        logger.critical("Cannot start without valid configuration", error=e.message, config_key=e.config_key)
        return EXIT_STARTUP_FAILURE

    setup_logging(config.to_logging_dict())
    return asyncio.run(run(config))


if __name__ == "__main__":
    sys.exit(main())
