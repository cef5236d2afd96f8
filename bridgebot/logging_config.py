"""
Structlog-based logging configuration for the bridge bot.

All modules log through get_logger() so that keyword context (transport,
host, channel id, player id) survives into both console and file output.

CORRECT USAGE:
    from .logging_config import get_logger
    logger = get_logger(__name__)
    logger.info("Relayed chat", username="Steve", transport="game")
"""

import logging
import os
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog
from structlog.stdlib import BoundLogger, LoggerFactory

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_NAME = "bridge.log"


def _resolve_log_base(log_base: str) -> Path:
    """
    Resolve log_base to an absolute path relative to the project root.

    Args:
        log_base: Relative or absolute path to log directory

    Returns:
        Absolute path to log directory
    """
    log_path = Path(log_base)
    if log_path.is_absolute():
        return log_path

    current_dir = Path.cwd()
    for parent in [current_dir] + list(current_dir.parents):
        if (parent / "pyproject.toml").exists():
            return parent / log_path
    return current_dir / log_path


def _rotate_log_file(log_file: Path) -> None:
    """Rename a log file left over from a previous run with a timestamp suffix."""
    if not log_file.exists() or log_file.stat().st_size == 0:
        return

    timestamp = datetime.now(UTC).strftime("%Y_%m_%d_%H%M%S")
    rotated_path = log_file.parent / f"{log_file.stem}.log.{timestamp}"
    try:
        log_file.rename(rotated_path)
    except OSError as e:
        get_logger("bridgebot.logging").warning("Could not rotate log file", name=log_file.name, error=str(e))


def detect_environment() -> str:
    """
    Detect the current environment.

    Returns:
        Environment name: "unit_test", an explicit BRIDGEBOT_ENV value, or "local"
    """
    if "pytest" in sys.modules or "pytest" in sys.argv[0]:
        return "unit_test"

    env = os.getenv("BRIDGEBOT_ENV")
    if env:
        return env

    return "local"


def _parse_max_bytes(max_size: str | int) -> int:
    """Convert "10MB"/"512KB"/"100B" style sizes to bytes."""
    if isinstance(max_size, int):
        return max_size
    if max_size.endswith("MB"):
        return int(max_size[:-2]) * 1024 * 1024
    if max_size.endswith("KB"):
        return int(max_size[:-2]) * 1024
    if max_size.endswith("B"):
        return int(max_size[:-1])
    return int(max_size)


def configure_structlog(
    environment: str | None = None,
    log_level: str = "INFO",
    log_config: dict[str, Any] | None = None,
) -> None:
    """
    Configure structlog and the stdlib handlers it renders into.

    Args:
        environment: Environment name (auto-detected if None)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_config: Logging configuration dictionary
    """
    if environment is None:
        environment = detect_environment()
    log_config = log_config or {}
    level = getattr(logging, str(log_level).upper(), logging.INFO)

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        # Timestamp, level and logger name come from the stdlib formatter
        structlog.processors.KeyValueRenderer(key_order=["event"], drop_missing=True),
    ]

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        if getattr(handler, "_bridgebot_handler", False):
            root_logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    console_handler._bridgebot_handler = True  # type: ignore[attr-defined]
    root_logger.addHandler(console_handler)

    if not log_config.get("disable_file_logging", False):
        _setup_file_logging(environment, log_config, level, formatter)

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=BoundLogger,
        cache_logger_on_first_use=False,
    )


def _setup_file_logging(
    environment: str,
    log_config: dict[str, Any],
    level: int,
    formatter: logging.Formatter,
) -> None:
    """Attach a rotating file handler under <log_base>/<environment>/."""
    env_log_dir = _resolve_log_base(log_config.get("log_base", "logs")) / environment
    env_log_dir.mkdir(parents=True, exist_ok=True)

    log_path = env_log_dir / LOG_FILE_NAME
    _rotate_log_file(log_path)

    rotation_config = log_config.get("rotation", {})
    handler = RotatingFileHandler(
        log_path,
        maxBytes=_parse_max_bytes(rotation_config.get("max_size", "10MB")),
        backupCount=rotation_config.get("backup_count", 5),
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler._bridgebot_handler = True  # type: ignore[attr-defined]
    logging.getLogger().addHandler(handler)


def get_logger(name: str) -> BoundLogger:
    """
    Get a structlog logger with the specified name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)


def setup_logging(config: dict[str, Any]) -> None:
    """
    Set up logging from the "logging" section of a config dictionary.

    Args:
        config: Configuration dictionary with an optional "logging" key
    """
    logging_config = config.get("logging", {})
    environment = logging_config.get("environment") or detect_environment()
    log_level = logging_config.get("level", "INFO")

    configure_structlog(environment, log_level, logging_config)

    get_logger("bridgebot.logging").info(
        "Logging system initialized",
        environment=environment,
        log_level=log_level,
        log_base=logging_config.get("log_base", "logs"),
        file_logging=not logging_config.get("disable_file_logging", False),
    )
