"""
Configuration module for the bridge bot.

Configuration is validated once at startup and passed explicitly; there is
no module-level cache.

Usage:
    from bridgebot.config import load_config

    config = load_config()
    logger.info("Game target", host=config.game.host, port=config.game.port)
"""

from pydantic import ValidationError
from pydantic_settings import SettingsError

from ..exceptions import ConfigurationError
from .models import BridgeConfig, ChatConfig, GameConfig, LoggingConfig, RelayConfig

__all__ = [
    "BridgeConfig",
    "ChatConfig",
    "GameConfig",
    "LoggingConfig",
    "RelayConfig",
    "load_config",
]


def load_config(**overrides) -> BridgeConfig:
    """
    Build the bridge configuration from the environment and .env file.

    Args:
        **overrides: Section models to use instead of reading the environment

    Returns:
        BridgeConfig: The validated configuration

    Raises:
        ConfigurationError: If a required value is missing or invalid
    """
    try:
        return BridgeConfig(**overrides)
    except ValidationError as error:
        first = error.errors()[0] if error.errors() else {}
        config_key = ".".join(str(part) for part in first.get("loc", ())) or None
        raise ConfigurationError(
            f"Invalid configuration: {first.get('msg', str(error))}",
            config_key=config_key,
            details={"error_count": error.error_count()},
        ) from error
    except SettingsError as error:
        raise ConfigurationError(f"Unreadable configuration: {error}") from error
