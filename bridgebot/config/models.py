"""
Pydantic-based configuration models for the bridge bot.

Each section reads its own environment prefix (and the .env file), so the
same variables the bot has always used keep working: MINECRAFT_*,
MICROSOFT_*, DISCORD_*, RELAY_* and LOGGING_*.
"""

from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings

from ..logging_config import detect_environment, get_logger

logger = get_logger(__name__)

DEFAULT_AUTH_TITLE = "00000000441cc96b"

_ENV_FILE_CONFIG = {"env_file": ".env", "env_file_encoding": "utf-8", "case_sensitive": False, "extra": "ignore"}


class GameConfig(BaseSettings):
    """Minecraft Bedrock session configuration."""

    host: str = Field(default="localhost", description="Game server address")
    port: int = Field(default=19132, description="Game server port")
    username: str = Field(default="DiscordBot", description="Identity the bot plays and chats as")
    version: str | None = Field(default=None, description="Protocol version; auto-detected when unset")
    offline: bool = Field(default=True, description="Connect without Microsoft authentication")
    auth_title: str = Field(
        default=DEFAULT_AUTH_TITLE,
        validation_alias=AliasChoices("MICROSOFT_AUTH_TITLE", "MINECRAFT_AUTH_TITLE"),
        description="Authentication app id used in online mode",
    )
    flow: Literal["live", "sisu"] = Field(
        default="live",
        validation_alias=AliasChoices("MICROSOFT_FLOW", "MINECRAFT_FLOW"),
        description="Authentication flow used in online mode",
    )
    profiles_folder: str = Field(default="./auth_cache", description="Cache folder for authentication tokens")
    connect_timeout: float = Field(default=15.0, description="Handshake timeout in seconds")
    proxy_host: str = Field(default="127.0.0.1", description="Packet proxy address")
    proxy_port: int = Field(default=19150, description="Packet proxy port")

    @field_validator("port", "proxy_port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port is in valid range."""
        if not 1 <= v <= 65535:
            logger.error("Invalid port", port=v, valid_range="1-65535")
            raise ValueError("Port must be between 1 and 65535")
        return v

    @field_validator("version")
    @classmethod
    def blank_version_is_auto(cls, v: str | None) -> str | None:
        """Treat an empty MINECRAFT_VERSION as "auto-detect"."""
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("connect_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Validate the handshake timeout is positive."""
        if v <= 0:
            raise ValueError("Connect timeout must be positive")
        return v

    model_config = {**_ENV_FILE_CONFIG, "env_prefix": "MINECRAFT_", "frozen": True, "populate_by_name": True}


class ChatConfig(BaseSettings):
    """Discord session configuration. Token and channel id are required."""

    token: str = Field(..., description="Discord bot token (required)")
    channel_id: int = Field(..., description="Target channel id (required)")
    ignore_bot_authors: bool = Field(default=False, description="Also ignore messages from other bots")

    @field_validator("token")
    @classmethod
    def validate_token(cls, v: str) -> str:
        """Reject blank tokens."""
        if not v.strip():
            logger.error("Discord token validation failed - empty token")
            raise ValueError("Discord token cannot be empty")
        return v.strip()

    @field_validator("channel_id")
    @classmethod
    def validate_channel_id(cls, v: int) -> int:
        """Discord snowflakes are positive."""
        if v <= 0:
            raise ValueError("Discord channel id must be a positive integer")
        return v

    model_config = {**_ENV_FILE_CONFIG, "env_prefix": "DISCORD_", "frozen": True}


class RelayConfig(BaseSettings):
    """Timing and formatting of the relay itself."""

    stagger_delay: float = Field(default=2.0, description="Seconds between chat login and game connect")
    reconnect_delay: float = Field(default=5.0, description="Seconds before a game reconnect attempt")
    post_spawn_command: str = Field(default="/connect", description="Command issued once after spawning")
    post_spawn_delay: float = Field(default=1.0, description="Seconds between spawn and the post-spawn command")
    platform_label: str = Field(default="Discord", description="Platform name shown in relayed game chat")
    message_format: str = Field(
        default="[{platform}] <{username}> {content}",
        description="Template for chat-platform messages relayed into the game",
    )

    @field_validator("stagger_delay", "reconnect_delay", "post_spawn_delay")
    @classmethod
    def validate_delay(cls, v: float) -> float:
        """Delays cannot be negative."""
        if v < 0:
            raise ValueError("Delays must be zero or positive")
        return v

    @field_validator("message_format")
    @classmethod
    def validate_message_format(cls, v: str) -> str:
        """The template must render with the three known placeholders."""
        try:
            v.format(platform="", username="", content="")
        except (KeyError, IndexError, ValueError) as e:
            raise ValueError(f"Invalid message format: {e}") from e
        return v

    model_config = {**_ENV_FILE_CONFIG, "env_prefix": "RELAY_", "frozen": True}


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    environment: str = Field(default_factory=detect_environment, description="Logging environment")
    level: str = Field(default="INFO", description="Log level")
    log_base: str = Field(default="logs", description="Base log directory")
    rotation_max_size: str = Field(default="10MB", description="Log rotation max size")
    rotation_backup_count: int = Field(default=5, description="Number of backup log files")
    disable_file_logging: bool = Field(default=False, description="Log to the console only")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}, got '{v}'")
        return v_upper

    model_config = {**_ENV_FILE_CONFIG, "env_prefix": "LOGGING_", "frozen": True}


class BridgeConfig(BaseSettings):
    """
    Composite bridge configuration.

    Built once by load_config() at startup and handed to the Bridge, which
    passes each transport only its own section.
    """

    game: GameConfig = Field(default_factory=GameConfig)
    chat: ChatConfig = Field(default_factory=ChatConfig)  # type: ignore[arg-type]
    relay: RelayConfig = Field(default_factory=RelayConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {**_ENV_FILE_CONFIG, "frozen": True}

    def to_logging_dict(self) -> dict:
        """Shape the logging section the way setup_logging() expects it."""
        return {
            "logging": {
                "environment": self.logging.environment,
                "level": self.logging.level,
                "log_base": self.logging.log_base,
                "disable_file_logging": self.logging.disable_file_logging,
                "rotation": {
                    "max_size": self.logging.rotation_max_size,
                    "backup_count": self.logging.rotation_backup_count,
                },
            }
        }
