"""Bot configuration using Pydantic Settings"""

import logging
from datetime import timedelta
from functools import lru_cache
from pathlib import Path

import discord
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

BOT_NAME = "timerbot"
BOT_VERSION = "0.1.0"

PACKAGE_DIR = Path(__file__).parent.parent
PROJECT_DIR = PACKAGE_DIR.parent


class Settings(BaseSettings):
    """Bot settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=PROJECT_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Discord
    discord_bot_token: str = Field(default="", description="Discord bot token")
    discord_guild_id: int | None = Field(
        default=None, description="Guild to sync slash commands to (faster than global sync)"
    )
    discord_status: str = Field(default="", description="online / idle / dnd / invisible")
    discord_activity_type: str = Field(default="", description="playing / listening / watching / competing")
    discord_activity_name: str = Field(default="", description="Activity text")

    # Timer API (api.baseUrl, api.key)
    api_base_url: str = Field(default="https://localhost:7001", description="Timer API base URL")
    api_key: str = Field(default="", description="API key exchanged for a bearer token")
    http_timeout_seconds: float = Field(default=30.0, description="Timeout for API calls")
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates of the API")

    # Scheduler (poll.intervalSeconds, token.refreshMarginMinutes)
    poll_interval_seconds: float = Field(default=30.0, description="Expired timer poll interval")
    token_refresh_margin_minutes: float = Field(
        default=5.0, description="Refresh the bearer token this long before it expires"
    )

    # Health server
    health_host: str = Field(default="0.0.0.0", description="Health server host")
    health_port: int = Field(default=8080, description="Health server port")
    enable_health_server: bool = Field(default=True, description="Serve /health and /status")

    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            logger.warning(f"Invalid log level '{v}', defaulting to INFO")
            return "INFO"
        return v_upper

    @field_validator("poll_interval_seconds", "http_timeout_seconds")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be greater than 0")
        return v

    @field_validator("token_refresh_margin_minutes")
    @classmethod
    def validate_margin(cls, v: float) -> float:
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def token_refresh_margin(self) -> timedelta:
        return timedelta(minutes=self.token_refresh_margin_minutes)

    def get_status(self) -> discord.Status:
        status_map = {
            "online": discord.Status.online,
            "idle": discord.Status.idle,
            "dnd": discord.Status.dnd,
            "invisible": discord.Status.invisible,
        }
        return status_map.get(self.discord_status.lower(), discord.Status.online)

    def get_activity(self) -> discord.Activity | None:
        """Get bot activity from settings

        Supports: playing, listening, watching, competing
        """
        if not self.discord_activity_name:
            return None

        activity_map = {
            "playing": discord.ActivityType.playing,
            "listening": discord.ActivityType.listening,
            "watching": discord.ActivityType.watching,
            "competing": discord.ActivityType.competing,
        }

        activity_type = activity_map.get(
            self.discord_activity_type.lower(), discord.ActivityType.playing
        )
        return discord.Activity(type=activity_type, name=self.discord_activity_name)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
