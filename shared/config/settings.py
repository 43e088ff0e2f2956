"""
Settings Module
===============

Pydantic-based configuration with environment variable loading.

Version: 0.1.0
"""

from datetime import timedelta
from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_SOURCE_URL = (
    "https://docs.google.com/spreadsheets/d/18kCz2igidQVgqwLdpsDA15kYXLxqX99r"
    "/export?format=csv&gid=1370952005"
)


class Environment(str, Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class BanDataSettings(BaseSettings):
    """Ban data feed configuration."""

    model_config = SettingsConfigDict(env_prefix="BAN_DATA_")

    source_url: str = DEFAULT_SOURCE_URL
    ttl_hours: float = Field(default=12.0, gt=0)
    fetch_timeout_seconds: float = Field(default=10.0, gt=0)
    supplemental_path: Path = Path("supplemental.json")

    # Empty string disables on-disk persistence
    cache_file: str = "data_cache.json"

    # Rows before the first row holding this value are treated as preamble
    header_marker: str | None = None
    excluded_columns: str = ""

    user_agent: str = "BanwatchBot/0.1 (ban data feed)"

    @property
    def ttl(self) -> timedelta:
        """Cache time-to-live as a timedelta."""
        return timedelta(hours=self.ttl_hours)

    @property
    def cache_path(self) -> Path | None:
        """Path of the on-disk cache file, or None when disabled."""
        return Path(self.cache_file) if self.cache_file.strip() else None

    @property
    def excluded_columns_set(self) -> frozenset[str]:
        """Parse excluded columns string into a set."""
        return frozenset(c.strip() for c in self.excluded_columns.split(",") if c.strip())


class CORSSettings(BaseSettings):
    """CORS configuration."""

    model_config = SettingsConfigDict(env_prefix="CORS_")

    origins: str = "*"
    allow_credentials: bool = False

    @property
    def origins_list(self) -> list[str]:
        """Parse origins string into list."""
        return [o.strip() for o in self.origins.split(",") if o.strip()]


class ServerSettings(BaseSettings):
    """Listen address configuration."""

    host: str = Field(default="127.0.0.1", alias="BAN_DATA_HOST")
    port: int = Field(default=7001, alias="BAN_DATA_PORT")


class Settings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables with sensible defaults.
    Use the global `settings` singleton or call `get_settings()`.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # General
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = True
    log_level: LogLevel = LogLevel.INFO

    # Listen address
    server: ServerSettings = Field(default_factory=ServerSettings)

    # Feed
    ban_data: BanDataSettings = Field(default_factory=BanDataSettings)

    # Security
    cors: CORSSettings = Field(default_factory=CORSSettings)

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Ensure log level is uppercase."""
        if isinstance(v, str):
            return LogLevel(v.upper())
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == Environment.PRODUCTION


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings singleton.
    """
    return Settings()
