"""Application configuration pulled from environment variables via pydantic."""
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="config")


class Settings(BaseSettings):
    """Environment-driven configuration for the ecowatch monitoring service."""
    model_config = SettingsConfigDict(env_prefix="ECOWATCH_", extra="ignore")

    # environmental data provider
    weather_provider: str = "open_meteo"  # options: open_meteo, tomorrow_io
    weather_base_url: str | None = None
    weather_api_key: str | None = None
    weather_timeout_seconds: float = 5.0
    weather_retries: int = 2

    # record store
    record_store_url: str = "memory://"
    record_store_create_schema: bool = True
    freshness_seconds: int = 6 * 3600
    alert_retention_seconds: int = 3600

    # realtime fanout
    broadcast_redis_url: str | None = None
    broadcast_channel: str = "weather-monitor-shared"
    subscriber_queue_size: int = 64
    heartbeat_seconds: float = 15.0

    # sweep
    max_workers: int = 4
    sweep_interval_seconds: int = 0

    log_level: str = "INFO"

    @field_validator("weather_base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str | None:
        """Normalize base URLs to avoid double slashes."""
        if v is None:
            return None
        return str(v).rstrip("/")

    @field_validator("weather_provider", mode="after")
    @classmethod
    def normalize_provider(cls, v: str) -> str:
        """Accept dashed and mixed-case provider names."""
        return str(v).strip().lower().replace("-", "_")

    @field_validator("max_workers", "subscriber_queue_size", mode="after")
    @classmethod
    def at_least_one(cls, v: int) -> int:
        """Worker and queue bounds are always positive."""
        return max(1, int(v))

    @field_validator("sweep_interval_seconds", "freshness_seconds", "alert_retention_seconds", mode="after")
    @classmethod
    def non_negative(cls, v: int) -> int:
        """Windows and intervals below zero mean zero."""
        return max(0, int(v))


def load_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings()


if __name__ == "__main__":
    logger.setLevel("DEBUG")
    logger.debug(f"Loaded settings: {load_settings().model_dump_json(indent=4)}")
