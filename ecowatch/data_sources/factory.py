"""Factory helpers for choosing a weather provider at startup."""

from __future__ import annotations

from ecowatch import config
from ecowatch.data_sources.base import WeatherProvider
from ecowatch.data_sources.open_meteo_client import OpenMeteoClient
from ecowatch.data_sources.tomorrow_io_client import TomorrowIoClient
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/factory")


DEFAULT_PROVIDER_NAME = "open_meteo"


def build_weather_provider(settings: config.Settings) -> WeatherProvider:
    """Instantiate the configured weather provider."""
    provider = (settings.weather_provider or DEFAULT_PROVIDER_NAME).lower()
    timeout = settings.weather_timeout_seconds
    retries = settings.weather_retries

    if provider == "open_meteo":
        logger.info("Using Open-Meteo weather provider", extra={"timeout": timeout})
        kwargs = {"base_url": settings.weather_base_url} if settings.weather_base_url else {}
        return OpenMeteoClient(timeout=timeout, retries=retries, **kwargs)

    if provider == "tomorrow_io":
        if not settings.weather_api_key:
            raise ValueError("weather_api_key must be set for the Tomorrow.io provider")
        logger.info("Using Tomorrow.io weather provider", extra={"timeout": timeout})
        kwargs = {"base_url": settings.weather_base_url} if settings.weather_base_url else {}
        return TomorrowIoClient(settings.weather_api_key, timeout=timeout, retries=retries, **kwargs)

    raise ValueError(f"Unknown weather provider '{provider}'")
