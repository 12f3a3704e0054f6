"""Weather providers that can be plugged into the monitoring sweep."""

from .base import WeatherProvider, build_session
from .factory import build_weather_provider
from .open_meteo_client import OpenMeteoClient
from .tomorrow_io_client import TomorrowIoClient

__all__ = [
    "build_weather_provider",
    "build_session",
    "WeatherProvider",
    "OpenMeteoClient",
    "TomorrowIoClient",
]
