"""Helpers for fetching current weather from the Open-Meteo forecast API."""
from __future__ import annotations

import requests

from ecowatch.data_sources.base import build_session, get_json, number
from ecowatch.domain import Condition, Coordinates, WeatherSnapshot, utc_now
from ecowatch.errors import MalformedResponse
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag='open_meteo_client')

OPEN_METEO_WEATHER_URL = "https://api.open-meteo.com/v1/forecast"

CURRENT_VARS = [
    "temperature_2m",
    "relative_humidity_2m",
    "pressure_msl",
    "wind_speed_10m",
    "wind_direction_10m",
    "visibility",
    "uv_index",
    "cloud_cover",
    "precipitation_probability",
    "weather_code",
]

EXPECTED_UNITS = {
    "temperature_2m": "°C",
    "relative_humidity_2m": "%",
    "pressure_msl": "hPa",
    "wind_speed_10m": "m/s",
    "wind_direction_10m": "°",
    "visibility": "m",
    "cloud_cover": "%",
    "precipitation_probability": "%",
}

# Acceptable alternative units that should not trigger warnings (API/localized differences).
ALLOWED_UNIT_SYNONYMS = {
    "relative_humidity_2m": {"%", "percent"},
    "wind_speed_10m": {"m/s", "ms"},
    "wind_direction_10m": {"°", "deg", "degrees"},
    "visibility": {"m", "meters"},
    "cloud_cover": {"%", "percent"},
    "precipitation_probability": {"%", "percent"},
}

UNKNOWN_WEATHER = (Condition.UNKNOWN, "Unknown weather condition", "01d", "None")

# WMO weather interpretation codes -> (condition, description, icon, precipitation type)
WMO_CODES: dict[int, tuple[Condition, str, str, str]] = {
    0: (Condition.CLEAR, "Clear skies", "01d", "None"),
    1: (Condition.CLEAR, "Mostly clear", "01d", "None"),
    2: (Condition.CLOUDS, "Partly cloudy", "02d", "None"),
    3: (Condition.CLOUDS, "Overcast", "04d", "None"),
    45: (Condition.FOG, "Fog", "50d", "None"),
    48: (Condition.FOG, "Depositing rime fog", "50d", "None"),
    51: (Condition.RAIN, "Light drizzle", "09d", "Rain"),
    53: (Condition.RAIN, "Drizzle", "09d", "Rain"),
    55: (Condition.RAIN, "Dense drizzle", "09d", "Rain"),
    56: (Condition.RAIN, "Light freezing drizzle", "09d", "Freezing Rain"),
    57: (Condition.RAIN, "Freezing drizzle", "09d", "Freezing Rain"),
    61: (Condition.RAIN, "Light rain", "10d", "Rain"),
    63: (Condition.RAIN, "Rain", "10d", "Rain"),
    65: (Condition.RAIN, "Heavy rain", "10d", "Rain"),
    66: (Condition.RAIN, "Light freezing rain", "09d", "Freezing Rain"),
    67: (Condition.RAIN, "Freezing rain", "09d", "Freezing Rain"),
    71: (Condition.SNOW, "Light snow", "13d", "Snow"),
    73: (Condition.SNOW, "Snow", "13d", "Snow"),
    75: (Condition.SNOW, "Heavy snow", "13d", "Snow"),
    77: (Condition.SNOW, "Snow grains", "13d", "Snow"),
    80: (Condition.RAIN, "Light rain showers", "09d", "Rain"),
    81: (Condition.RAIN, "Rain showers", "09d", "Rain"),
    82: (Condition.RAIN, "Violent rain showers", "09d", "Rain"),
    85: (Condition.SNOW, "Light snow showers", "13d", "Snow"),
    86: (Condition.SNOW, "Heavy snow showers", "13d", "Snow"),
    95: (Condition.THUNDERSTORM, "Thunderstorm", "11d", "Rain"),
    96: (Condition.THUNDERSTORM, "Thunderstorm with hail", "11d", "Ice Pellets"),
    99: (Condition.THUNDERSTORM, "Thunderstorm with heavy hail", "11d", "Ice Pellets"),
}


def describe_wmo_code(code) -> tuple[Condition, str, str, str]:
    """Map a WMO weather code; unknown or missing codes fall back to Unknown."""
    try:
        key = int(code)
    except (TypeError, ValueError):
        return UNKNOWN_WEATHER
    return WMO_CODES.get(key, UNKNOWN_WEATHER)


def _warn_on_unexpected_units(units: dict, *, context: str):
    """Log a warning if Open-Meteo returns units we did not request/expect."""
    if not units:
        return
    for field, expected in EXPECTED_UNITS.items():
        if field not in units:
            continue
        actual = units.get(field)
        if actual and actual != expected:
            allowed = ALLOWED_UNIT_SYNONYMS.get(field, set())
            if actual not in allowed:
                logger.warning(
                    "Unexpected Open-Meteo unit",
                    extra={"context": context, "field": field, "unit": actual, "expected": expected},
                )


class OpenMeteoClient:
    """Fetch current conditions from Open-Meteo (no credential needed)."""

    name = "open_meteo"

    def __init__(
        self,
        *,
        base_url: str = OPEN_METEO_WEATHER_URL,
        timeout: float = 5.0,
        session: requests.Session | None = None,
        retries: int = 2,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self.session = session or build_session(retries=retries)

    def fetch(self, coordinates: Coordinates, label: str, *, destination_id: str = "") -> WeatherSnapshot:
        """Fetch the latest observation for `coordinates` in metric units."""
        params = {
            "latitude": coordinates.latitude,
            "longitude": coordinates.longitude,
            "current": ",".join(CURRENT_VARS),
            "timezone": "UTC",
            "temperature_unit": "celsius",
            "wind_speed_unit": "ms",
        }
        data = get_json(self.session, self.base_url, params=params, timeout=self.timeout, provider=self.name)
        return self.parse(data, label=label, destination_id=destination_id)

    def parse(self, data: dict, *, label: str, destination_id: str = "") -> WeatherSnapshot:
        """Normalize a `current` block; visibility is converted from metres to kilometres."""
        current = data.get("current")
        if not isinstance(current, dict):
            raise MalformedResponse("Open-Meteo payload has no current object", provider=self.name)
        _warn_on_unexpected_units(data.get("current_units") or {}, context="weather_current")

        condition, description, icon, precip_type = describe_wmo_code(current.get("weather_code"))

        return WeatherSnapshot(
            destination_id=destination_id,
            label=label,
            temperature=number(current.get("temperature_2m")),
            humidity=number(current.get("relative_humidity_2m")),
            pressure=number(current.get("pressure_msl")),
            wind_speed=number(current.get("wind_speed_10m")),
            wind_direction=number(current.get("wind_direction_10m")),
            visibility=number(current.get("visibility")) / 1000.0,
            uv_index=number(current.get("uv_index")),
            cloud_cover=number(current.get("cloud_cover")),
            precipitation_probability=number(current.get("precipitation_probability")),
            precipitation_type=precip_type,
            condition=condition,
            description=description,
            icon=icon,
            captured_at=utc_now(),
            source=self.name,
        )
