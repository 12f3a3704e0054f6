"""Client for the Tomorrow.io realtime weather endpoint."""
from __future__ import annotations

import requests

from ecowatch.data_sources.base import build_session, get_json, number
from ecowatch.domain import Condition, Coordinates, WeatherSnapshot, utc_now
from ecowatch.errors import MalformedResponse
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="tomorrow_io_client")

TOMORROW_IO_REALTIME_URL = "https://api.tomorrow.io/v4/weather/realtime"

REALTIME_FIELDS = [
    "temperature",
    "humidity",
    "pressureSeaLevel",
    "windSpeed",
    "windDirection",
    "visibility",
    "uvIndex",
    "cloudCover",
    "precipitationProbability",
    "precipitationType",
    "weatherCode",
]

UNKNOWN_WEATHER = (Condition.UNKNOWN, "Unknown weather condition", "01d")

WEATHER_CODES: dict[int, tuple[Condition, str, str]] = {
    0: UNKNOWN_WEATHER,
    1000: (Condition.CLEAR, "Clear skies", "01d"),
    1001: (Condition.CLOUDS, "Cloudy", "02d"),
    1100: (Condition.CLEAR, "Mostly clear", "01d"),
    1101: (Condition.CLOUDS, "Partly cloudy", "02d"),
    1102: (Condition.CLOUDS, "Mostly cloudy", "03d"),
    1103: (Condition.CLOUDS, "Overcast", "04d"),
    2000: (Condition.FOG, "Fog", "50d"),
    2100: (Condition.FOG, "Light fog", "50d"),
    3000: (Condition.WIND, "Light wind", "50d"),
    3001: (Condition.WIND, "Wind", "50d"),
    3002: (Condition.WIND, "Strong wind", "50d"),
    4000: (Condition.RAIN, "Drizzle", "09d"),
    4001: (Condition.RAIN, "Rain", "10d"),
    4200: (Condition.RAIN, "Light rain", "10d"),
    4201: (Condition.RAIN, "Heavy rain", "10d"),
    5000: (Condition.SNOW, "Snow", "13d"),
    5001: (Condition.SNOW, "Flurries", "13d"),
    5100: (Condition.SNOW, "Light snow", "13d"),
    5101: (Condition.SNOW, "Heavy snow", "13d"),
    6000: (Condition.RAIN, "Freezing drizzle", "09d"),
    6001: (Condition.RAIN, "Freezing rain", "09d"),
    6200: (Condition.RAIN, "Light freezing rain", "09d"),
    6201: (Condition.RAIN, "Heavy freezing rain", "09d"),
    7000: (Condition.SNOW, "Ice pellets", "13d"),
    7101: (Condition.SNOW, "Heavy ice pellets", "13d"),
    7102: (Condition.SNOW, "Light ice pellets", "13d"),
    8000: (Condition.THUNDERSTORM, "Thunderstorm", "11d"),
}

PRECIPITATION_TYPES = {
    0: "None",
    1: "Rain",
    2: "Snow",
    3: "Freezing Rain",
    4: "Ice Pellets",
}


def describe_weather_code(code) -> tuple[Condition, str, str]:
    """Map a Tomorrow.io weather code to (condition, description, icon); unknown codes are safe."""
    try:
        key = int(code)
    except (TypeError, ValueError):
        return UNKNOWN_WEATHER
    return WEATHER_CODES.get(key, UNKNOWN_WEATHER)


def describe_precipitation_type(code) -> str:
    if code is None:
        return PRECIPITATION_TYPES[0]
    try:
        return PRECIPITATION_TYPES.get(int(code), "Unknown")
    except (TypeError, ValueError):
        return "Unknown"


class TomorrowIoClient:
    """Fetch current conditions from Tomorrow.io (metric units, visibility in km)."""

    name = "tomorrow_io"

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = TOMORROW_IO_REALTIME_URL,
        timeout: float = 5.0,
        session: requests.Session | None = None,
        retries: int = 2,
    ) -> None:
        if not api_key:
            raise ValueError("Tomorrow.io requires an API key")
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.session = session or build_session(retries=retries)

    def fetch(self, coordinates: Coordinates, label: str, *, destination_id: str = "") -> WeatherSnapshot:
        """Fetch realtime conditions for `coordinates` and normalize them."""
        params = {
            "location": f"{coordinates.latitude},{coordinates.longitude}",
            "fields": ",".join(REALTIME_FIELDS),
            "units": "metric",
            "apikey": self.api_key,
        }
        logger.debug("Fetching Tomorrow.io realtime conditions", extra={"label": label})
        data = get_json(self.session, self.base_url, params=params, timeout=self.timeout, provider=self.name)
        return self.parse(data, label=label, destination_id=destination_id)

    def parse(self, data: dict, *, label: str, destination_id: str = "") -> WeatherSnapshot:
        """Normalize a realtime payload; raises MalformedResponse when `data.values` is absent."""
        body = data.get("data")
        values = body.get("values") if isinstance(body, dict) else None
        if not isinstance(values, dict):
            raise MalformedResponse("Tomorrow.io payload has no data.values object", provider=self.name)

        condition, description, icon = describe_weather_code(values.get("weatherCode"))
        if values.get("weatherCode") is not None and condition is Condition.UNKNOWN and values.get("weatherCode") != 0:
            logger.info("Unmapped Tomorrow.io weather code", extra={"code": values.get("weatherCode")})

        return WeatherSnapshot(
            destination_id=destination_id,
            label=label,
            temperature=number(values.get("temperature")),
            humidity=number(values.get("humidity")),
            pressure=number(values.get("pressureSeaLevel")),
            wind_speed=number(values.get("windSpeed")),
            wind_direction=number(values.get("windDirection")),
            visibility=number(values.get("visibility")),
            uv_index=number(values.get("uvIndex")),
            cloud_cover=number(values.get("cloudCover")),
            precipitation_probability=number(values.get("precipitationProbability")),
            precipitation_type=describe_precipitation_type(values.get("precipitationType")),
            condition=condition,
            description=description,
            icon=icon,
            captured_at=utc_now(),
            source=self.name,
        )
