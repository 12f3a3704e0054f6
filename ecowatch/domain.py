"""Domain vocabulary and immutable records for destination monitoring.

This module defines the stable contract shared by the capacity policy,
the weather providers, the threshold rules, the record store and the realtime
fanout: enums, sensitivity policies and the dataclasses that flow between
them. No evaluation logic lives here.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class _StrictBaseModel(BaseModel):
    """Base model with strict extra handling."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class Sensitivity(str, Enum):
    """Ecological sensitivity tier of a destination."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Severity(str, Enum):
    """Alert severity, also used as the occupancy risk tier."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


RiskTier = Severity


class AlertType(str, Enum):
    """Category of an alert row."""
    WEATHER = "weather"
    CAPACITY = "capacity"
    ECOLOGICAL = "ecological"
    EMERGENCY = "emergency"
    MAINTENANCE = "maintenance"


class Condition(str, Enum):
    """Canonical weather condition labels."""
    CLEAR = "Clear"
    CLOUDS = "Clouds"
    FOG = "Fog"
    WIND = "Wind"
    RAIN = "Rain"
    SNOW = "Snow"
    THUNDERSTORM = "Thunderstorm"
    UNKNOWN = "Unknown"


class BroadcastEventType(str, Enum):
    """Kinds of events pushed to realtime subscribers."""
    WEATHER_UPDATE = "weather_update"
    ALERT_CREATED = "alert_created"
    HEARTBEAT = "heartbeat"


class CapacityPolicy(_StrictBaseModel):
    """Capacity multiplier and occupancy risk thresholds for one sensitivity tier."""
    sensitivity: Sensitivity
    capacity_multiplier: float = Field(gt=0.0, le=1.0)
    medium_threshold: float = 0.50
    high_threshold: float = 0.70
    critical_threshold: float = 0.85
    requires_permit: bool = False
    requires_eco_briefing: bool = False
    restriction_message: str | None = None


DEFAULT_CAPACITY_POLICIES: Dict[Sensitivity, CapacityPolicy] = {
    Sensitivity.LOW: CapacityPolicy(
        sensitivity=Sensitivity.LOW,
        capacity_multiplier=1.0,
    ),
    Sensitivity.MEDIUM: CapacityPolicy(
        sensitivity=Sensitivity.MEDIUM,
        capacity_multiplier=0.9,
        requires_eco_briefing=True,
    ),
    Sensitivity.HIGH: CapacityPolicy(
        sensitivity=Sensitivity.HIGH,
        capacity_multiplier=0.8,
        requires_permit=True,
        requires_eco_briefing=True,
        restriction_message="Limited visitor access to protect the local ecosystem",
    ),
    Sensitivity.CRITICAL: CapacityPolicy(
        sensitivity=Sensitivity.CRITICAL,
        capacity_multiplier=0.5,
        requires_permit=True,
        requires_eco_briefing=True,
        restriction_message="Severely restricted access due to critical ecological sensitivity",
    ),
}


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(ts: datetime) -> datetime:
    """Treat naive timestamps as UTC and convert aware ones to UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


@dataclass(frozen=True)
class Coordinates:
    """Validated latitude/longitude pair with a display name."""
    latitude: float
    longitude: float
    name: str = ""

    def __post_init__(self) -> None:
        if not -90.0 <= float(self.latitude) <= 90.0:
            raise ValueError(f"latitude out of range: {self.latitude}")
        if not -180.0 <= float(self.longitude) <= 180.0:
            raise ValueError(f"longitude out of range: {self.longitude}")


@dataclass(frozen=True)
class Destination:
    """A protected site as read from the record store."""
    id: str
    name: str
    location: str = ""
    max_capacity: int = 0
    current_occupancy: int = 0
    ecological_sensitivity: Sensitivity = Sensitivity.LOW
    is_active: bool = True
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    def __post_init__(self) -> None:
        if self.max_capacity < 0:
            raise ValueError("max_capacity must be >= 0")
        if self.current_occupancy < 0:
            raise ValueError("current_occupancy must be >= 0")


@dataclass(frozen=True)
class WeatherSnapshot:
    """One captured reading of environmental conditions. Numeric fields are never None."""
    destination_id: str
    label: str
    temperature: float  # °C
    humidity: float  # %
    pressure: float  # hPa
    wind_speed: float  # m/s
    wind_direction: float  # degrees
    visibility: float  # km
    uv_index: float
    cloud_cover: float  # %
    precipitation_probability: float  # %
    precipitation_type: str
    condition: Condition
    description: str
    icon: str
    captured_at: datetime
    source: str = ""

    def age_seconds(self, now: datetime) -> float:
        """Seconds elapsed between capture and `now`."""
        return (as_utc(now) - as_utc(self.captured_at)).total_seconds()


@dataclass(frozen=True)
class Alert:
    """Alert row; at most one active row exists per (destination_id, type)."""
    id: str
    type: AlertType
    title: str
    message: str
    severity: Severity
    destination_id: str
    is_active: bool
    created_at: datetime


@dataclass(frozen=True)
class BroadcastEvent:
    """Transient event fanned out to realtime subscribers. Never persisted."""
    type: BroadcastEventType
    destination_id: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "destinationId": self.destination_id,
            "payload": self.payload,
            "timestamp": as_utc(self.timestamp).isoformat(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    @classmethod
    def from_json(cls, raw: str | bytes) -> "BroadcastEvent":
        """Parse an event produced by `to_json`; raises ValueError on bad input."""
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        data = json.loads(raw)
        if not isinstance(data, dict) or "type" not in data:
            raise ValueError("broadcast event must be an object with a type")
        timestamp = data.get("timestamp")
        return cls(
            type=BroadcastEventType(data["type"]),
            destination_id=data.get("destinationId"),
            payload=data.get("payload") or {},
            timestamp=as_utc(datetime.fromisoformat(timestamp)) if timestamp else utc_now(),
        )
