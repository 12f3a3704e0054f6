"""Threshold rules that decide whether a snapshot or an occupancy figure warrants an alert.

The weather rules are evaluated independently and in a fixed order so every
matching reason is collected. Severity is a separate function of the same
snapshot. Comparisons are strict: a reading exactly on a limit does not fire.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Tuple

from ecowatch import capacity_policy
from ecowatch.domain import (
    DEFAULT_CAPACITY_POLICIES,
    Condition,
    Destination,
    RiskTier,
    Severity,
    WeatherSnapshot,
)

EXTREME_HEAT_C = 40.0
FREEZING_C = 0.0
HIGH_WIND_MS = 15.0
HEAVY_PRECIP_PERCENT = 80.0
LOW_VISIBILITY_KM = 1.0
EXTREME_UV = 8.0

CRITICAL_HEAT_C = 45.0
CRITICAL_COLD_C = -10.0
CRITICAL_WIND_MS = 20.0
CRITICAL_VISIBILITY_KM = 0.5

Rule = Tuple[str, Callable[[WeatherSnapshot], bool]]

WEATHER_RULES: List[Rule] = [
    ("Extreme heat warning", lambda s: s.temperature > EXTREME_HEAT_C),
    ("Freezing temperature alert", lambda s: s.temperature < FREEZING_C),
    ("High wind warning", lambda s: s.wind_speed > HIGH_WIND_MS),
    ("Heavy precipitation expected", lambda s: s.precipitation_probability > HEAVY_PRECIP_PERCENT),
    ("Low visibility conditions", lambda s: s.visibility < LOW_VISIBILITY_KM),
    ("High UV index - extreme sun exposure risk", lambda s: s.uv_index > EXTREME_UV),
    ("Thunderstorm warning", lambda s: s.condition == Condition.THUNDERSTORM),
]


@dataclass(frozen=True)
class Evaluation:
    """Outcome of the weather rules for one snapshot."""
    fires: bool
    reasons: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class CapacityEvaluation:
    """Outcome of the occupancy rule for one destination."""
    fires: bool
    severity: Severity
    reason: str | None
    utilization: float
    adjusted_capacity: int


def evaluate(snapshot: WeatherSnapshot) -> Evaluation:
    """Run every weather rule and collect the reasons that matched, in rule order."""
    reasons = [reason for reason, check in WEATHER_RULES if check(snapshot)]
    return Evaluation(fires=bool(reasons), reasons=reasons)


def severity_for(snapshot: WeatherSnapshot) -> Severity:
    t = snapshot.temperature
    if t > CRITICAL_HEAT_C or t < CRITICAL_COLD_C:
        return Severity.CRITICAL
    if snapshot.wind_speed > CRITICAL_WIND_MS or snapshot.visibility < CRITICAL_VISIBILITY_KM:
        return Severity.CRITICAL
    if t > EXTREME_HEAT_C or t < FREEZING_C:
        return Severity.HIGH
    if snapshot.wind_speed > HIGH_WIND_MS or snapshot.precipitation_probability > HEAVY_PRECIP_PERCENT:
        return Severity.HIGH
    return Severity.MEDIUM


def evaluate_capacity(destination: Destination, policies=DEFAULT_CAPACITY_POLICIES) -> CapacityEvaluation:
    """Fire when the occupancy risk tier is high or critical; severity mirrors the tier."""
    tier = capacity_policy.risk_tier(destination, policies)
    ratio = capacity_policy.utilization(destination, policies)
    fires = tier in (RiskTier.HIGH, RiskTier.CRITICAL)
    reason = None
    if fires:
        reason = "Over ecological capacity" if ratio > 1.0 else "Approaching ecological capacity"
    return CapacityEvaluation(
        fires=fires,
        severity=Severity(tier.value),
        reason=reason,
        utilization=ratio,
        adjusted_capacity=capacity_policy.adjusted_capacity(destination, policies),
    )


def weather_alert_title(label: str) -> str:
    return f"Weather Alert - {label}"


def capacity_alert_title(label: str) -> str:
    return f"Capacity Alert - {label}"


def weather_alert_message(snapshot: WeatherSnapshot, evaluation: Evaluation) -> str:
    """Human text: the joined reasons as the first sentence, then the current readings.

    UV and rain chance are only mentioned when non-zero.
    """
    reasons = ", ".join(evaluation.reasons)
    parts = [
        f"{reasons}. Current: {snapshot.temperature:g}°C, {snapshot.description}.",
        f"Wind: {snapshot.wind_speed:g}m/s.",
    ]
    if snapshot.uv_index:
        parts.append(f"UV: {snapshot.uv_index:g}.")
    if snapshot.precipitation_probability:
        parts.append(f"Rain chance: {snapshot.precipitation_probability:g}%.")
    return " ".join(parts)


def capacity_alert_message(destination: Destination, evaluation: CapacityEvaluation) -> str:
    if evaluation.utilization == float("inf"):
        usage = "no adjusted capacity"
    else:
        usage = f"{evaluation.utilization * 100:.0f}% of adjusted capacity"
    return (
        f"{evaluation.reason}. Occupancy: {destination.current_occupancy}/"
        f"{evaluation.adjusted_capacity} ({usage})."
    )


def first_reason(message: str) -> str:
    """Return the first sentence of an alert message."""
    head, _, _ = message.partition(". ")
    return head.rstrip(".")
