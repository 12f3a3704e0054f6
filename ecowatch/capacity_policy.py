"""Ecological capacity policy: adjusted capacity, utilization and risk tier.

Everything here is a pure function of a `Destination` and an immutable policy
table, so it is safe to call from any sweep worker without locking.
Utilization above 1.0 is a normal result ("over capacity") and is never clamped.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Mapping

from ecowatch.domain import (
    DEFAULT_CAPACITY_POLICIES,
    CapacityPolicy,
    Destination,
    RiskTier,
    Sensitivity,
)

PolicyTable = Mapping[Sensitivity, CapacityPolicy]

_SENSITIVITY_ORDER = (Sensitivity.LOW, Sensitivity.MEDIUM, Sensitivity.HIGH, Sensitivity.CRITICAL)


@dataclass(frozen=True)
class CapacityAssessment:
    """Capacity figures for one destination under its sensitivity policy."""
    destination_id: str
    sensitivity: Sensitivity
    max_capacity: int
    adjusted_capacity: int
    current_occupancy: int
    available_spots: int
    utilization: float
    risk_tier: RiskTier
    over_capacity: bool
    requires_permit: bool
    requires_eco_briefing: bool
    restriction_message: str | None


def validate_policies(policies: PolicyTable) -> None:
    """Raise ValueError unless every tier is present and multipliers strictly decrease."""
    previous: float | None = None
    for tier in _SENSITIVITY_ORDER:
        policy = policies.get(tier)
        if policy is None:
            raise ValueError(f"missing capacity policy for sensitivity '{tier.value}'")
        m = policy.capacity_multiplier
        if not 0.0 < m <= 1.0:
            raise ValueError(f"capacity multiplier for '{tier.value}' must be in (0, 1], got {m}")
        if previous is not None and m >= previous:
            raise ValueError(
                f"capacity multiplier must decrease as sensitivity increases ('{tier.value}'={m} >= {previous})"
            )
        if not policy.medium_threshold <= policy.high_threshold <= policy.critical_threshold:
            raise ValueError(f"risk thresholds for '{tier.value}' are out of order")
        previous = m


def policy_for(destination: Destination, policies: PolicyTable = DEFAULT_CAPACITY_POLICIES) -> CapacityPolicy:
    """Return the policy row matching the destination's sensitivity."""
    return policies[Sensitivity(destination.ecological_sensitivity)]


def adjusted_capacity(destination: Destination, policies: PolicyTable = DEFAULT_CAPACITY_POLICIES) -> int:
    """floor(max_capacity × multiplier)."""
    policy = policy_for(destination, policies)
    return int(math.floor(destination.max_capacity * policy.capacity_multiplier))


def utilization(destination: Destination, policies: PolicyTable = DEFAULT_CAPACITY_POLICIES) -> float:
    """Occupancy as a fraction of adjusted capacity; may exceed 1.0."""
    capacity = adjusted_capacity(destination, policies)
    if capacity <= 0:
        return math.inf if destination.current_occupancy > 0 else 0.0
    return destination.current_occupancy / capacity


def risk_tier(destination: Destination, policies: PolicyTable = DEFAULT_CAPACITY_POLICIES) -> RiskTier:
    """Bucket utilization against the tier thresholds (inclusive lower bounds)."""
    policy = policy_for(destination, policies)
    ratio = utilization(destination, policies)
    if ratio >= policy.critical_threshold:
        return RiskTier.CRITICAL
    if ratio >= policy.high_threshold:
        return RiskTier.HIGH
    if ratio >= policy.medium_threshold:
        return RiskTier.MEDIUM
    return RiskTier.LOW


def available_spots(destination: Destination, policies: PolicyTable = DEFAULT_CAPACITY_POLICIES) -> int:
    """Remaining visitors allowed under the adjusted capacity, never negative."""
    return max(0, adjusted_capacity(destination, policies) - destination.current_occupancy)


def assess_capacity(destination: Destination, policies: PolicyTable = DEFAULT_CAPACITY_POLICIES) -> CapacityAssessment:
    """Bundle every capacity figure for a destination."""
    policy = policy_for(destination, policies)
    ratio = utilization(destination, policies)
    return CapacityAssessment(
        destination_id=destination.id,
        sensitivity=policy.sensitivity,
        max_capacity=destination.max_capacity,
        adjusted_capacity=adjusted_capacity(destination, policies),
        current_occupancy=destination.current_occupancy,
        available_spots=available_spots(destination, policies),
        utilization=ratio,
        risk_tier=risk_tier(destination, policies),
        over_capacity=ratio > 1.0,
        requires_permit=policy.requires_permit,
        requires_eco_briefing=policy.requires_eco_briefing,
        restriction_message=policy.restriction_message,
    )


validate_policies(DEFAULT_CAPACITY_POLICIES)
