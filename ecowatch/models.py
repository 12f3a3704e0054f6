"""Pydantic payloads returned by the monitoring API."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from ecowatch.capacity_policy import CapacityAssessment
from ecowatch.domain import Alert, AlertType, RiskTier, Sensitivity, Severity


class SweepStatus(str, Enum):
    """Overall outcome of one sweep."""
    COMPLETED = "completed"
    PARTIAL_FAILURE = "partial_failure"
    FAILED = "failed"
    ALL_SKIPPED = "all_skipped"
    NOT_FOUND = "not_found"


class SweepAlertSummary(BaseModel):
    """One alert raised during a sweep."""
    destination_id: str
    destination_title: str
    alert_type: AlertType
    severity: Severity
    first_reason: str


class DestinationFailure(BaseModel):
    """A destination whose evaluation failed during a sweep."""
    destination_id: str
    destination_name: str
    kind: str
    detail: str


class SkippedDestination(BaseModel):
    """A destination that was not evaluated, with the reason."""
    destination_id: str
    destination_name: str
    reason: str


class SweepReport(BaseModel):
    """Structured result of a sweep; always returned, even when destinations fail."""
    success: bool
    status: SweepStatus
    message: str
    destinations_total: int = 0
    destinations_processed: int = 0
    destinations_failed: int = 0
    destinations_skipped: int = 0
    alerts_generated: int = 0
    snapshots_fetched: int = 0
    snapshots_reused: int = 0
    used_fallback: bool = False
    cleanup_error: Optional[str] = None
    alerts: List[SweepAlertSummary] = Field(default_factory=list)
    failures: List[DestinationFailure] = Field(default_factory=list)
    skipped: List[SkippedDestination] = Field(default_factory=list)
    started_at: datetime
    finished_at: datetime


class AlertOut(BaseModel):
    """Serialized alert row."""
    id: str
    type: AlertType
    title: str
    message: str
    severity: Severity
    destination_id: str
    is_active: bool
    created_at: datetime

    @classmethod
    def from_alert(cls, alert: Alert) -> "AlertOut":
        return cls(
            id=alert.id,
            type=alert.type,
            title=alert.title,
            message=alert.message,
            severity=alert.severity,
            destination_id=alert.destination_id,
            is_active=alert.is_active,
            created_at=alert.created_at,
        )


class CapacityAssessmentOut(BaseModel):
    """Capacity figures for a destination under its sensitivity policy."""
    destination_id: str
    sensitivity: Sensitivity
    max_capacity: int
    adjusted_capacity: int
    current_occupancy: int
    available_spots: int
    utilization_percent: Optional[float] = None
    risk_tier: RiskTier
    over_capacity: bool
    requires_permit: bool
    requires_eco_briefing: bool
    restriction_message: Optional[str] = None

    @classmethod
    def from_assessment(cls, assessment: CapacityAssessment) -> "CapacityAssessmentOut":
        ratio = assessment.utilization
        return cls(
            destination_id=assessment.destination_id,
            sensitivity=assessment.sensitivity,
            max_capacity=assessment.max_capacity,
            adjusted_capacity=assessment.adjusted_capacity,
            current_occupancy=assessment.current_occupancy,
            available_spots=assessment.available_spots,
            utilization_percent=None if ratio == float("inf") else round(ratio * 100, 1),
            risk_tier=assessment.risk_tier,
            over_capacity=assessment.over_capacity,
            requires_permit=assessment.requires_permit,
            requires_eco_briefing=assessment.requires_eco_briefing,
            restriction_message=assessment.restriction_message,
        )
