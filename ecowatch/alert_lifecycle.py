"""Alert lifecycle: supersede-on-activate and the per-sweep cleanup.

The record store holds no uniqueness constraint on active alerts, so the
one-active-row-per-(destination, type) invariant is maintained here by
serializing `activate` per pair.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from ecowatch.domain import Alert, AlertType, Severity, utc_now
from ecowatch.record_store.base import RecordStore
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="alert_lifecycle")

DEFAULT_RETENTION_SECONDS = 3600
SWEPT_ALERT_TYPES: Tuple[AlertType, ...] = (AlertType.WEATHER, AlertType.CAPACITY)


@dataclass
class CleanupResult:
    """Counts of rows touched by one cleanup pass, per alert type."""
    deactivated: Dict[str, int] = field(default_factory=dict)
    purged: Dict[str, int] = field(default_factory=dict)


class AlertLifecycleManager:
    """Create, supersede and expire alert rows."""

    def __init__(
        self,
        store: RecordStore,
        *,
        retention_seconds: int = DEFAULT_RETENTION_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.retention = timedelta(seconds=retention_seconds)
        self.clock = clock
        self._pair_locks: Dict[Tuple[str, AlertType], threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, destination_id: str, alert_type: AlertType) -> threading.Lock:
        key = (destination_id, alert_type)
        with self._registry_lock:
            lock = self._pair_locks.get(key)
            if lock is None:
                lock = self._pair_locks[key] = threading.Lock()
            return lock

    def activate(
        self,
        destination_id: str,
        alert_type: AlertType,
        severity: Severity,
        title: str,
        message: str,
    ) -> Alert:
        """Supersede any active alert of this pair, then insert the new active row."""
        alert = Alert(
            id=str(uuid.uuid4()),
            type=alert_type,
            title=title,
            message=message,
            severity=severity,
            destination_id=destination_id,
            is_active=True,
            created_at=self.clock(),
        )
        with self._lock_for(destination_id, alert_type):
            superseded = self.store.deactivate_alerts(alert_type, destination_id=destination_id)
            self.store.insert_alert(alert)
        logger.info(
            "Alert activated",
            extra={
                "destination_id": destination_id,
                "alert_type": alert_type.value,
                "severity": severity.value,
                "superseded": superseded,
            },
        )
        return alert

    def sweep_cleanup(
        self,
        alert_types: Iterable[AlertType] = SWEPT_ALERT_TYPES,
        destination_id: Optional[str] = None,
    ) -> CleanupResult:
        """Deactivate every active alert of each type, then purge inactive rows past retention.

        `destination_id` limits the deactivation phase to one destination; the purge
        is always global.

        Safe to run repeatedly: a second pass finds nothing active and nothing new to purge.
        """
        result = CleanupResult()
        cutoff = self.clock() - self.retention
        for alert_type in alert_types:
            result.deactivated[alert_type.value] = self.store.deactivate_alerts(alert_type, destination_id=destination_id)
            result.purged[alert_type.value] = self.store.delete_inactive_alerts(alert_type, cutoff)
        logger.info(
            "Alert cleanup finished",
            extra={"deactivated": result.deactivated, "purged": result.purged, "destination_id": destination_id},
        )
        return result

    def active_alerts(
        self,
        destination_id: Optional[str] = None,
        alert_type: Optional[AlertType] = None,
    ) -> List[Alert]:
        return self.store.list_alerts(destination_id=destination_id, alert_type=alert_type, active_only=True)
