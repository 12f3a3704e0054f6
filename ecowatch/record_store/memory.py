"""In-memory record store, intended for development and tests."""

import threading
from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from ecowatch.domain import Alert, AlertType, Destination, WeatherSnapshot, as_utc
from ecowatch.record_store.base import RecordStore
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="record_store/in_memory_record_store")


class InMemoryRecordStore(RecordStore):
    """Thread-safe in-memory store (dev/test)."""

    def __init__(self, destinations: Iterable[Destination] = ()) -> None:
        logger.debug("Initializing InMemoryRecordStore")
        self._destinations: Dict[str, Destination] = {d.id: d for d in destinations}
        self._snapshots: Dict[str, List[WeatherSnapshot]] = {}
        self._alerts: List[Alert] = []
        self._lock = threading.Lock()

    def upsert_destination(self, destination: Destination) -> None:
        """Insert or replace a destination row."""
        with self._lock:
            self._destinations[destination.id] = destination

    def list_active_destinations(self) -> List[Destination]:
        with self._lock:
            return [d for d in self._destinations.values() if d.is_active]

    def get_destination(self, destination_id: str) -> Optional[Destination]:
        with self._lock:
            return self._destinations.get(destination_id)

    def latest_snapshot(self, destination_id: str) -> Optional[WeatherSnapshot]:
        with self._lock:
            rows = self._snapshots.get(destination_id)
            if not rows:
                return None
            return max(rows, key=lambda s: as_utc(s.captured_at))

    def save_snapshot(self, snapshot: WeatherSnapshot) -> None:
        with self._lock:
            self._snapshots.setdefault(snapshot.destination_id, []).append(snapshot)

    def insert_alert(self, alert: Alert) -> None:
        with self._lock:
            self._alerts.append(alert)

    def deactivate_alerts(self, alert_type: AlertType, destination_id: Optional[str] = None) -> int:
        count = 0
        with self._lock:
            for i, alert in enumerate(self._alerts):
                if not alert.is_active or alert.type != alert_type:
                    continue
                if destination_id is not None and alert.destination_id != destination_id:
                    continue
                self._alerts[i] = replace(alert, is_active=False)
                count += 1
        return count

    def delete_inactive_alerts(self, alert_type: AlertType, older_than: datetime) -> int:
        cutoff = as_utc(older_than)
        with self._lock:
            keep = [
                a for a in self._alerts
                if a.is_active or a.type != alert_type or as_utc(a.created_at) >= cutoff
            ]
            removed = len(self._alerts) - len(keep)
            self._alerts = keep
        return removed

    def list_alerts(
        self,
        *,
        destination_id: Optional[str] = None,
        alert_type: Optional[AlertType] = None,
        active_only: bool = True,
    ) -> List[Alert]:
        with self._lock:
            rows = [
                a for a in self._alerts
                if (not active_only or a.is_active)
                and (destination_id is None or a.destination_id == destination_id)
                and (alert_type is None or a.type == alert_type)
            ]
        return sorted(rows, key=lambda a: as_utc(a.created_at), reverse=True)
