"""Shared protocol for record store backends."""

from datetime import datetime
from typing import List, Optional, Protocol

from ecowatch.domain import Alert, AlertType, Destination, WeatherSnapshot


class RecordStore(Protocol):
    """Protocol for the persistent store of destinations, snapshots and alerts.

    Backends raise `PersistenceError` for any storage failure.
    """

    def list_active_destinations(self) -> List[Destination]:
        """Return every destination flagged active."""

    def get_destination(self, destination_id: str) -> Optional[Destination]:
        """Fetch one destination by id regardless of its active flag."""

    def latest_snapshot(self, destination_id: str) -> Optional[WeatherSnapshot]:
        """Return the most recently captured snapshot for a destination."""

    def save_snapshot(self, snapshot: WeatherSnapshot) -> None:
        """Append a new snapshot row."""

    def insert_alert(self, alert: Alert) -> None:
        """Append a new alert row."""

    def deactivate_alerts(self, alert_type: AlertType, destination_id: Optional[str] = None) -> int:
        """Mark active alerts of a type inactive, optionally for one destination; return the count."""

    def delete_inactive_alerts(self, alert_type: AlertType, older_than: datetime) -> int:
        """Hard-delete inactive alerts of a type created before `older_than`; return the count."""

    def list_alerts(
        self,
        *,
        destination_id: Optional[str] = None,
        alert_type: Optional[AlertType] = None,
        active_only: bool = True,
    ) -> List[Alert]:
        """Return alerts newest first, filtered as requested."""
