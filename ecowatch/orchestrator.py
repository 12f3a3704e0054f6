"""Monitoring sweep: evaluate every destination and raise, persist and broadcast alerts.

One sweep resolves its targets, runs the alert cleanup once, then evaluates
each destination independently in a bounded thread pool. A failure at one
destination is recorded against that destination and never aborts the sweep.
"""

from __future__ import annotations

import asyncio
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from ecowatch import thresholds
from ecowatch.alert_lifecycle import AlertLifecycleManager
from ecowatch.coordinates import (
    FALLBACK_DESTINATIONS,
    KNOWN_COORDINATES,
    fallback_destination,
    resolve_coordinates,
)
from ecowatch.data_sources.base import WeatherProvider
from ecowatch.domain import (
    DEFAULT_CAPACITY_POLICIES,
    AlertType,
    BroadcastEvent,
    BroadcastEventType,
    Coordinates,
    Destination,
    Severity,
    WeatherSnapshot,
    utc_now,
)
from ecowatch.errors import FetchError, PersistenceError
from ecowatch.fanout import Fanout
from ecowatch.models import (
    DestinationFailure,
    SkippedDestination,
    SweepAlertSummary,
    SweepReport,
    SweepStatus,
)
from ecowatch.record_store.base import RecordStore
from utils.logging_utils import bind_destination, get_tagged_logger

logger = get_tagged_logger(__name__, tag="orchestrator")

PROCESSED = "processed"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass
class DestinationOutcome:
    """What happened to one destination during a sweep."""
    destination: Destination
    status: str
    alerts: List[SweepAlertSummary] = field(default_factory=list)
    snapshot_source: Optional[str] = None
    failure: Optional[DestinationFailure] = None
    skip_reason: Optional[str] = None


class MonitoringOrchestrator:
    """Drive sweeps over the destination catalog."""

    def __init__(
        self,
        store: RecordStore,
        provider: WeatherProvider,
        lifecycle: AlertLifecycleManager,
        fanout: Fanout,
        *,
        freshness_seconds: int = 6 * 3600,
        max_workers: int = 4,
        policies=DEFAULT_CAPACITY_POLICIES,
        coordinate_table: Dict[str, Coordinates] = KNOWN_COORDINATES,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.provider = provider
        self.lifecycle = lifecycle
        self.fanout = fanout
        self.freshness_seconds = freshness_seconds
        self.max_workers = max(1, max_workers)
        self.policies = policies
        self.coordinate_table = coordinate_table
        self.clock = clock
        self._sweep_lock = threading.Lock()

    # PUBLIC_INTERFACE
    def run_sweep(self, destination_id: Optional[str] = None) -> SweepReport:
        """Evaluate one destination, or every active one, and return a structured report."""
        with self._sweep_lock:
            return self._run_sweep(destination_id)

    def _run_sweep(self, destination_id: Optional[str]) -> SweepReport:
        started = self.clock()
        targets, used_fallback = self._resolve_targets(destination_id)
        logger.info(
            "Sweep started",
            extra={"destination_id": destination_id, "targets": len(targets), "used_fallback": used_fallback},
        )

        if destination_id and not targets:
            return SweepReport(
                success=False,
                status=SweepStatus.NOT_FOUND,
                message=f"Destination '{destination_id}' not found",
                started_at=started,
                finished_at=self.clock(),
            )

        cleanup_error = None
        try:
            self.lifecycle.sweep_cleanup(destination_id=destination_id)
        except PersistenceError as exc:
            logger.error("Alert cleanup failed; continuing sweep", extra={"error": str(exc)})
            cleanup_error = str(exc)

        outcomes: List[DestinationOutcome] = []
        if targets:
            workers = min(len(targets), self.max_workers)
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ecowatch-sweep") as pool:
                outcomes = list(pool.map(self._process_safely, targets))

        report = self._build_report(outcomes, started, used_fallback, cleanup_error)
        logger.info(
            "Sweep finished",
            extra={
                "status": report.status.value,
                "processed": report.destinations_processed,
                "failed": report.destinations_failed,
                "skipped": report.destinations_skipped,
                "alerts": report.alerts_generated,
            },
        )
        return report

    def _resolve_targets(self, destination_id: Optional[str]) -> Tuple[List[Destination], bool]:
        if destination_id:
            try:
                found = self.store.get_destination(destination_id)
            except PersistenceError as exc:
                logger.error("Destination lookup failed", extra={"destination_id": destination_id, "error": str(exc)})
                found = None
            if found is not None:
                return [found], False
            fallback = fallback_destination(destination_id)
            return ([fallback], True) if fallback else ([], False)

        try:
            active = self.store.list_active_destinations()
        except PersistenceError as exc:
            logger.error("Listing active destinations failed", extra={"error": str(exc)})
            active = []
        if not active:
            logger.warning("No active destinations in the record store; using the fallback catalog")
            return list(FALLBACK_DESTINATIONS), True
        return active, False

    def _process_safely(self, destination: Destination) -> DestinationOutcome:
        log = bind_destination(logger, destination.id, destination.name)
        outcome = DestinationOutcome(destination=destination, status=PROCESSED)
        try:
            self._process(destination, outcome)
            return outcome
        except FetchError as exc:
            log.warning("Weather fetch failed", extra={"kind": exc.kind, "error": str(exc)})
            kind, detail = exc.kind, str(exc)
        except PersistenceError as exc:
            log.error("Record store failure", extra={"error": str(exc)})
            kind, detail = exc.kind, str(exc)
        except Exception as exc:
            log.exception("Unexpected error while evaluating destination")
            kind, detail = "UnexpectedError", str(exc) or type(exc).__name__
        outcome.status = FAILED
        outcome.failure = DestinationFailure(
            destination_id=destination.id,
            destination_name=destination.name,
            kind=kind,
            detail=detail,
        )
        return outcome

    def _process(self, destination: Destination, outcome: DestinationOutcome) -> None:
        """Evaluate capacity and weather for one destination, recording alerts on `outcome`."""
        capacity = thresholds.evaluate_capacity(destination, self.policies)
        if capacity.fires:
            outcome.alerts.append(
                self._raise_alert(
                    destination,
                    AlertType.CAPACITY,
                    capacity.severity,
                    thresholds.capacity_alert_title(destination.name),
                    thresholds.capacity_alert_message(destination, capacity),
                )
            )

        coordinates = resolve_coordinates(destination, self.coordinate_table)
        if coordinates is None:
            bind_destination(logger, destination.id, destination.name).info("No coordinates; skipping weather check")
            outcome.status = SKIPPED
            outcome.skip_reason = "no_coordinates"
            return

        snapshot, outcome.snapshot_source = self._snapshot_for(destination, coordinates)
        evaluation = thresholds.evaluate(snapshot)
        weather_alert = None
        if evaluation.fires:
            weather_alert = self._raise_alert(
                destination,
                AlertType.WEATHER,
                thresholds.severity_for(snapshot),
                thresholds.weather_alert_title(destination.name),
                thresholds.weather_alert_message(snapshot, evaluation),
            )
            outcome.alerts.append(weather_alert)

        self.fanout.publish(self._weather_update(destination, snapshot, weather_alert))

    def _snapshot_for(self, destination: Destination, coordinates: Coordinates) -> Tuple[WeatherSnapshot, str]:
        latest = self.store.latest_snapshot(destination.id)
        if latest is not None and latest.age_seconds(self.clock()) < self.freshness_seconds:
            return latest, "reused"
        snapshot = self.provider.fetch(coordinates, destination.name, destination_id=destination.id)
        self.store.save_snapshot(snapshot)
        return snapshot, "fetched"

    def _raise_alert(
        self,
        destination: Destination,
        alert_type: AlertType,
        severity: Severity,
        title: str,
        message: str,
    ) -> SweepAlertSummary:
        alert = self.lifecycle.activate(destination.id, alert_type, severity, title, message)
        self.fanout.publish(
            BroadcastEvent(
                type=BroadcastEventType.ALERT_CREATED,
                destination_id=destination.id,
                payload={
                    "alertId": alert.id,
                    "type": alert.type.value,
                    "severity": alert.severity.value,
                    "title": alert.title,
                    "message": alert.message,
                },
                timestamp=alert.created_at,
            )
        )
        return SweepAlertSummary(
            destination_id=destination.id,
            destination_title=title,
            alert_type=alert_type,
            severity=severity,
            first_reason=thresholds.first_reason(message),
        )

    def _weather_update(
        self,
        destination: Destination,
        snapshot: WeatherSnapshot,
        alert: Optional[SweepAlertSummary],
    ) -> BroadcastEvent:
        return BroadcastEvent(
            type=BroadcastEventType.WEATHER_UPDATE,
            destination_id=destination.id,
            payload={
                "destinationName": destination.name,
                "weather": {
                    "temperature": snapshot.temperature,
                    "humidity": snapshot.humidity,
                    "weatherMain": snapshot.condition.value,
                    "weatherDescription": snapshot.description,
                    "windSpeed": snapshot.wind_speed,
                    "icon": snapshot.icon,
                },
                "alert": {"level": alert.severity.value, "message": alert.first_reason} if alert else None,
            },
            timestamp=self.clock(),
        )

    def _build_report(
        self,
        outcomes: List[DestinationOutcome],
        started: datetime,
        used_fallback: bool,
        cleanup_error: Optional[str],
    ) -> SweepReport:
        total = len(outcomes)
        processed = [o for o in outcomes if o.status == PROCESSED]
        failed = [o for o in outcomes if o.status == FAILED]
        skipped = [o for o in outcomes if o.status == SKIPPED]
        alerts = [a for o in outcomes for a in o.alerts]

        if total and len(failed) == total:
            status = SweepStatus.FAILED
        elif failed:
            status = SweepStatus.PARTIAL_FAILURE
        elif total and len(skipped) == total:
            status = SweepStatus.ALL_SKIPPED
        else:
            status = SweepStatus.COMPLETED

        message = f"Sweep {status.value.replace('_', ' ')}. Generated {len(alerts)} alerts."
        return SweepReport(
            success=status not in (SweepStatus.FAILED, SweepStatus.NOT_FOUND),
            status=status,
            message=message,
            destinations_total=total,
            destinations_processed=len(processed),
            destinations_failed=len(failed),
            destinations_skipped=len(skipped),
            alerts_generated=len(alerts),
            snapshots_fetched=sum(1 for o in outcomes if o.snapshot_source == "fetched"),
            snapshots_reused=sum(1 for o in outcomes if o.snapshot_source == "reused"),
            used_fallback=used_fallback,
            cleanup_error=cleanup_error,
            alerts=alerts,
            failures=[o.failure for o in failed if o.failure is not None],
            skipped=[
                SkippedDestination(
                    destination_id=o.destination.id,
                    destination_name=o.destination.name,
                    reason=o.skip_reason or "skipped",
                )
                for o in skipped
            ],
            started_at=started,
            finished_at=self.clock(),
        )


async def periodic_sweep_loop(
    orchestrator: MonitoringOrchestrator,
    interval_seconds: float,
    shutdown_event: asyncio.Event,
) -> None:
    """Run sweeps on a fixed cadence until `shutdown_event` is set."""
    interval = max(1.0, float(interval_seconds))
    logger.info("Periodic sweep started", extra={"interval_seconds": interval})

    while not shutdown_event.is_set():
        tick_started = time.monotonic()
        try:
            await asyncio.to_thread(orchestrator.run_sweep)
        except Exception:
            logger.exception("Periodic sweep failed")

        elapsed = time.monotonic() - tick_started
        sleep_for = max(0.1, interval - elapsed)
        try:
            await asyncio.wait_for(shutdown_event.wait(), timeout=sleep_for)
        except asyncio.TimeoutError:
            continue

    logger.info("Periodic sweep stopped")
