"""HTTP API for the destination monitoring service."""

import asyncio
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse, StreamingResponse

from ecowatch.capacity_policy import assess_capacity
from ecowatch.coordinates import fallback_destination
from ecowatch.domain import AlertType
from ecowatch.errors import PersistenceError
from ecowatch.models import AlertOut, CapacityAssessmentOut, SweepReport, SweepStatus
from ecowatch.services import Services, get_services
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="ecowatch/api")

router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@router.get("/sweep")
def describe_sweep(services: Services = Depends(get_services)):
    """Describe the sweep trigger."""
    return {
        "message": "POST to this endpoint to run a monitoring sweep",
        "provider": getattr(services.provider, "name", None),
        "freshness_seconds": services.settings.freshness_seconds,
        "alert_retention_seconds": services.settings.alert_retention_seconds,
        "timestamp_utc": services.orchestrator.clock().isoformat(),
    }


@router.post("/sweep", response_model=SweepReport)
async def trigger_sweep(
    destination_id: Optional[str] = Query(default=None),
    services: Services = Depends(get_services),
):
    """Run one sweep (all active destinations, or one) and return its report."""
    logger.info("Sweep requested", extra={"destination_id": destination_id})
    report = await asyncio.to_thread(services.orchestrator.run_sweep, destination_id)
    if report.status == SweepStatus.NOT_FOUND:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=report.model_dump(mode="json"))
    return report


@router.get("/alerts", response_model=List[AlertOut])
def list_alerts(
    destination_id: Optional[str] = Query(default=None),
    alert_type: Optional[AlertType] = Query(default=None, alias="type"),
    include_inactive: bool = Query(default=False),
    services: Services = Depends(get_services),
):
    """List alerts, active ones only unless `include_inactive` is set."""
    try:
        alerts = services.store.list_alerts(
            destination_id=destination_id,
            alert_type=alert_type,
            active_only=not include_inactive,
        )
    except PersistenceError as exc:
        logger.error("Alert listing failed", extra={"error": str(exc)})
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Record store unavailable")
    return [AlertOut.from_alert(a) for a in alerts]


@router.get("/destinations/{destination_id}/capacity", response_model=CapacityAssessmentOut)
def destination_capacity(destination_id: str, services: Services = Depends(get_services)):
    """Adjusted capacity, utilization and risk tier for one destination."""
    try:
        destination = services.store.get_destination(destination_id)
    except PersistenceError as exc:
        logger.error("Destination lookup failed", extra={"destination_id": destination_id, "error": str(exc)})
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Record store unavailable")
    destination = destination or fallback_destination(destination_id)
    if destination is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Destination '{destination_id}' not found")
    return CapacityAssessmentOut.from_assessment(assess_capacity(destination, services.orchestrator.policies))


@router.get("/stream")
async def stream_events(request: Request, services: Services = Depends(get_services)):
    """Server-Sent Events stream of weather updates and new alerts."""
    subscription = services.fanout.subscribe()
    logger.info("Stream subscriber connected", extra={"subscribers": services.fanout.subscriber_count})
    return StreamingResponse(
        services.fanout.stream(subscription, request.is_disconnected),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
