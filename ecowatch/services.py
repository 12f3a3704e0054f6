"""Explicit construction of the shared clients the API and the sweep use."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import FastAPI, Request

from ecowatch.alert_lifecycle import AlertLifecycleManager
from ecowatch.config import Settings
from ecowatch.data_sources import WeatherProvider, build_weather_provider
from ecowatch.fanout import BroadcastTopic, Fanout, build_topic
from ecowatch.orchestrator import MonitoringOrchestrator
from ecowatch.record_store import RecordStore, build_record_store
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="services")


@dataclass
class Services:
    """Typed app.state container for everything built at startup."""

    settings: Settings
    store: RecordStore
    provider: WeatherProvider
    lifecycle: AlertLifecycleManager
    fanout: Fanout
    orchestrator: MonitoringOrchestrator


def build_services(
    settings: Settings,
    *,
    store: Optional[RecordStore] = None,
    provider: Optional[WeatherProvider] = None,
    topic: Optional[BroadcastTopic] = None,
) -> Services:
    """Wire store, provider, lifecycle, fanout and orchestrator from settings; any piece may be injected."""
    store = store if store is not None else build_record_store(settings)
    provider = provider if provider is not None else build_weather_provider(settings)
    topic = topic if topic is not None else build_topic(settings.broadcast_redis_url, settings.broadcast_channel)

    lifecycle = AlertLifecycleManager(store, retention_seconds=settings.alert_retention_seconds)
    fanout = Fanout(
        topic,
        queue_size=settings.subscriber_queue_size,
        heartbeat_seconds=settings.heartbeat_seconds,
    )
    orchestrator = MonitoringOrchestrator(
        store,
        provider,
        lifecycle,
        fanout,
        freshness_seconds=settings.freshness_seconds,
        max_workers=settings.max_workers,
    )
    logger.info(
        "Services ready",
        extra={"provider": getattr(provider, "name", type(provider).__name__), "store": type(store).__name__},
    )
    return Services(
        settings=settings,
        store=store,
        provider=provider,
        lifecycle=lifecycle,
        fanout=fanout,
        orchestrator=orchestrator,
    )


def close_services(services: Services) -> None:
    services.fanout.close()


# PUBLIC_INTERFACE
def init_state(app: FastAPI, services: Services) -> None:
    """Attach services to app.state."""
    app.state.services = services


# PUBLIC_INTERFACE
def get_services(request: Request) -> Services:
    """FastAPI dependency returning the services attached at startup."""
    return request.app.state.services  # type: ignore[attr-defined]
