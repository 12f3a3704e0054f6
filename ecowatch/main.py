"""FastAPI application setup for the EcoWatch monitor."""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from ecowatch.api import router as api_router
from ecowatch.config import Settings, load_settings
from ecowatch.orchestrator import periodic_sweep_loop
from ecowatch.services import Services, build_services, close_services, init_state
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="main")


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    """Build the app; services are constructed at startup unless injected."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        svc = services or build_services(settings or load_settings())
        init_state(app, svc)

        shutdown_event = asyncio.Event()
        sweep_task = None
        interval = svc.settings.sweep_interval_seconds
        if interval > 0:
            sweep_task = asyncio.create_task(periodic_sweep_loop(svc.orchestrator, interval, shutdown_event))
        try:
            yield
        finally:
            shutdown_event.set()
            if sweep_task is not None:
                try:
                    await asyncio.wait_for(sweep_task, timeout=5.0)
                except Exception:
                    logger.exception("Error stopping periodic sweep")
            close_services(svc)

    app = FastAPI(title="EcoWatch Monitor", lifespan=lifespan)

    @app.get("/")
    def health():
        """Liveness probe."""
        return {"status": "ok"}

    # API routes
    app.include_router(api_router, prefix="/v1")
    return app


app = create_app()
