import os

import uvicorn

from ecowatch.config import load_settings
from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="server")


if __name__ == "__main__":
    settings = load_settings()
    setup_logging(level=settings.log_level, job_name="ecowatch")
    logger.info(
        "Starting server",
        extra={"provider": settings.weather_provider, "sweep_interval_seconds": settings.sweep_interval_seconds},
    )

    uvicorn.run(
        "ecowatch.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=False,
    )
