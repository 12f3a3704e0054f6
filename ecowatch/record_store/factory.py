"""Factory helpers for choosing a record store backend at startup."""

from __future__ import annotations

from ecowatch import config
from ecowatch.record_store.base import RecordStore
from ecowatch.record_store.memory import InMemoryRecordStore
from utils.logging_utils import get_tagged_logger, mask_url

logger = get_tagged_logger(__name__, tag="record_store/factory")

MEMORY_URL = "memory://"


def build_record_store(settings: config.Settings) -> RecordStore:
    """Instantiate the configured record store."""
    url = (settings.record_store_url or MEMORY_URL).strip()

    if url == MEMORY_URL:
        logger.info("Using in-memory record store")
        return InMemoryRecordStore()

    from .sql import SqlRecordStore

    logger.info("Using SQL record store", extra={"db_url": mask_url(url)})
    return SqlRecordStore.from_url(url, create_schema=settings.record_store_create_schema)
