"""Record store backends for destinations, weather snapshots and alerts."""

from .base import RecordStore
from .factory import build_record_store
from .memory import InMemoryRecordStore
from .sql import SqlRecordStore

__all__ = ["RecordStore", "InMemoryRecordStore", "SqlRecordStore", "build_record_store"]
