"""SQLAlchemy-backed record store (Postgres in production, SQLite in tests).

Tables follow the hosted schema: `destinations`, `weather_data` and `alerts`.
Timestamps are written as UTC; naive values read back (SQLite) are treated as UTC.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Mapping, Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    delete,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ecowatch.domain import (
    Alert,
    AlertType,
    Condition,
    Destination,
    Sensitivity,
    Severity,
    WeatherSnapshot,
    as_utc,
    utc_now,
)
from ecowatch.errors import PersistenceError
from ecowatch.record_store.base import RecordStore
from utils.logging_utils import get_tagged_logger, mask_url

logger = get_tagged_logger(__name__, tag="record_store/sql_record_store")

metadata = MetaData()

destinations_table = Table(
    "destinations",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("location", String(255), nullable=False, default=""),
    Column("max_capacity", Integer, nullable=False, default=0),
    Column("current_occupancy", Integer, nullable=False, default=0),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("ecological_sensitivity", String(16), nullable=False, default=Sensitivity.LOW.value),
    Column("latitude", Float, nullable=True),
    Column("longitude", Float, nullable=True),
)

weather_data_table = Table(
    "weather_data",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("destination_id", String(64), nullable=False, index=True),
    Column("label", String(255), nullable=False, default=""),
    Column("temperature", Float, nullable=False),
    Column("humidity", Float, nullable=False),
    Column("pressure", Float, nullable=False),
    Column("wind_speed", Float, nullable=False),
    Column("wind_direction", Float, nullable=False),
    Column("visibility", Float, nullable=False),
    Column("uv_index", Float, nullable=False),
    Column("cloud_cover", Float, nullable=False),
    Column("precipitation_probability", Float, nullable=False),
    Column("precipitation_type", String(32), nullable=False),
    Column("weather_main", String(32), nullable=False),
    Column("weather_description", String(255), nullable=False),
    Column("weather_icon", String(16), nullable=False),
    Column("source", String(32), nullable=False, default=""),
    Column("recorded_at", DateTime(timezone=True), nullable=False, index=True),
)

alerts_table = Table(
    "alerts",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("type", String(32), nullable=False, index=True),
    Column("title", String(255), nullable=False),
    Column("message", Text, nullable=False),
    Column("severity", String(16), nullable=False),
    Column("destination_id", String(64), nullable=False, index=True),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)


class SqlRecordStore(RecordStore):
    """Record store over any SQLAlchemy engine."""

    def __init__(self, engine: Engine) -> None:
        """Bind to a database engine."""
        self.engine = engine

    @classmethod
    def from_url(cls, database_url: str, *, create_schema: bool = False, **engine_kwargs) -> "SqlRecordStore":
        """Create an engine from a URL and build the store."""
        logger.info("Connecting record store", extra={"db_url": mask_url(database_url)})
        engine = create_engine(database_url, future=True, **engine_kwargs)
        store = cls(engine)
        if create_schema:
            store.create_schema()
        return store

    def create_schema(self) -> None:
        """Create missing tables."""
        with self._translate("create_schema"):
            metadata.create_all(self.engine)

    @contextmanager
    def _translate(self, operation: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            logger.error("Record store operation failed", extra={"operation": operation, "error": str(exc)})
            raise PersistenceError(f"{operation} failed: {exc}") from exc

    @staticmethod
    def _to_destination(row: Mapping) -> Destination:
        sensitivity = str(row["ecological_sensitivity"] or Sensitivity.LOW.value).lower()
        return Destination(
            id=str(row["id"]),
            name=row["name"],
            location=row["location"] or "",
            max_capacity=int(row["max_capacity"] or 0),
            current_occupancy=int(row["current_occupancy"] or 0),
            ecological_sensitivity=Sensitivity(sensitivity),
            is_active=bool(row["is_active"]),
            latitude=row["latitude"],
            longitude=row["longitude"],
        )

    @staticmethod
    def _to_snapshot(row: Mapping) -> WeatherSnapshot:
        try:
            condition = Condition(row["weather_main"])
        except ValueError:
            condition = Condition.UNKNOWN
        return WeatherSnapshot(
            destination_id=row["destination_id"],
            label=row["label"],
            temperature=row["temperature"],
            humidity=row["humidity"],
            pressure=row["pressure"],
            wind_speed=row["wind_speed"],
            wind_direction=row["wind_direction"],
            visibility=row["visibility"],
            uv_index=row["uv_index"],
            cloud_cover=row["cloud_cover"],
            precipitation_probability=row["precipitation_probability"],
            precipitation_type=row["precipitation_type"],
            condition=condition,
            description=row["weather_description"],
            icon=row["weather_icon"],
            captured_at=as_utc(row["recorded_at"]),
            source=row["source"] or "",
        )

    @staticmethod
    def _to_alert(row: Mapping) -> Alert:
        return Alert(
            id=row["id"],
            type=AlertType(row["type"]),
            title=row["title"],
            message=row["message"],
            severity=Severity(row["severity"]),
            destination_id=row["destination_id"],
            is_active=bool(row["is_active"]),
            created_at=as_utc(row["created_at"]),
        )

    def upsert_destination(self, destination: Destination) -> None:
        """Insert or replace a destination row."""
        values = {
            "name": destination.name,
            "location": destination.location,
            "max_capacity": destination.max_capacity,
            "current_occupancy": destination.current_occupancy,
            "is_active": destination.is_active,
            "ecological_sensitivity": Sensitivity(destination.ecological_sensitivity).value,
            "latitude": destination.latitude,
            "longitude": destination.longitude,
        }
        with self._translate("upsert_destination"), self.engine.begin() as conn:
            result = conn.execute(
                update(destinations_table).where(destinations_table.c.id == destination.id).values(**values)
            )
            if result.rowcount == 0:
                conn.execute(insert(destinations_table).values(id=destination.id, **values))

    def list_active_destinations(self) -> List[Destination]:
        """Active destinations; rows that cannot be read as a Destination are logged and skipped."""
        stmt = select(destinations_table).where(destinations_table.c.is_active.is_(True))
        with self._translate("list_active_destinations"), self.engine.connect() as conn:
            rows = conn.execute(stmt.order_by(destinations_table.c.id)).mappings().all()
        destinations = []
        for row in rows:
            try:
                destinations.append(self._to_destination(row))
            except (TypeError, ValueError) as exc:
                logger.warning(
                    "Skipping invalid destination row",
                    extra={"destination_id": row["id"], "error": str(exc)},
                )
        return destinations

    def get_destination(self, destination_id: str) -> Optional[Destination]:
        stmt = select(destinations_table).where(destinations_table.c.id == destination_id)
        with self._translate("get_destination"), self.engine.connect() as conn:
            row = conn.execute(stmt).mappings().first()
        if row is None:
            return None
        try:
            return self._to_destination(row)
        except (TypeError, ValueError) as exc:
            raise PersistenceError(f"get_destination failed: invalid row '{destination_id}': {exc}") from exc

    def latest_snapshot(self, destination_id: str) -> Optional[WeatherSnapshot]:
        stmt = (
            select(weather_data_table)
            .where(weather_data_table.c.destination_id == destination_id)
            .order_by(weather_data_table.c.recorded_at.desc(), weather_data_table.c.id.desc())
            .limit(1)
        )
        with self._translate("latest_snapshot"), self.engine.connect() as conn:
            row = conn.execute(stmt).mappings().first()
        return self._to_snapshot(row) if row else None

    def save_snapshot(self, snapshot: WeatherSnapshot) -> None:
        stmt = insert(weather_data_table).values(
            destination_id=snapshot.destination_id,
            label=snapshot.label,
            temperature=snapshot.temperature,
            humidity=snapshot.humidity,
            pressure=snapshot.pressure,
            wind_speed=snapshot.wind_speed,
            wind_direction=snapshot.wind_direction,
            visibility=snapshot.visibility,
            uv_index=snapshot.uv_index,
            cloud_cover=snapshot.cloud_cover,
            precipitation_probability=snapshot.precipitation_probability,
            precipitation_type=snapshot.precipitation_type,
            weather_main=snapshot.condition.value,
            weather_description=snapshot.description,
            weather_icon=snapshot.icon,
            source=snapshot.source,
            recorded_at=as_utc(snapshot.captured_at),
        )
        with self._translate("save_snapshot"), self.engine.begin() as conn:
            conn.execute(stmt)

    def insert_alert(self, alert: Alert) -> None:
        created = as_utc(alert.created_at)
        stmt = insert(alerts_table).values(
            id=alert.id,
            type=alert.type.value,
            title=alert.title,
            message=alert.message,
            severity=alert.severity.value,
            destination_id=alert.destination_id,
            is_active=alert.is_active,
            created_at=created,
            updated_at=created,
        )
        with self._translate("insert_alert"), self.engine.begin() as conn:
            conn.execute(stmt)

    def deactivate_alerts(self, alert_type: AlertType, destination_id: Optional[str] = None) -> int:
        stmt = (
            update(alerts_table)
            .where(alerts_table.c.type == alert_type.value)
            .where(alerts_table.c.is_active.is_(True))
        )
        if destination_id is not None:
            stmt = stmt.where(alerts_table.c.destination_id == destination_id)
        stmt = stmt.values(is_active=False, updated_at=utc_now())
        with self._translate("deactivate_alerts"), self.engine.begin() as conn:
            return conn.execute(stmt).rowcount or 0

    def delete_inactive_alerts(self, alert_type: AlertType, older_than: datetime) -> int:
        stmt = (
            delete(alerts_table)
            .where(alerts_table.c.type == alert_type.value)
            .where(alerts_table.c.is_active.is_(False))
            .where(alerts_table.c.created_at < as_utc(older_than))
        )
        with self._translate("delete_inactive_alerts"), self.engine.begin() as conn:
            return conn.execute(stmt).rowcount or 0

    def list_alerts(
        self,
        *,
        destination_id: Optional[str] = None,
        alert_type: Optional[AlertType] = None,
        active_only: bool = True,
    ) -> List[Alert]:
        stmt = select(alerts_table)
        if active_only:
            stmt = stmt.where(alerts_table.c.is_active.is_(True))
        if destination_id is not None:
            stmt = stmt.where(alerts_table.c.destination_id == destination_id)
        if alert_type is not None:
            stmt = stmt.where(alerts_table.c.type == alert_type.value)
        stmt = stmt.order_by(alerts_table.c.created_at.desc())
        with self._translate("list_alerts"), self.engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [self._to_alert(r) for r in rows]
