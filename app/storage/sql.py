"""
Durable relational store on SQLAlchemy.

Every public operation runs in one transaction, so cascading deletes and
multi-row membership rewrites never leave partial state behind.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from app.database import init_db, make_session_factory, session_scope
from app.models import (
    DischargeSample,
    LocationGroupMapping,
    LocationGroupRecord,
    LocationRecord,
    TemperatureSample,
    WaterConditionsRecord,
)
from app.storage.base import WaterStore
from tidewatch.data.observations import (
    BUOY_FIELD_UNITS,
    Observation,
    SeriesReading,
    SeriesSample,
    WaterData,
)
from tidewatch.exceptions import NoDataAvailableError
from tidewatch.schemas import Location, LocationGroup, WaterConditions

logger = logging.getLogger(__name__)


def _location_from_record(record: LocationRecord) -> Location:
    return Location(
        id=record.id,
        name=record.name,
        region=record.region,
        latitude=record.latitude,
        longitude=record.longitude,
        ndbc_station_id=record.ndbc_station_id,
        is_favorite=record.is_favorite,
        user_groups=list(record.user_groups or []),
        last_updated=record.last_updated,
    )


def _conditions_from_record(record: WaterConditionsRecord) -> WaterConditions:
    values = {
        name: Observation(
            value=getattr(record, f"{name}_value"),
            unit=getattr(record, f"{name}_unit"),
        )
        for name in BUOY_FIELD_UNITS
    }
    return WaterConditions(location_id=record.location_id, timestamp=record.timestamp, **values)


def _conditions_to_record(conditions: WaterConditions) -> WaterConditionsRecord:
    columns = {}
    for name in BUOY_FIELD_UNITS:
        obs = getattr(conditions, name)
        columns[f"{name}_value"] = obs.value
        columns[f"{name}_unit"] = obs.unit
    return WaterConditionsRecord(
        location_id=conditions.location_id,
        timestamp=conditions.timestamp,
        **columns,
    )


class SqlWaterStore(WaterStore):
    """WaterStore backed by a relational database."""

    backend_name = "sql"

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = make_session_factory(engine)

    def init(self) -> None:
        init_db(self.engine)

    def close(self) -> None:
        self.engine.dispose()

    # ------------------------------------------------------------------
    # Locations
    # ------------------------------------------------------------------

    def _save_location(self, location: Location) -> None:
        with session_scope(self._session_factory) as db:
            db.merge(
                LocationRecord(
                    id=location.id,
                    name=location.name,
                    region=location.region,
                    latitude=location.latitude,
                    longitude=location.longitude,
                    ndbc_station_id=location.ndbc_station_id,
                    is_favorite=location.is_favorite,
                    user_groups=list(location.user_groups),
                    last_updated=location.last_updated,
                )
            )

    def _get_locations(self) -> List[Location]:
        with session_scope(self._session_factory) as db:
            records = db.query(LocationRecord).order_by(LocationRecord.name).all()
            return [_location_from_record(r) for r in records]

    def _get_location(self, location_id: str) -> Optional[Location]:
        with session_scope(self._session_factory) as db:
            record = db.get(LocationRecord, location_id)
            return _location_from_record(record) if record is not None else None

    def _delete_location(self, location_id: str) -> None:
        with session_scope(self._session_factory) as db:
            db.query(LocationGroupMapping).filter(
                LocationGroupMapping.location_id == location_id
            ).delete(synchronize_session=False)
            db.query(WaterConditionsRecord).filter(
                WaterConditionsRecord.location_id == location_id
            ).delete(synchronize_session=False)
            deleted = db.query(LocationRecord).filter(
                LocationRecord.id == location_id
            ).delete(synchronize_session=False)
        logger.info(f"Deleted location {location_id} ({deleted} row)")

    # ------------------------------------------------------------------
    # Location groups
    # ------------------------------------------------------------------

    def _save_location_group(self, group: LocationGroup) -> None:
        with session_scope(self._session_factory) as db:
            db.merge(
                LocationGroupRecord(
                    id=group.id,
                    name=group.name,
                    created_at=group.created_at,
                    updated_at=group.updated_at,
                )
            )
            db.query(LocationGroupMapping).filter(
                LocationGroupMapping.group_id == group.id
            ).delete(synchronize_session=False)
            for position, location_id in enumerate(dict.fromkeys(group.location_ids)):
                db.add(
                    LocationGroupMapping(
                        group_id=group.id, location_id=location_id, position=position
                    )
                )

    def _get_location_groups(self) -> List[LocationGroup]:
        with session_scope(self._session_factory) as db:
            records = db.query(LocationGroupRecord).order_by(LocationGroupRecord.created_at).all()
            mappings = db.query(LocationGroupMapping).order_by(
                LocationGroupMapping.group_id, LocationGroupMapping.position
            ).all()

            members: Dict[str, List[str]] = {}
            for mapping in mappings:
                members.setdefault(mapping.group_id, []).append(mapping.location_id)

            return [
                LocationGroup(
                    id=r.id,
                    name=r.name,
                    location_ids=members.get(r.id, []),
                    created_at=r.created_at,
                    updated_at=r.updated_at,
                )
                for r in records
            ]

    def _delete_location_group(self, group_id: str) -> None:
        with session_scope(self._session_factory) as db:
            db.query(LocationGroupMapping).filter(
                LocationGroupMapping.group_id == group_id
            ).delete(synchronize_session=False)
            db.query(LocationGroupRecord).filter(
                LocationGroupRecord.id == group_id
            ).delete(synchronize_session=False)
            for record in db.query(LocationRecord).all():
                groups = list(record.user_groups or [])
                if group_id in groups:
                    record.user_groups = [g for g in groups if g != group_id]

    # ------------------------------------------------------------------
    # Water conditions
    # ------------------------------------------------------------------

    def _save_water_conditions(self, conditions: WaterConditions) -> None:
        with session_scope(self._session_factory) as db:
            db.query(WaterConditionsRecord).filter(
                WaterConditionsRecord.location_id == conditions.location_id
            ).delete(synchronize_session=False)
            db.add(_conditions_to_record(conditions))

    def _get_water_conditions(self, location_id: str) -> Optional[WaterConditions]:
        with session_scope(self._session_factory) as db:
            record = (
                db.query(WaterConditionsRecord)
                .filter(WaterConditionsRecord.location_id == location_id)
                .order_by(WaterConditionsRecord.timestamp.desc(), WaterConditionsRecord.id.desc())
                .first()
            )
            return _conditions_from_record(record) if record is not None else None

    def _get_all_water_conditions(self) -> Dict[str, WaterConditions]:
        with session_scope(self._session_factory) as db:
            records = db.query(WaterConditionsRecord).order_by(
                WaterConditionsRecord.timestamp, WaterConditionsRecord.id
            ).all()
            # Ascending order: later rows overwrite earlier ones per location
            latest: Dict[str, WaterConditionsRecord] = {}
            for record in records:
                latest[record.location_id] = record
            return {
                location_id: _conditions_from_record(record)
                for location_id, record in latest.items()
            }

    # ------------------------------------------------------------------
    # USGS water data
    # ------------------------------------------------------------------

    def _save_data(self, data: WaterData) -> None:
        with session_scope(self._session_factory) as db:
            _write_series(db, TemperatureSample, data.temperature)
            _write_series(db, DischargeSample, data.discharge)

    def _get_latest_data(self) -> WaterData:
        latest = None
        with session_scope(self._session_factory) as db:
            temperature = _read_series(db, TemperatureSample)
            discharge = _read_series(db, DischargeSample)
            if temperature is not None and discharge is not None:
                latest = WaterData(temperature=temperature, discharge=discharge)

        if latest is None:
            raise NoDataAvailableError()
        return latest


def _write_series(db: Session, model, reading: SeriesReading) -> None:
    """Replace the stored series in ``model``'s table with ``reading``."""
    db.query(model).delete(synchronize_session=False)
    db.add(
        model(
            value=reading.current,
            unit=reading.unit,
            date_time=reading.last_updated,
            last_updated=reading.last_updated,
            is_current=True,
        )
    )
    for position, sample in enumerate(reading.history):
        db.add(
            model(
                value=sample.value,
                unit=reading.unit,
                date_time=sample.date_time,
                last_updated=reading.last_updated,
                is_current=False,
                position=position,
            )
        )


def _read_series(db: Session, model) -> Optional[SeriesReading]:
    current = db.query(model).filter(model.is_current.is_(True)).first()
    if current is None:
        return None
    samples = (
        db.query(model)
        .filter(model.is_current.is_(False))
        .order_by(model.position)
        .all()
    )
    return SeriesReading(
        current=current.value,
        unit=current.unit,
        last_updated=current.last_updated,
        history=[SeriesSample(date_time=s.date_time, value=s.value) for s in samples],
    )
