"""
SQLAlchemy models for the Tidewatch durable store.

Table layout follows the mobile client's SQLite schema so existing user data
can be migrated: temperature and discharge samples, locations, location
groups, the group membership mapping and water-conditions snapshots.
"""

from sqlalchemy import (
    Column,
    String,
    Float,
    Integer,
    Boolean,
    DateTime,
    Index,
    JSON,
)
from sqlalchemy.types import TypeDecorator
from datetime import datetime, timezone

from app.database import Base


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes on backends that store naive values."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TemperatureSample(Base):
    """
    Latest USGS water temperature series.

    One row flagged ``is_current`` holds the current value; the remaining
    rows are the history samples in ``position`` order.
    """

    __tablename__ = "temperature"

    id = Column(Integer, primary_key=True, autoincrement=True)
    value = Column(Float, nullable=False)
    unit = Column(String(16), nullable=False)
    date_time = Column(UTCDateTime, default=_utcnow, nullable=False)
    last_updated = Column(UTCDateTime, nullable=False)
    is_current = Column(Boolean, default=False, nullable=False)
    position = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<TemperatureSample(value={self.value} {self.unit}, date_time={self.date_time})>"


class DischargeSample(Base):
    """Latest USGS discharge series, laid out like TemperatureSample."""

    __tablename__ = "discharge"

    id = Column(Integer, primary_key=True, autoincrement=True)
    value = Column(Float, nullable=False)
    unit = Column(String(16), nullable=False)
    date_time = Column(UTCDateTime, default=_utcnow, nullable=False)
    last_updated = Column(UTCDateTime, nullable=False)
    is_current = Column(Boolean, default=False, nullable=False)
    position = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<DischargeSample(value={self.value} {self.unit}, date_time={self.date_time})>"


class LocationRecord(Base):
    """User-tracked location bound to an NDBC station."""

    __tablename__ = "locations"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    region = Column(String(64), nullable=False, index=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    ndbc_station_id = Column(String(32), nullable=False)
    is_favorite = Column(Boolean, default=False, nullable=False)
    user_groups = Column(JSON, nullable=False, default=list)
    last_updated = Column(UTCDateTime, default=_utcnow, nullable=False)

    def __repr__(self):
        return f"<LocationRecord(name='{self.name}', station='{self.ndbc_station_id}')>"


class LocationGroupRecord(Base):
    """Named group of locations."""

    __tablename__ = "location_groups"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    created_at = Column(UTCDateTime, default=_utcnow, nullable=False)
    updated_at = Column(UTCDateTime, default=_utcnow, nullable=False)

    def __repr__(self):
        return f"<LocationGroupRecord(name='{self.name}')>"


class LocationGroupMapping(Base):
    """Membership of a location in a group."""

    __tablename__ = "location_group_mappings"

    group_id = Column(String(64), primary_key=True)
    location_id = Column(String(64), primary_key=True, index=True)
    # Preserves the order location ids were given in
    position = Column(Integer, nullable=False, default=0)


class WaterConditionsRecord(Base):
    """Buoy conditions snapshot for a location."""

    __tablename__ = "water_conditions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    location_id = Column(String(64), nullable=False)
    timestamp = Column(UTCDateTime, nullable=False)

    water_temperature_value = Column(Float, nullable=False)
    water_temperature_unit = Column(String(16), nullable=False)
    wave_height_value = Column(Float, nullable=False)
    wave_height_unit = Column(String(16), nullable=False)
    wave_period_value = Column(Float, nullable=False)
    wave_period_unit = Column(String(16), nullable=False)
    wave_direction_value = Column(Float, nullable=False)
    wave_direction_unit = Column(String(16), nullable=False)
    wind_speed_value = Column(Float, nullable=False)
    wind_speed_unit = Column(String(16), nullable=False)
    wind_direction_value = Column(Float, nullable=False)
    wind_direction_unit = Column(String(16), nullable=False)

    __table_args__ = (
        Index("ix_water_conditions_location_ts", "location_id", "timestamp"),
    )

    def __repr__(self):
        return f"<WaterConditionsRecord(location_id='{self.location_id}', timestamp={self.timestamp})>"
