"""Persisted entity schemas: locations, groups and conditions snapshots."""

import uuid
from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from tidewatch.data.observations import Observation


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class _Entity(BaseModel):
    # camelCase aliases keep the key-value documents compatible with the
    # existing blob layout
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("*", mode="after")
    @classmethod
    def _naive_datetimes_are_utc(cls, value):
        if isinstance(value, datetime) and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class Location(_Entity):
    """A user-tracked point of interest bound to one NDBC station."""
    id: str = Field(default_factory=_new_id)
    name: str
    region: str
    latitude: float
    longitude: float
    ndbc_station_id: str
    is_favorite: bool = False
    user_groups: List[str] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=_utcnow)


class LocationGroup(_Entity):
    id: str = Field(default_factory=_new_id)
    name: str
    location_ids: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class WaterConditions(_Entity):
    """Latest buoy conditions for a location."""
    location_id: str
    timestamp: datetime
    water_temperature: Observation
    wave_height: Observation
    wave_period: Observation
    wave_direction: Observation
    wind_speed: Observation
    wind_direction: Observation
