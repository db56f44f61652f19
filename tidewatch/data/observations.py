"""
Parsed feed data structures.

These are the shapes the feed parsers produce. Every physical quantity is an
Observation so the unit always travels with the value.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Observation:
    """A single measurement with an explicit unit."""

    value: float
    unit: str


@dataclass
class BuoyStation:
    """An NDBC station from the station list feed. Not persisted."""

    id: str
    name: str
    latitude: float
    longitude: float
    region: str
    # The station list does not say which sensors a buoy carries; both flags
    # are optimistic and always True.
    has_water_temperature: bool = True
    has_wave_height: bool = True


# Unit reported by NDBC realtime2 files for each reading field
BUOY_FIELD_UNITS: Dict[str, str] = {
    "water_temperature": "degC",
    "wave_height": "m",
    "wave_period": "s",
    "wave_direction": "deg",
    "wind_speed": "m/s",
    "wind_direction": "deg",
}


@dataclass
class BuoyReading:
    """
    Most recent row of an NDBC realtime2 file.

    Fields are None when the column was missing ("MM") in the feed.
    """

    station_id: str
    timestamp: datetime
    water_temperature: Optional[Observation] = None
    wave_height: Optional[Observation] = None
    wave_period: Optional[Observation] = None
    wave_direction: Optional[Observation] = None
    wind_speed: Optional[Observation] = None
    wind_direction: Optional[Observation] = None

    def present_fields(self) -> List[str]:
        return [name for name in BUOY_FIELD_UNITS if getattr(self, name) is not None]

    def to_conditions(self, location_id: str):
        """Build a WaterConditions snapshot, zero-filling absent fields."""
        from tidewatch.schemas import WaterConditions

        values = {
            name: getattr(self, name) or Observation(value=0.0, unit=unit)
            for name, unit in BUOY_FIELD_UNITS.items()
        }
        return WaterConditions(
            location_id=location_id,
            timestamp=self.timestamp,
            **values,
        )


@dataclass(frozen=True)
class SeriesSample:
    """One dated sample from a USGS time series."""

    date_time: datetime
    value: float


@dataclass
class SeriesReading:
    """Latest value and history for one USGS parameter."""

    current: float
    unit: str
    last_updated: datetime
    history: List[SeriesSample] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current": self.current,
            "unit": self.unit,
            "lastUpdated": self.last_updated.isoformat(),
            "history": [
                {"dateTime": s.date_time.isoformat(), "value": s.value}
                for s in self.history
            ],
        }

    @classmethod
    def from_dict(cls, doc: Dict[str, Any]) -> "SeriesReading":
        return cls(
            current=float(doc["current"]),
            unit=doc["unit"],
            last_updated=datetime.fromisoformat(doc["lastUpdated"]),
            history=[
                SeriesSample(
                    date_time=datetime.fromisoformat(s["dateTime"]),
                    value=float(s["value"]),
                )
                for s in doc.get("history", [])
            ],
        )


@dataclass
class WaterData:
    """Temperature and discharge readings from the USGS IV feed."""

    temperature: SeriesReading
    discharge: SeriesReading

    def to_dict(self) -> Dict[str, Any]:
        return {
            "temperature": self.temperature.to_dict(),
            "discharge": self.discharge.to_dict(),
        }

    @classmethod
    def from_dict(cls, doc: Dict[str, Any]) -> "WaterData":
        """
        Rebuild WaterData from its JSON document.

        Raises:
            KeyError, ValueError: If the document is incomplete
        """
        return cls(
            temperature=SeriesReading.from_dict(doc["temperature"]),
            discharge=SeriesReading.from_dict(doc["discharge"]),
        )
