"""
NOAA National Data Buoy Center (NDBC) feed client.

Two plain-text feeds are used:

- ``stations.txt``: two header lines, then one row per station::

      46012 37.363 -122.881 "HALF MOON BAY"

- ``realtime2/{station}.txt``: two header lines, then fixed-column rows,
  most recent first::

      #YY  MM DD hh mm WDIR WSPD GST  WVHT   DPD   APD MWD   PRES  ATMP  WTMP  DEWP  VIS PTDY  TIDE

Columns are positional; a value of ``MM`` means the sensor reported nothing.
"""

import logging
import math
from datetime import datetime, timezone
from typing import List, Optional

from tidewatch.data.http import FeedClient
from tidewatch.data.observations import BuoyReading, BuoyStation, Observation
from tidewatch.data.regions import classify_region
from tidewatch.exceptions import FeedError

logger = logging.getLogger(__name__)

NDBC_REALTIME_URL = "https://www.ndbc.noaa.gov/data/realtime2"
NDBC_STATIONS_URL = "https://www.ndbc.noaa.gov/data/stations.txt"

HEADER_LINES = 2
MIN_STATION_FIELDS = 5
MIN_OBSERVATION_FIELDS = 10

# (attribute, column, unit) for realtime2 rows
OBSERVATION_COLUMNS = [
    ("wind_direction", 5, "deg"),   # WDIR
    ("wind_speed", 6, "m/s"),       # WSPD
    ("wave_height", 8, "m"),        # WVHT
    ("wave_period", 9, "s"),        # DPD
    ("wave_direction", 11, "deg"),  # MWD
    ("water_temperature", 14, "degC"),  # WTMP
]


def _parse_float(raw: str) -> Optional[float]:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if math.isnan(value):
        return None
    return value


def _data_lines(text: str) -> List[str]:
    lines = text.split("\n")[HEADER_LINES:]
    return [line.strip() for line in lines if line.strip()]


def parse_station_list(text: str) -> List[BuoyStation]:
    """
    Parse the NDBC station list.

    Rows with fewer than five fields or unparseable coordinates are skipped.
    """
    stations = []
    for line in _data_lines(text):
        parts = line.split()
        if len(parts) < MIN_STATION_FIELDS:
            continue

        latitude = _parse_float(parts[1])
        longitude = _parse_float(parts[2])
        if latitude is None or longitude is None:
            logger.debug(f"Skipping station row with bad coordinates: {line!r}")
            continue

        stations.append(
            BuoyStation(
                id=parts[0],
                name=" ".join(parts[3:]).replace('"', ""),
                latitude=latitude,
                longitude=longitude,
                region=classify_region(latitude, longitude),
            )
        )

    return stations


def _parse_row_timestamp(parts: List[str]) -> Optional[datetime]:
    try:
        year, month, day, hour, minute = (int(p) for p in parts[:5])
        if year < 100:
            year += 2000
        return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)
    except ValueError:
        return None


def parse_observation(text: str, station_id: str) -> BuoyReading:
    """
    Parse the most recent row of an NDBC realtime2 file.

    Only the first row with at least ten fields and a valid date is read.
    Columns that are missing or not numeric are left as None on the reading;
    callers decide how to default them. When no row qualifies the reading
    carries only the station id and the current time.
    """
    for line in _data_lines(text):
        parts = line.split()
        if len(parts) < MIN_OBSERVATION_FIELDS:
            continue

        timestamp = _parse_row_timestamp(parts)
        if timestamp is None:
            continue

        reading = BuoyReading(station_id=station_id, timestamp=timestamp)
        for attr, column, unit in OBSERVATION_COLUMNS:
            if column >= len(parts):
                continue
            value = _parse_float(parts[column])
            if value is not None:
                setattr(reading, attr, Observation(value=value, unit=unit))
        return reading

    return BuoyReading(station_id=station_id, timestamp=datetime.now(timezone.utc))


class NDBCClient(FeedClient):
    """
    Client for the NDBC realtime buoy feeds.

    Usage:
        async with NDBCClient() as client:
            stations = await client.fetch_station_list()
            conditions = await client.fetch_water_conditions("46012")
    """

    def __init__(
        self,
        base_url: str = NDBC_REALTIME_URL,
        stations_url: str = NDBC_STATIONS_URL,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.base_url = base_url.rstrip("/")
        self.stations_url = stations_url

    async def fetch_station_list(self) -> List[BuoyStation]:
        """Fetch and parse the full station list."""
        try:
            text = await self.get_text(self.stations_url)
        except FeedError as e:
            raise type(e)(
                f"Failed to fetch station list: {e}",
                status_code=e.status_code,
                details=e.details,
            ) from e

        stations = parse_station_list(text)
        logger.info(f"Fetched {len(stations)} NDBC stations")
        return stations

    async def fetch_reading(self, station_id: str) -> BuoyReading:
        """Fetch the latest raw reading for a station."""
        url = f"{self.base_url}/{station_id}.txt"
        try:
            text = await self.get_text(url)
        except FeedError as e:
            raise type(e)(
                f"Failed to fetch water conditions for station {station_id}: {e}",
                status_code=e.status_code,
                details=e.details,
            ) from e

        return parse_observation(text, station_id)

    async def fetch_water_conditions(
        self, station_id: str, location_id: Optional[str] = None
    ):
        """
        Fetch a conditions snapshot for a station.

        Fields the buoy did not report are zero-filled with their unit.

        Args:
            station_id: NDBC station id
            location_id: Location the snapshot belongs to (defaults to station_id)
        """
        reading = await self.fetch_reading(station_id)
        missing = set(o[0] for o in OBSERVATION_COLUMNS) - set(reading.present_fields())
        if missing:
            logger.debug(f"Station {station_id} missing fields: {sorted(missing)}")
        return reading.to_conditions(location_id or station_id)
