"""Feed parsers, clients and region definitions."""

from tidewatch.data.ndbc import NDBCClient, parse_observation, parse_station_list
from tidewatch.data.observations import (
    BuoyReading,
    BuoyStation,
    Observation,
    SeriesReading,
    SeriesSample,
    WaterData,
)
from tidewatch.data.regions import REGION_NAMES, classify_region
from tidewatch.data.usgs import USGSClient, parse_water_data

__all__ = [
    "NDBCClient",
    "USGSClient",
    "parse_station_list",
    "parse_observation",
    "parse_water_data",
    "classify_region",
    "REGION_NAMES",
    "BuoyReading",
    "BuoyStation",
    "Observation",
    "SeriesReading",
    "SeriesSample",
    "WaterData",
]
