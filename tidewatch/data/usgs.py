"""
USGS Water Services instantaneous-values (IV) feed client.

Fetches water temperature (parameter 00010) and discharge (00060) time
series and folds them into a single WaterData value.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from tidewatch.data.http import FeedClient
from tidewatch.data.observations import SeriesReading, SeriesSample, WaterData
from tidewatch.exceptions import FeedValidationError

logger = logging.getLogger(__name__)

USGS_IV_URL = "https://waterservices.usgs.gov/nwis/iv/"

TEMPERATURE_PARAMETER = "00010"  # water temperature, degC
DISCHARGE_PARAMETER = "00060"    # discharge, ft3/s

DEFAULT_SITES = ["01021050", "01021000"]
DEFAULT_PERIOD = "P7D"


def parse_timestamp(raw: str) -> datetime:
    """
    Parse a USGS ISO-8601 timestamp. Naive values are taken as UTC.

    Raises:
        ValueError: If the string is not a timestamp
    """
    value = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _variable_code(series: Dict[str, Any]) -> Optional[str]:
    try:
        return series["variable"]["variableCode"][0]["value"]
    except (KeyError, IndexError, TypeError):
        return None


def _find_series(series_list: List[Any], code: str) -> Optional[Dict[str, Any]]:
    for series in series_list:
        if isinstance(series, dict) and _variable_code(series) == code:
            return series
    return None


def _parse_series(series: Dict[str, Any], code: str) -> SeriesReading:
    try:
        unit = series["variable"]["unit"]["unitCode"]
        raw_values = series["values"][0]["value"]
    except (KeyError, IndexError, TypeError) as e:
        raise FeedValidationError(f"Malformed time series for parameter {code}") from e

    if not isinstance(raw_values, list):
        raise FeedValidationError(f"Malformed time series for parameter {code}")

    samples = []
    for item in raw_values:
        try:
            samples.append(
                SeriesSample(
                    date_time=parse_timestamp(item["dateTime"]),
                    value=float(item["value"]),
                )
            )
        except (KeyError, TypeError, ValueError):
            # Non-numeric values (ice, equipment flags) carry no reading
            continue

    if not samples:
        raise FeedValidationError(f"No values for parameter {code}")

    # Upstream order is not guaranteed; history runs oldest to newest
    samples.sort(key=lambda s: s.date_time)
    latest = samples[-1]

    return SeriesReading(
        current=latest.value,
        unit=unit,
        last_updated=latest.date_time,
        history=samples,
    )


def parse_water_data(payload: Any) -> WaterData:
    """
    Parse a WaterServices IV JSON payload into WaterData.

    Raises:
        FeedValidationError: If the payload is not an IV response or either
            required series is missing
    """
    series_list = None
    if isinstance(payload, dict):
        value = payload.get("value")
        if isinstance(value, dict):
            series_list = value.get("timeSeries")

    if not isinstance(series_list, list) or not series_list:
        raise FeedValidationError("Invalid response format from USGS API")

    temperature = _find_series(series_list, TEMPERATURE_PARAMETER)
    discharge = _find_series(series_list, DISCHARGE_PARAMETER)
    if temperature is None or discharge is None:
        raise FeedValidationError("Required data not found in response")

    return WaterData(
        temperature=_parse_series(temperature, TEMPERATURE_PARAMETER),
        discharge=_parse_series(discharge, DISCHARGE_PARAMETER),
    )


class USGSClient(FeedClient):
    """
    Client for the USGS instantaneous-values service.

    Usage:
        async with USGSClient(sites=["01021050"]) as client:
            data = await client.fetch_water_data()
    """

    def __init__(
        self,
        base_url: str = USGS_IV_URL,
        sites: Optional[List[str]] = None,
        period: str = DEFAULT_PERIOD,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.base_url = base_url
        self.sites = list(sites) if sites else list(DEFAULT_SITES)
        self.period = period

    def build_params(self) -> Dict[str, str]:
        return {
            "format": "json",
            "sites": ",".join(self.sites),
            "parameterCd": f"{TEMPERATURE_PARAMETER},{DISCHARGE_PARAMETER}",
            "period": self.period,
        }

    async def fetch_water_data(self) -> WaterData:
        """Fetch the latest temperature and discharge series."""
        payload = await self.get_json(self.base_url, self.build_params())
        data = parse_water_data(payload)
        logger.info(
            f"USGS water data: {data.temperature.current} {data.temperature.unit}, "
            f"{data.discharge.current} {data.discharge.unit}"
        )
        return data
