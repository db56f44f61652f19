"""
Shared pytest fixtures for Tidewatch tests.

The SQL store runs on in-memory SQLite with StaticPool so every session
shares one database. The key-value store writes JSON files under tmp_path.
Feed clients talk to ``httpx.MockTransport`` handlers instead of the network.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

# ---------------------------------------------------------------------------
# Section 1: Environment setup (before any app.* settings are built)
# ---------------------------------------------------------------------------
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("STORAGE_BACKEND", "sql")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from app.storage.kv import FileBlobStore, KeyValueWaterStore  # noqa: E402
from app.storage.sql import SqlWaterStore  # noqa: E402
from tidewatch.data.observations import Observation  # noqa: E402
from tidewatch.schemas import Location, WaterConditions  # noqa: E402


# ---------------------------------------------------------------------------
# Section 2: Feed payloads
# ---------------------------------------------------------------------------

STATION_LIST_TEXT = (
    "# STATION_ID | OWNER | TTYPE | HULL | NAME | PAYLOAD | LOCATION | TIMEZONE\n"
    "#\n"
    '46012 37.363 -122.881 "HALF MOON BAY"\n'
    '44013 42.346 -70.651 "BOSTON 16 NM East of Boston, MA"\n'
    "\n"
    '51001 23.445 -162.279 "NORTHWESTERN HAWAII ONE"\n'
    "BAD1 40.0\n"
)

REALTIME_HEADER = (
    "#YY  MM DD hh mm WDIR WSPD GST  WVHT   DPD   APD MWD   PRES  ATMP  WTMP  DEWP  VIS PTDY  TIDE\n"
    "#yr  mo dy hr mn degT m/s  m/s     m   sec   sec degT   hPa  degC  degC  degC  nmi  hPa    ft\n"
)

REALTIME_TEXT = REALTIME_HEADER + (
    "2024 05 01 12 50 250  5.0  7.0   1.2   8.0   6.1 270 1015.2  14.1  18.5  10.2   MM   MM    MM\n"
    "2024 05 01 12 40 240  4.0  6.0   1.1   9.0   6.0 260 1015.1  14.0  18.4  10.1   MM   MM    MM\n"
)

REALTIME_MISSING_WAVES_TEXT = REALTIME_HEADER + (
    "2024 05 01 12 50 250  5.0  7.0    MM    MM    MM  MM 1015.2  14.1  18.5  10.2   MM   MM    MM\n"
)


def make_series(code: str, unit: str, samples: List[Tuple[str, str]]) -> Dict[str, Any]:
    """One WaterServices timeSeries entry."""
    return {
        "sourceInfo": {"siteName": "TEST RIVER", "siteCode": [{"value": "01021050"}]},
        "variable": {
            "variableCode": [{"value": code}],
            "variableName": f"Parameter {code}",
            "unit": {"unitCode": unit},
        },
        "values": [
            {"value": [{"dateTime": dt, "value": v, "qualifiers": ["P"]} for dt, v in samples]}
        ],
    }


def make_usgs_payload(
    temperature: Optional[List[Tuple[str, str]]] = None,
    discharge: Optional[List[Tuple[str, str]]] = None,
) -> Dict[str, Any]:
    series = []
    if temperature is not None:
        series.append(make_series("00010", "deg C", temperature))
    if discharge is not None:
        series.append(make_series("00060", "ft3/s", discharge))
    return {"value": {"timeSeries": series}}


USGS_PAYLOAD = make_usgs_payload(
    temperature=[
        ("2024-05-01T08:00:00.000-04:00", "12.0"),
        ("2024-05-01T08:15:00.000-04:00", "12.5"),
    ],
    discharge=[
        ("2024-05-01T08:00:00.000-04:00", "1500"),
        ("2024-05-01T08:15:00.000-04:00", "1520"),
    ],
)


def make_transport(routes: Dict[str, Any]) -> httpx.MockTransport:
    """
    MockTransport answering by URL path.

    Route values may be a str (text body), dict/list (JSON body), an
    ``httpx.Response``, or a callable taking the request.
    """
    def handler(request: httpx.Request) -> httpx.Response:
        route = routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, text="Not Found")
        if callable(route):
            return route(request)
        if isinstance(route, httpx.Response):
            return route
        if isinstance(route, str):
            return httpx.Response(200, text=route)
        return httpx.Response(200, json=route)

    return httpx.MockTransport(handler)


# ---------------------------------------------------------------------------
# Section 3: Retry sleep capture
# ---------------------------------------------------------------------------


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def fake_sleep(sleeps):
    """Async sleep that records the delay instead of waiting."""
    async def _sleep(seconds):
        sleeps.append(float(seconds))

    return _sleep


# ---------------------------------------------------------------------------
# Section 4: Stores
# ---------------------------------------------------------------------------


@pytest.fixture
def sql_store():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    store = SqlWaterStore(engine)
    store.init()
    yield store
    store.close()


@pytest.fixture
def kv_store(tmp_path):
    store = KeyValueWaterStore(FileBlobStore(str(tmp_path / "kv")))
    store.init()
    yield store
    store.close()


@pytest.fixture(params=["sql", "kv"])
def store(request):
    """Each store backend in turn; tests must pass on both."""
    return request.getfixturevalue(f"{request.param}_store")


# ---------------------------------------------------------------------------
# Section 5: Entity fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_location():
    return Location(
        id="loc-1",
        name="Half Moon Bay",
        region="West Coast",
        latitude=37.363,
        longitude=-122.881,
        ndbc_station_id="46012",
        last_updated=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
    )


def make_conditions(location_id: str, timestamp: datetime, water_temp: float = 18.5) -> WaterConditions:
    return WaterConditions(
        location_id=location_id,
        timestamp=timestamp,
        water_temperature=Observation(water_temp, "degC"),
        wave_height=Observation(1.2, "m"),
        wave_period=Observation(8.0, "s"),
        wave_direction=Observation(270.0, "deg"),
        wind_speed=Observation(5.0, "m/s"),
        wind_direction=Observation(250.0, "deg"),
    )


@pytest.fixture
def conditions_factory():
    return make_conditions


@pytest.fixture
def base_time():
    return datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def one_hour():
    return timedelta(hours=1)


# ---------------------------------------------------------------------------
# Section 6: Feed payload fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def station_list_text():
    return STATION_LIST_TEXT


@pytest.fixture
def realtime_text():
    return REALTIME_TEXT


@pytest.fixture
def realtime_missing_waves_text():
    return REALTIME_MISSING_WAVES_TEXT


@pytest.fixture
def usgs_payload():
    return USGS_PAYLOAD


@pytest.fixture
def usgs_payload_factory():
    return make_usgs_payload


@pytest.fixture
def transport_factory():
    return make_transport
