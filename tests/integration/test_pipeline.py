"""
End-to-end ingestion flow over mocked NDBC and USGS endpoints.

Covers: station search -> tracked location -> buoy snapshot cached ->
river data fetched online -> river data served from cache offline.
"""

import httpx
import pytest
import pytest_asyncio

from app.conditions import ConditionsAggregator, LocationConditionsLoader
from app.config import Settings
from app.locations import LocationService, search_stations
from app.main import create_services
from app.network import HttpReachability
from tidewatch.data.ndbc import NDBCClient
from tidewatch.data.observations import Observation
from tidewatch.data.usgs import USGSClient


class Upstream:
    """Mock upstream hosts with a switchable network."""

    def __init__(self, station_list_text, realtime_text, usgs_payload):
        self.online = True
        self.routes = {
            "/data/stations.txt": lambda: httpx.Response(200, text=station_list_text),
            "/data/realtime2/46012.txt": lambda: httpx.Response(200, text=realtime_text),
            "/nwis/iv/": lambda: httpx.Response(200, json=usgs_payload),
            "/": lambda: httpx.Response(200),
        }
        self.requests = []

    def __call__(self, request):
        if not self.online:
            raise httpx.ConnectError("network down", request=request)
        self.requests.append(request.url.path)
        route = self.routes.get(request.url.path)
        return route() if route else httpx.Response(404)


@pytest.fixture
def upstream(station_list_text, realtime_text, usgs_payload):
    return Upstream(station_list_text, realtime_text, usgs_payload)


@pytest_asyncio.fixture
async def pipeline(store, upstream, fake_sleep):
    transport = httpx.MockTransport(upstream)
    ndbc = NDBCClient(
        base_url="https://ndbc.test/data/realtime2",
        stations_url="https://ndbc.test/data/stations.txt",
        transport=transport,
        sleep=fake_sleep,
    )
    usgs = USGSClient(base_url="https://usgs.test/nwis/iv/", transport=transport, sleep=fake_sleep)
    reachability = HttpReachability("https://usgs.test/", transport=transport)
    alerts = []
    aggregator = ConditionsAggregator(
        usgs, store, reachability, on_alert=lambda title, msg: alerts.append(msg)
    )
    yield {
        "ndbc": ndbc,
        "aggregator": aggregator,
        "loader": LocationConditionsLoader(ndbc, store),
        "locations": LocationService(store),
        "store": store,
        "alerts": alerts,
    }
    await aggregator.stop()
    await ndbc.close()
    await usgs.close()


class TestIngestionFlow:
    """Full online/offline flow on both store backends."""

    @pytest.mark.asyncio
    async def test_track_station_and_load_conditions(self, pipeline):
        stations = await pipeline["ndbc"].fetch_station_list()
        [station] = search_stations(stations, query="half moon", region="West Coast")
        location = pipeline["locations"].add_location_from_station(station)

        snapshots = await pipeline["loader"].load_all(pipeline["store"].get_locations())

        snapshot = snapshots[location.id]
        assert snapshot.wave_height == Observation(1.2, "m")
        assert snapshot.water_temperature == Observation(18.5, "degC")
        assert pipeline["store"].get_water_conditions(location.id) == snapshot

    @pytest.mark.asyncio
    async def test_online_then_offline(self, pipeline, upstream):
        aggregator = pipeline["aggregator"]

        online = await aggregator.load()
        assert online.is_offline is False
        assert online.current.discharge.current == 1520.0

        upstream.online = False
        offline = await aggregator.load()

        assert offline.is_offline is True
        assert offline.current.temperature.current == 12.5
        assert offline.current.discharge.current == 1520.0
        assert offline.previous is None
        assert pipeline["alerts"] == []

    @pytest.mark.asyncio
    async def test_offline_first_run_alerts(self, pipeline, upstream):
        upstream.online = False

        state = await pipeline["aggregator"].load()

        assert state.current is None
        assert pipeline["alerts"] == ["Failed to load cached water data: No data available"]

    @pytest.mark.asyncio
    async def test_unknown_station_is_skipped(self, pipeline, sample_location):
        missing = sample_location.model_copy(update={"id": "loc-x", "ndbc_station_id": "00000"})

        snapshots = await pipeline["loader"].load_all([sample_location, missing])

        assert set(snapshots) == {sample_location.id}

    @pytest.mark.asyncio
    async def test_real_reading_replaces_empty_response(self, pipeline, upstream, sample_location):
        route = "/data/realtime2/46012.txt"
        real = upstream.routes[route]
        upstream.routes[route] = lambda: httpx.Response(200, text="#YY MM DD\n#yr mo dy\n")

        empty = await pipeline["loader"].refresh_location(sample_location)
        assert empty.water_temperature == Observation(0.0, "degC")

        upstream.routes[route] = real
        await pipeline["loader"].refresh_location(sample_location)

        cached = pipeline["store"].get_water_conditions(sample_location.id)
        assert cached.water_temperature == Observation(18.5, "degC")


class TestCreateServices:
    """Wiring from settings."""

    @pytest.mark.asyncio
    async def test_offline_services_use_cache(self, tmp_path):
        settings = Settings(_env_file=None, storage_backend="kv", kv_directory=str(tmp_path))
        services = create_services(settings=settings, offline=True)
        try:
            assert services.ndbc.max_attempts == settings.max_attempts
            assert services.usgs.sites == ["01021050", "01021000"]

            state = await services.conditions.load(show_errors=False)
            assert state.is_offline is True
            assert state.error == "No data available"
        finally:
            await services.close()
