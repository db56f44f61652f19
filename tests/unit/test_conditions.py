"""
Unit tests for the conditions aggregator and location snapshot loader.
"""

import asyncio
from datetime import datetime, timezone

import httpx
import pytest

from app.conditions import ConditionsAggregator, LocationConditionsLoader
from app.network import HttpReachability, StaticReachability
from tidewatch.data.observations import SeriesReading, WaterData
from tidewatch.data.usgs import USGSClient
from tidewatch.exceptions import FeedConnectionError, FeedQueryError

UPDATED = datetime(2024, 5, 1, 12, 15, tzinfo=timezone.utc)


def water_data(temperature, discharge):
    return WaterData(
        temperature=SeriesReading(current=temperature, unit="degC", last_updated=UPDATED),
        discharge=SeriesReading(current=discharge, unit="ft3/s", last_updated=UPDATED),
    )


class FakeUSGS:
    """Returns queued results in order; exceptions are raised."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    async def fetch_water_data(self):
        self.calls += 1
        result = self.results.pop(0)
        if isinstance(result, BaseException):
            raise result
        return result


class FakeNDBC:
    def __init__(self, conditions_factory, base_time, failing=()):
        self.conditions_factory = conditions_factory
        self.base_time = base_time
        self.failing = set(failing)
        self.requested = []

    async def fetch_water_conditions(self, station_id, location_id=None):
        self.requested.append(station_id)
        if station_id in self.failing:
            raise FeedQueryError(f"Failed to fetch water conditions for station {station_id}")
        return self.conditions_factory(location_id or station_id, self.base_time)


class Alerts(list):
    def __call__(self, title, message):
        self.append((title, message))


@pytest.fixture
def alerts():
    return Alerts()


def make_aggregator(client, store, alerts, online=True, **kwargs):
    return ConditionsAggregator(
        client, store, StaticReachability(is_connected=online), on_alert=alerts, **kwargs
    )


class TestLoadOnline:
    """Loads with the network available."""

    @pytest.mark.asyncio
    async def test_fetches_and_caches(self, kv_store, alerts):
        data = water_data(12.5, 1520.0)
        aggregator = make_aggregator(FakeUSGS(data), kv_store, alerts)

        state = await aggregator.load()

        assert state.current == data
        assert state.previous is None
        assert state.is_offline is False
        assert state.is_loading is False
        assert state.error is None
        assert state.last_loaded is not None
        assert kv_store.get_latest_data().temperature.current == 12.5
        assert alerts == []

    @pytest.mark.asyncio
    async def test_previous_value_kept_for_deltas(self, kv_store, alerts):
        aggregator = make_aggregator(
            FakeUSGS(water_data(12.0, 1500.0), water_data(12.5, 1450.0)), kv_store, alerts
        )

        await aggregator.load()
        assert aggregator.deltas() == {"temperature": None, "discharge": None}

        state = await aggregator.load()
        assert state.previous.temperature.current == 12.0
        deltas = aggregator.deltas()
        assert deltas["temperature"] == pytest.approx(0.5)
        assert deltas["discharge"] == pytest.approx(-50.0)

    @pytest.mark.asyncio
    async def test_feed_error_alerts(self, kv_store, alerts):
        aggregator = make_aggregator(FakeUSGS(FeedConnectionError("Rate limit exceeded")), kv_store, alerts)

        state = await aggregator.load()

        assert state.current is None
        assert state.error == "Failed to fetch data: Rate limit exceeded"
        assert alerts == [("Error", "Failed to fetch water data: Rate limit exceeded")]

    @pytest.mark.asyncio
    async def test_feed_error_message_prefixed_once(self, kv_store, alerts, fake_sleep):
        transport = httpx.MockTransport(lambda request: httpx.Response(503))
        async with USGSClient(
            base_url="https://usgs.test/nwis/iv/", transport=transport, sleep=fake_sleep
        ) as client:
            state = await make_aggregator(client, kv_store, alerts).load()

        assert state.error == "Failed to fetch data: Feed service temporarily unavailable"
        assert alerts == [
            ("Error", "Failed to fetch water data: Feed service temporarily unavailable")
        ]

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_current(self, kv_store, alerts):
        data = water_data(12.0, 1500.0)
        aggregator = make_aggregator(
            FakeUSGS(data, FeedConnectionError("down")), kv_store, alerts
        )

        await aggregator.load()
        state = await aggregator.refresh()

        assert state.current == data
        assert state.error == "Failed to fetch data: down"
        assert alerts == []

    @pytest.mark.asyncio
    async def test_unexpected_error(self, kv_store, alerts):
        aggregator = make_aggregator(FakeUSGS(RuntimeError("bug")), kv_store, alerts)

        state = await aggregator.load()

        assert state.error == "An unexpected error occurred"
        assert alerts == [("Error", "An unexpected error occurred while loading data")]

    @pytest.mark.asyncio
    async def test_alerts_suppressed(self, kv_store, alerts):
        aggregator = make_aggregator(FakeUSGS(FeedConnectionError("down")), kv_store, alerts)

        state = await aggregator.load(show_errors=False)

        assert state.error is not None
        assert alerts == []


class TestLoadOffline:
    """Loads that fall back to the cache."""

    @pytest.mark.asyncio
    async def test_reads_cache(self, sql_store, alerts):
        sql_store.save_data(water_data(11.0, 900.0))
        client = FakeUSGS()
        aggregator = make_aggregator(client, sql_store, alerts, online=False)

        state = await aggregator.load()

        assert client.calls == 0
        assert state.is_offline is True
        assert state.current.temperature.current == 11.0
        assert state.previous is None
        assert alerts == []

    @pytest.mark.asyncio
    async def test_empty_cache(self, kv_store, alerts):
        aggregator = make_aggregator(FakeUSGS(), kv_store, alerts, online=False)

        state = await aggregator.load()

        assert state.current is None
        assert state.error == "No data available"
        assert alerts == [("Error", "Failed to load cached water data: No data available")]

    @pytest.mark.asyncio
    async def test_offline_clears_previous(self, kv_store, alerts):
        client = FakeUSGS(water_data(12.0, 1500.0), water_data(12.5, 1450.0))
        reachability = StaticReachability(is_connected=True)
        aggregator = ConditionsAggregator(client, kv_store, reachability, on_alert=alerts)

        await aggregator.load()
        await aggregator.load()
        reachability.is_connected = False
        state = await aggregator.load()

        assert state.previous is None
        assert state.current.temperature.current == 12.5
        assert aggregator.deltas() == {"temperature": None, "discharge": None}


class TestScheduling:
    """Periodic refresh and task ownership."""

    @pytest.mark.asyncio
    async def test_run_periodic_reloads_after_each_interval(self, kv_store, alerts):
        waits = []

        async def sleep(seconds):
            waits.append(seconds)
            if len(waits) > 2:
                raise asyncio.CancelledError()

        client = FakeUSGS(water_data(12.0, 1500.0), FeedConnectionError("down"))
        aggregator = make_aggregator(client, kv_store, alerts, sleep=sleep, refresh_interval=60)

        with pytest.raises(asyncio.CancelledError):
            await aggregator.run_periodic()

        assert waits == [60, 60, 60]
        assert client.calls == 2
        # Scheduled loads never alert
        assert alerts == []

    @pytest.mark.asyncio
    async def test_stop_cancels_tasks(self, kv_store, alerts):
        aggregator = make_aggregator(
            FakeUSGS(water_data(12.0, 1500.0)), kv_store, alerts, refresh_interval=3600
        )

        aggregator.start()
        assert len(aggregator._tasks) == 2
        await asyncio.sleep(0)
        await aggregator.stop()

        assert aggregator._tasks == set()

    @pytest.mark.asyncio
    async def test_stop_without_tasks(self, kv_store, alerts):
        aggregator = make_aggregator(FakeUSGS(), kv_store, alerts)
        await aggregator.stop()


class TestLocationConditionsLoader:
    """Cache-or-fetch for location snapshots."""

    @pytest.mark.asyncio
    async def test_fetches_when_not_cached(self, store, sample_location, conditions_factory, base_time):
        client = FakeNDBC(conditions_factory, base_time)
        loader = LocationConditionsLoader(client, store)

        conditions = await loader.load_for_location(sample_location)

        assert conditions.location_id == sample_location.id
        assert client.requested == ["46012"]
        assert store.get_water_conditions(sample_location.id) == conditions

    @pytest.mark.asyncio
    async def test_uses_cache(self, store, sample_location, conditions_factory, base_time):
        store.save_water_conditions(conditions_factory(sample_location.id, base_time))
        client = FakeNDBC(conditions_factory, base_time)

        await LocationConditionsLoader(client, store).load_for_location(sample_location)

        assert client.requested == []

    @pytest.mark.asyncio
    async def test_load_all_fetches_when_cache_empty(self, store, sample_location, conditions_factory, base_time):
        broken = sample_location.model_copy(update={"id": "loc-2", "ndbc_station_id": "99999"})
        client = FakeNDBC(conditions_factory, base_time, failing={"99999"})

        snapshots = await LocationConditionsLoader(client, store).load_all([sample_location, broken])

        assert set(snapshots) == {sample_location.id}
        assert client.requested == ["46012", "99999"]

    @pytest.mark.asyncio
    async def test_load_all_prefers_cache(self, store, sample_location, conditions_factory, base_time):
        store.save_water_conditions(conditions_factory("cached", base_time))
        client = FakeNDBC(conditions_factory, base_time)

        snapshots = await LocationConditionsLoader(client, store).load_all([sample_location])

        assert set(snapshots) == {"cached"}
        assert client.requested == []


class TestReachability:
    """Tests for HttpReachability."""

    @pytest.mark.asyncio
    async def test_any_response_is_connected(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(503))
        status = await HttpReachability("https://example.test/", transport=transport).fetch()

        assert status.is_connected is True
        assert status.latency_ms is not None

    @pytest.mark.asyncio
    async def test_connection_failure_is_offline(self):
        def handler(request):
            raise httpx.ConnectError("no route", request=request)

        status = await HttpReachability(
            "https://example.test/", transport=httpx.MockTransport(handler)
        ).fetch()

        assert status.is_connected is False
        assert "no route" in status.message
