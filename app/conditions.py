"""
Conditions orchestration.

``ConditionsAggregator`` drives the USGS current-conditions view: it checks
reachability, fetches fresh data (keeping the prior value for deltas) or
falls back to the cached reading, and refreshes on a timer.

``LocationConditionsLoader`` does the same cache-or-fetch dance for NDBC
snapshots of user locations.

Concurrent loads are not deduplicated; the later write wins in the store.
Tasks started through an aggregator belong to it and ``stop()`` cancels
them.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Set

from app.storage.base import WaterStore
from tidewatch.data.ndbc import NDBCClient
from tidewatch.data.observations import WaterData
from tidewatch.data.usgs import USGSClient
from tidewatch.exceptions import FeedError, StorageError
from tidewatch.schemas import Location, WaterConditions

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL = 4 * 60 * 60  # seconds

AlertCallback = Callable[[str, str], None]


@dataclass
class ConditionsState:
    """What the current-conditions view shows."""
    current: Optional[WaterData] = None
    previous: Optional[WaterData] = None
    is_offline: bool = False
    is_loading: bool = False
    error: Optional[str] = None
    last_loaded: Optional[datetime] = None


class ConditionsAggregator:
    """
    Load path for the current-conditions view.

    Usage:
        aggregator = ConditionsAggregator(usgs_client, store, reachability)
        aggregator.start()          # initial load + 4-hourly refresh
        await aggregator.refresh()  # pull-to-refresh
        await aggregator.stop()
    """

    def __init__(
        self,
        client: USGSClient,
        store: WaterStore,
        reachability: Any,
        on_alert: Optional[AlertCallback] = None,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.client = client
        self.store = store
        self.reachability = reachability
        self.on_alert = on_alert
        self.refresh_interval = refresh_interval
        self._sleep = sleep
        self.state = ConditionsState()
        self._tasks: Set[asyncio.Task] = set()

    async def load(self, show_errors: bool = True) -> ConditionsState:
        """
        Load water data from the network, or from the cache when offline.

        Failures are recorded on ``state.error``; with ``show_errors`` the
        alert callback is also invoked. Nothing is raised.
        """
        self.state.is_loading = True
        self.state.error = None
        try:
            status = await self.reachability.fetch()
            self.state.is_offline = not status.is_connected

            if status.is_connected:
                data = await self.client.fetch_water_data()
                self.state.previous = self.state.current
                self.state.current = data
                self.store.save_data(data)
            else:
                self.state.current = self.store.get_latest_data()
                self.state.previous = None

            self.state.last_loaded = datetime.now(timezone.utc)

        except FeedError as e:
            logger.error(f"Error loading water data: {e}")
            self.state.error = f"Failed to fetch data: {e}"
            if show_errors:
                self._alert(f"Failed to fetch water data: {e}")
        except StorageError as e:
            logger.error(f"Error reading cached water data: {e}")
            self.state.error = str(e)
            if show_errors:
                self._alert(f"Failed to load cached water data: {e}")
        except Exception as e:
            logger.error(f"Unexpected error loading water data: {e}", exc_info=True)
            self.state.error = "An unexpected error occurred"
            if show_errors:
                self._alert("An unexpected error occurred while loading data")
        finally:
            self.state.is_loading = False

        return self.state

    async def refresh(self) -> ConditionsState:
        """Pull-to-refresh: same load path, no alerts."""
        return await self.load(show_errors=False)

    def deltas(self) -> Dict[str, Optional[float]]:
        """Change in current values since the previous load."""
        current, previous = self.state.current, self.state.previous
        if current is None or previous is None:
            return {"temperature": None, "discharge": None}
        return {
            "temperature": current.temperature.current - previous.temperature.current,
            "discharge": current.discharge.current - previous.discharge.current,
        }

    async def run_periodic(self, interval: Optional[float] = None) -> None:
        """Reload every ``interval`` seconds until cancelled."""
        interval = interval if interval is not None else self.refresh_interval
        while True:
            await self._sleep(interval)
            logger.info("Scheduled water data refresh")
            await self.load(show_errors=False)

    def spawn(self, coro: Awaitable[Any]) -> asyncio.Task:
        """Run ``coro`` as a task owned by this aggregator."""
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def start(self) -> None:
        """Initial foreground load plus the periodic background refresh."""
        self.spawn(self.load(show_errors=True))
        self.spawn(self.run_periodic())

    async def stop(self) -> None:
        """Cancel every in-flight load and the refresh timer."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    def _alert(self, message: str) -> None:
        if self.on_alert is not None:
            self.on_alert("Error", message)


class LocationConditionsLoader:
    """Cache-or-fetch loading of NDBC snapshots for user locations."""

    def __init__(self, client: NDBCClient, store: WaterStore):
        self.client = client
        self.store = store

    async def refresh_location(self, location: Location) -> WaterConditions:
        """Fetch a fresh snapshot for a location and cache it."""
        conditions = await self.client.fetch_water_conditions(
            location.ndbc_station_id, location_id=location.id
        )
        self.store.save_water_conditions(conditions)
        return conditions

    async def load_for_location(self, location: Location) -> WaterConditions:
        """Cached snapshot when there is one, otherwise fetch it."""
        cached = self.store.get_water_conditions(location.id)
        if cached is not None:
            return cached
        return await self.refresh_location(location)

    async def load_all(self, locations: Iterable[Location]) -> Dict[str, WaterConditions]:
        """
        Snapshots for a list of locations.

        Uses the cache unless it is empty, in which case every location is
        fetched; per-location failures are logged and skipped.
        """
        locations = list(locations)
        cached = self.store.get_all_water_conditions()
        if not locations or cached:
            return cached

        fetched: Dict[str, WaterConditions] = {}
        for location in locations:
            try:
                fetched[location.id] = await self.refresh_location(location)
            except FeedError as e:
                logger.error(f"Error fetching conditions for {location.name}: {e}")
        return fetched
