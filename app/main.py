"""
Application wiring for Tidewatch.

Builds the feed clients, the store and the orchestration objects from
settings. Clients are constructed here and passed in explicitly; nothing
holds a module-level client.
"""
import logging
from dataclasses import dataclass
from typing import Any, Optional

from app.conditions import AlertCallback, ConditionsAggregator, LocationConditionsLoader
from app.config import Settings, get_settings
from app.locations import LocationService
from app.network import HttpReachability, StaticReachability
from app.storage import WaterStore, create_store
from tidewatch.data.ndbc import NDBCClient
from tidewatch.data.usgs import USGSClient

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "info") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@dataclass
class Services:
    """Everything a front end needs, built from one Settings instance."""
    settings: Settings
    store: WaterStore
    ndbc: NDBCClient
    usgs: USGSClient
    reachability: Any
    locations: LocationService
    conditions: ConditionsAggregator
    location_conditions: LocationConditionsLoader

    async def close(self) -> None:
        await self.conditions.stop()
        await self.ndbc.close()
        await self.usgs.close()
        self.store.close()


def create_services(
    settings: Optional[Settings] = None,
    store: Optional[WaterStore] = None,
    offline: bool = False,
    on_alert: Optional[AlertCallback] = None,
) -> Services:
    """
    Build the service graph.

    Args:
        settings: Settings to use (defaults to environment settings)
        store: Pre-built store (defaults to ``create_store(settings)``)
        offline: Force offline mode (cache only)
        on_alert: Callback for user-facing error alerts
    """
    settings = settings or get_settings()
    store = store or create_store(settings)

    client_options = dict(
        timeout=settings.request_timeout,
        max_attempts=settings.max_attempts,
        retry_base_delay=settings.retry_base_delay,
    )
    ndbc = NDBCClient(
        base_url=settings.ndbc_base_url,
        stations_url=settings.ndbc_stations_url,
        **client_options,
    )
    usgs = USGSClient(
        base_url=settings.usgs_base_url,
        sites=settings.usgs_sites_list,
        period=settings.usgs_period,
        **client_options,
    )

    if offline:
        reachability: Any = StaticReachability(is_connected=False)
    else:
        reachability = HttpReachability(settings.reachability_url, settings.reachability_timeout)

    return Services(
        settings=settings,
        store=store,
        ndbc=ndbc,
        usgs=usgs,
        reachability=reachability,
        locations=LocationService(store),
        conditions=ConditionsAggregator(
            usgs,
            store,
            reachability,
            on_alert=on_alert,
            refresh_interval=settings.refresh_interval_seconds,
        ),
        location_conditions=LocationConditionsLoader(ndbc, store),
    )
