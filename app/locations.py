"""
Location and group management.

Group membership is recorded on both sides (``Location.user_groups`` and
``LocationGroup.location_ids``); the methods here keep the two in step.
"""
import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from app.storage.base import WaterStore
from tidewatch.data.observations import BuoyStation
from tidewatch.schemas import Location, LocationGroup

logger = logging.getLogger(__name__)


def search_stations(
    stations: Iterable[BuoyStation],
    query: Optional[str] = None,
    region: Optional[str] = None,
) -> List[BuoyStation]:
    """
    Filter stations by a case-insensitive name/id substring and a region.
    """
    filtered = list(stations)

    if query:
        needle = query.lower()
        filtered = [
            s for s in filtered
            if needle in s.name.lower() or needle in s.id.lower()
        ]

    if region:
        filtered = [s for s in filtered if s.region == region]

    return filtered


class LocationService:
    """User actions on locations and groups."""

    def __init__(self, store: WaterStore):
        self.store = store

    def add_location_from_station(self, station: BuoyStation) -> Location:
        location = Location(
            name=station.name,
            region=station.region,
            latitude=station.latitude,
            longitude=station.longitude,
            ndbc_station_id=station.id,
        )
        self.store.save_location(location)
        logger.info(f"Added location {location.name} ({location.id})")
        return location

    def toggle_favorite(self, location_id: str) -> Optional[Location]:
        location = self.store.get_location(location_id)
        if location is None:
            return None
        updated = location.model_copy(
            update={
                "is_favorite": not location.is_favorite,
                "last_updated": datetime.now(timezone.utc),
            }
        )
        self.store.save_location(updated)
        return updated

    def delete_location(self, location_id: str) -> None:
        self.store.delete_location(location_id)

    def favorites(self) -> List[Location]:
        return [loc for loc in self.store.get_locations() if loc.is_favorite]

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    def create_group(self, name: str, location_ids: Iterable[str] = ()) -> LocationGroup:
        group = LocationGroup(name=name, location_ids=list(dict.fromkeys(location_ids)))
        self.store.save_location_group(group)
        for location_id in group.location_ids:
            self._link(location_id, group.id)
        return group

    def add_to_group(self, group_id: str, location_id: str) -> Optional[LocationGroup]:
        group = self.store.get_location_group(group_id)
        if group is None:
            return None
        if location_id not in group.location_ids:
            group = group.model_copy(
                update={
                    "location_ids": group.location_ids + [location_id],
                    "updated_at": datetime.now(timezone.utc),
                }
            )
            self.store.save_location_group(group)
        self._link(location_id, group_id)
        return group

    def remove_from_group(self, group_id: str, location_id: str) -> Optional[LocationGroup]:
        group = self.store.get_location_group(group_id)
        if group is None:
            return None
        if location_id in group.location_ids:
            group = group.model_copy(
                update={
                    "location_ids": [i for i in group.location_ids if i != location_id],
                    "updated_at": datetime.now(timezone.utc),
                }
            )
            self.store.save_location_group(group)

        location = self.store.get_location(location_id)
        if location is not None and group_id in location.user_groups:
            self.store.save_location(
                location.model_copy(
                    update={"user_groups": [g for g in location.user_groups if g != group_id]}
                )
            )
        return group

    def delete_group(self, group_id: str) -> None:
        self.store.delete_location_group(group_id)

    def _link(self, location_id: str, group_id: str) -> None:
        location = self.store.get_location(location_id)
        if location is None:
            logger.warning(f"Group {group_id} references unknown location {location_id}")
            return
        if group_id not in location.user_groups:
            self.store.save_location(
                location.model_copy(update={"user_groups": location.user_groups + [group_id]})
            )
