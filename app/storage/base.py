"""
Storage interface shared by the durable and key-value backends.

Writes are best-effort: a failed write is logged and never reaches the
caller. Reads are strict: a backend failure raises StorageError, and reading
the water-data slot before anything was saved raises NoDataAvailableError.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from tidewatch.data.observations import WaterData
from tidewatch.exceptions import StorageError
from tidewatch.schemas import Location, LocationGroup, WaterConditions

logger = logging.getLogger(__name__)


class WaterStore(ABC):
    """
    Persistence for locations, groups, conditions snapshots and the latest
    USGS reading.

    Both backends give read-your-writes and last-write-wins per key. Each
    location keeps one conditions snapshot, overwritten on every save.
    """

    backend_name = "abstract"

    def init(self) -> None:
        """Prepare the backing store (create tables, directories)."""

    def close(self) -> None:
        """Release backend resources."""

    def _best_effort(self, action: str, func: Callable[..., Any], *args: Any) -> None:
        try:
            func(*args)
        except Exception as e:
            logger.error(f"[{self.backend_name}] Failed to {action}: {e}", exc_info=True)

    def _read(self, action: str, func: Callable[..., Any], *args: Any) -> Any:
        try:
            return func(*args)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to {action}: {e}") from e

    # ------------------------------------------------------------------
    # Locations
    # ------------------------------------------------------------------

    def save_location(self, location: Location) -> None:
        """Insert or replace a location by id."""
        self._best_effort(f"save location {location.id}", self._save_location, location)

    def get_locations(self) -> List[Location]:
        return self._read("read locations", self._get_locations)

    def get_location(self, location_id: str) -> Optional[Location]:
        return self._read(f"read location {location_id}", self._get_location, location_id)

    def delete_location(self, location_id: str) -> None:
        """Delete a location with its group memberships and cached conditions."""
        self._best_effort(f"delete location {location_id}", self._delete_location, location_id)

    # ------------------------------------------------------------------
    # Location groups
    # ------------------------------------------------------------------

    def save_location_group(self, group: LocationGroup) -> None:
        """Insert or replace a group; its membership list replaces the old one."""
        self._best_effort(f"save location group {group.id}", self._save_location_group, group)

    def get_location_groups(self) -> List[LocationGroup]:
        return self._read("read location groups", self._get_location_groups)

    def get_location_group(self, group_id: str) -> Optional[LocationGroup]:
        for group in self.get_location_groups():
            if group.id == group_id:
                return group
        return None

    def delete_location_group(self, group_id: str) -> None:
        self._best_effort(
            f"delete location group {group_id}", self._delete_location_group, group_id
        )

    # ------------------------------------------------------------------
    # Water conditions
    # ------------------------------------------------------------------

    def save_water_conditions(self, conditions: WaterConditions) -> None:
        """Replace the stored snapshot for the location."""
        self._best_effort(
            f"save water conditions for {conditions.location_id}",
            self._save_water_conditions,
            conditions,
        )

    def get_water_conditions(self, location_id: str) -> Optional[WaterConditions]:
        return self._read(
            f"read water conditions for {location_id}",
            self._get_water_conditions,
            location_id,
        )

    def get_all_water_conditions(self) -> Dict[str, WaterConditions]:
        """Latest snapshot per location id."""
        return self._read("read water conditions", self._get_all_water_conditions)

    # ------------------------------------------------------------------
    # USGS water data (single global slot)
    # ------------------------------------------------------------------

    def save_data(self, data: WaterData) -> None:
        self._best_effort("save water data", self._save_data, data)

    def get_latest_data(self) -> WaterData:
        """
        Raises:
            NoDataAvailableError: If no water data was ever saved
        """
        return self._read("read water data", self._get_latest_data)

    # ------------------------------------------------------------------
    # Backend hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _save_location(self, location: Location) -> None: ...

    @abstractmethod
    def _get_locations(self) -> List[Location]: ...

    @abstractmethod
    def _get_location(self, location_id: str) -> Optional[Location]: ...

    @abstractmethod
    def _delete_location(self, location_id: str) -> None: ...

    @abstractmethod
    def _save_location_group(self, group: LocationGroup) -> None: ...

    @abstractmethod
    def _get_location_groups(self) -> List[LocationGroup]: ...

    @abstractmethod
    def _delete_location_group(self, group_id: str) -> None: ...

    @abstractmethod
    def _save_water_conditions(self, conditions: WaterConditions) -> None: ...

    @abstractmethod
    def _get_water_conditions(self, location_id: str) -> Optional[WaterConditions]: ...

    @abstractmethod
    def _get_all_water_conditions(self) -> Dict[str, WaterConditions]: ...

    @abstractmethod
    def _save_data(self, data: WaterData) -> None: ...

    @abstractmethod
    def _get_latest_data(self) -> WaterData: ...
