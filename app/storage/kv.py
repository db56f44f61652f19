"""
Flat key-value store for platforms without a relational database.

All state lives under four keys, each holding one JSON document:

- ``waterData``: latest USGS reading
- ``locations``: list of locations
- ``locationGroups``: list of groups
- ``waterConditions``: map of location id to latest snapshot

Documents use camelCase field names. Durability is best-effort: each write
replaces a whole document, and a crash between two document writes can leave
them out of step.
"""

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

from app.storage.base import WaterStore
from tidewatch.data.observations import WaterData
from tidewatch.exceptions import NoDataAvailableError, StorageError
from tidewatch.schemas import Location, LocationGroup, WaterConditions

logger = logging.getLogger(__name__)

WATER_DATA_KEY = "waterData"
LOCATIONS_KEY = "locations"
LOCATION_GROUPS_KEY = "locationGroups"
WATER_CONDITIONS_KEY = "waterConditions"

KEYS = (WATER_DATA_KEY, LOCATIONS_KEY, LOCATION_GROUPS_KEY, WATER_CONDITIONS_KEY)


# ---------------------------------------------------------------------------
# Blob stores
# ---------------------------------------------------------------------------

class BlobStore(ABC):
    """String values by key."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]: ...

    @abstractmethod
    def set(self, key: str, value: str) -> None: ...

    @abstractmethod
    def delete(self, key: str) -> None: ...

    def close(self) -> None:
        pass


class FileBlobStore(BlobStore):
    """One ``<key>.json`` file per key in a directory."""

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        # Write-then-rename so readers never see a half-written file
        fd, tmp = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp, self._path(key))
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class RedisBlobStore(BlobStore):
    """One Redis string per key under a prefix."""

    def __init__(self, client: Any, prefix: str = "tidewatch:"):
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "tidewatch:") -> "RedisBlobStore":
        import redis

        return cls(redis.Redis.from_url(url, decode_responses=True), prefix=prefix)

    def get(self, key: str) -> Optional[str]:
        value = self.client.get(f"{self.prefix}{key}")
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    def set(self, key: str, value: str) -> None:
        self.client.set(f"{self.prefix}{key}", value)

    def delete(self, key: str) -> None:
        self.client.delete(f"{self.prefix}{key}")

    def close(self) -> None:
        self.client.close()


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class KeyValueWaterStore(WaterStore):
    """WaterStore over a BlobStore."""

    backend_name = "kv"

    def __init__(self, blobs: BlobStore):
        self.blobs = blobs
        # Serializes read-modify-write cycles within this process
        self._lock = threading.RLock()

    def close(self) -> None:
        self.blobs.close()

    def _load(self, key: str, default: Any) -> Any:
        raw = self.blobs.get(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupt document under {key!r}: {e}") from e

    def _dump(self, key: str, doc: Any) -> None:
        self.blobs.set(key, json.dumps(doc))

    # ------------------------------------------------------------------
    # Locations
    # ------------------------------------------------------------------

    def _load_locations(self) -> List[Location]:
        return [Location.model_validate(d) for d in self._load(LOCATIONS_KEY, [])]

    def _dump_locations(self, locations: List[Location]) -> None:
        self._dump(
            LOCATIONS_KEY,
            [loc.model_dump(mode="json", by_alias=True) for loc in locations],
        )

    def _save_location(self, location: Location) -> None:
        with self._lock:
            locations = self._load_locations()
            for i, existing in enumerate(locations):
                if existing.id == location.id:
                    locations[i] = location
                    break
            else:
                locations.append(location)
            self._dump_locations(locations)

    def _get_locations(self) -> List[Location]:
        with self._lock:
            return sorted(self._load_locations(), key=lambda loc: loc.name)

    def _get_location(self, location_id: str) -> Optional[Location]:
        with self._lock:
            for location in self._load_locations():
                if location.id == location_id:
                    return location
            return None

    def _delete_location(self, location_id: str) -> None:
        with self._lock:
            groups = self._load_groups()
            changed = False
            for group in groups:
                if location_id in group.location_ids:
                    group.location_ids = [i for i in group.location_ids if i != location_id]
                    changed = True
            if changed:
                self._dump_groups(groups)

            conditions = self._load(WATER_CONDITIONS_KEY, {})
            if conditions.pop(location_id, None) is not None:
                self._dump(WATER_CONDITIONS_KEY, conditions)

            locations = self._load_locations()
            self._dump_locations([loc for loc in locations if loc.id != location_id])

    # ------------------------------------------------------------------
    # Location groups
    # ------------------------------------------------------------------

    def _load_groups(self) -> List[LocationGroup]:
        return [LocationGroup.model_validate(d) for d in self._load(LOCATION_GROUPS_KEY, [])]

    def _dump_groups(self, groups: List[LocationGroup]) -> None:
        self._dump(
            LOCATION_GROUPS_KEY,
            [g.model_dump(mode="json", by_alias=True) for g in groups],
        )

    def _save_location_group(self, group: LocationGroup) -> None:
        group = group.model_copy(
            update={"location_ids": list(dict.fromkeys(group.location_ids))}
        )
        with self._lock:
            groups = self._load_groups()
            for i, existing in enumerate(groups):
                if existing.id == group.id:
                    groups[i] = group
                    break
            else:
                groups.append(group)
            self._dump_groups(groups)

    def _get_location_groups(self) -> List[LocationGroup]:
        with self._lock:
            return sorted(self._load_groups(), key=lambda g: g.created_at)

    def _delete_location_group(self, group_id: str) -> None:
        with self._lock:
            self._dump_groups([g for g in self._load_groups() if g.id != group_id])

            locations = self._load_locations()
            changed = False
            for location in locations:
                if group_id in location.user_groups:
                    location.user_groups = [g for g in location.user_groups if g != group_id]
                    changed = True
            if changed:
                self._dump_locations(locations)

    # ------------------------------------------------------------------
    # Water conditions
    # ------------------------------------------------------------------

    def _save_water_conditions(self, conditions: WaterConditions) -> None:
        with self._lock:
            stored = self._load(WATER_CONDITIONS_KEY, {})
            stored[conditions.location_id] = conditions.model_dump(mode="json", by_alias=True)
            self._dump(WATER_CONDITIONS_KEY, stored)

    def _get_water_conditions(self, location_id: str) -> Optional[WaterConditions]:
        with self._lock:
            doc = self._load(WATER_CONDITIONS_KEY, {}).get(location_id)
            return WaterConditions.model_validate(doc) if doc is not None else None

    def _get_all_water_conditions(self) -> Dict[str, WaterConditions]:
        with self._lock:
            return {
                location_id: WaterConditions.model_validate(doc)
                for location_id, doc in self._load(WATER_CONDITIONS_KEY, {}).items()
            }

    # ------------------------------------------------------------------
    # USGS water data
    # ------------------------------------------------------------------

    def _save_data(self, data: WaterData) -> None:
        with self._lock:
            self._dump(WATER_DATA_KEY, data.to_dict())

    def _get_latest_data(self) -> WaterData:
        with self._lock:
            doc = self._load(WATER_DATA_KEY, None)
        if doc is None:
            raise NoDataAvailableError()
        return WaterData.from_dict(doc)
