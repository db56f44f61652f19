"""
Geographic region definitions for NDBC stations.

Regions are axis-aligned latitude/longitude boxes checked in list order; the
first box containing a point names its region. Boxes may overlap (the
Northeast and Great Lakes boxes share the band 40-45N, 80-75W) and list
order decides the winner there.

Current regions:
1. Northeast
2. Southeast
3. Gulf Coast
4. West Coast
5. Hawaii
6. Alaska
7. Great Lakes
"""

from dataclasses import dataclass
from typing import List, Optional

OTHER_REGION = "Other"


@dataclass(frozen=True)
class RegionBox:
    """Bounding box for a named region.

    ``lat_max_inclusive``/``lon_max_inclusive`` select between <= and < on
    the upper edge so adjacent boxes can share a border without overlap.
    """

    name: str
    lat_min: float
    lat_max: float
    lon_min: float
    lon_max: float
    lat_max_inclusive: bool = True
    lon_max_inclusive: bool = True

    def contains_point(self, lat: float, lon: float) -> bool:
        if not self.lat_min <= lat:
            return False
        if self.lat_max_inclusive:
            if not lat <= self.lat_max:
                return False
        elif not lat < self.lat_max:
            return False
        if not self.lon_min <= lon:
            return False
        if self.lon_max_inclusive:
            return lon <= self.lon_max
        return lon < self.lon_max


NORTHEAST = RegionBox("Northeast", 35, 45, -80, -65)
SOUTHEAST = RegionBox("Southeast", 25, 35, -85, -75, lat_max_inclusive=False)
GULF_COAST = RegionBox(
    "Gulf Coast", 25, 30, -95, -85, lat_max_inclusive=False, lon_max_inclusive=False
)
WEST_COAST = RegionBox("West Coast", 30, 50, -130, -115)
HAWAII = RegionBox("Hawaii", 18, 23, -160, -154)
ALASKA = RegionBox("Alaska", 50, 60, -170, -130)
GREAT_LAKES = RegionBox("Great Lakes", 40, 50, -90, -75)

# Priority order
REGIONS: List[RegionBox] = [
    NORTHEAST,
    SOUTHEAST,
    GULF_COAST,
    WEST_COAST,
    HAWAII,
    ALASKA,
    GREAT_LAKES,
]

REGION_NAMES: List[str] = [r.name for r in REGIONS] + [OTHER_REGION]


def find_region(lat: float, lon: float, regions: Optional[List[RegionBox]] = None) -> Optional[RegionBox]:
    """Return the first region containing the point, or None."""
    for region in regions or REGIONS:
        if region.contains_point(lat, lon):
            return region
    return None


def classify_region(lat: float, lon: float) -> str:
    """
    Name the region for a coordinate pair.

    Never raises: out-of-range or NaN coordinates classify as "Other".
    """
    region = find_region(lat, lon)
    return region.name if region is not None else OTHER_REGION
