"""Geospatial cell indexing: H3 cells at four nested resolutions.

Each coordinate is indexed once into building / neighbourhood / city / province
cells. Coarser cells are derived as parents of the building cell rather than
indexed independently, so a match at a finer resolution always implies a match
at every coarser one. Comparisons are pure string equality and need no network.

Levels follow cell boundaries, not radii. Neighbourhood cells have edges of
about 1.2 km, so a place 1.5 km from home can already compare as SAME_CITY
while one 2 km away on the same side of a boundary is SAME_NEIGHBORHOOD.
"""

import enum
import logging
import math
from dataclasses import dataclass
from typing import Optional

import h3

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6_371_000

# H3 resolutions: ~0.1 km², ~5 km², ~250 km², ~1800 km²
BUILDING_RES = 9
NEIGHBORHOOD_RES = 7
CITY_RES = 5
PROVINCE_RES = 4

# Straight-line ladder used when either side has no cell index
FALLBACK_LADDER_M = (500.0, 5_000.0, 30_000.0, 100_000.0)


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Distance in metres between two WGS-84 points."""
    rlat1, rlat2 = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = min(1.0, math.sin(dlat / 2) ** 2 + math.cos(rlat1) * math.cos(rlat2) * math.sin(dlon / 2) ** 2)
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


class DistanceLevel(enum.IntEnum):
    """How close two places are, finest matching resolution first."""

    SAME_BUILDING = 0
    SAME_NEIGHBORHOOD = 1
    SAME_CITY = 2
    SAME_PROVINCE = 3
    DIFFERENT_PROVINCE = 4

    @property
    def description(self) -> str:
        return self.name.replace("_", " ").lower()


@dataclass(frozen=True)
class CellIndex:
    building: str
    neighborhood: str
    city: str
    province: str

    def as_tuple(self) -> tuple[str, str, str, str]:
        return (self.building, self.neighborhood, self.city, self.province)

    @classmethod
    def from_cells(
        cls,
        building: Optional[str],
        neighborhood: Optional[str],
        city: Optional[str],
        province: Optional[str],
    ) -> Optional["CellIndex"]:
        """Rebuild an index from stored cell ids; None if any of them is missing."""
        if not (building and neighborhood and city and province):
            return None
        return cls(building, neighborhood, city, province)


def _valid_coordinate(lat: float, lon: float) -> bool:
    return (
        math.isfinite(lat) and math.isfinite(lon)
        and -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0
    )


def index_coordinate(lat: float, lon: float) -> Optional[CellIndex]:
    """Index a coordinate at all four resolutions.

    Returns None for coordinates outside the WGS-84 domain; callers then fall
    back to straight-line comparison.
    """
    if not _valid_coordinate(lat, lon):
        logger.warning("Cannot index invalid coordinate (%s, %s)", lat, lon)
        return None
    building = h3.latlng_to_cell(lat, lon, BUILDING_RES)
    return CellIndex(
        building=building,
        neighborhood=h3.cell_to_parent(building, NEIGHBORHOOD_RES),
        city=h3.cell_to_parent(building, CITY_RES),
        province=h3.cell_to_parent(building, PROVINCE_RES),
    )


def distance_level(a: Optional[CellIndex], b: Optional[CellIndex]) -> Optional[DistanceLevel]:
    """Finest resolution at which two indices match, or None if either is missing."""
    if a is None or b is None:
        return None
    if a.building == b.building:
        return DistanceLevel.SAME_BUILDING
    if a.neighborhood == b.neighborhood:
        return DistanceLevel.SAME_NEIGHBORHOOD
    if a.city == b.city:
        return DistanceLevel.SAME_CITY
    if a.province == b.province:
        return DistanceLevel.SAME_PROVINCE
    return DistanceLevel.DIFFERENT_PROVINCE


def fallback_distance_level(lat1: float, lon1: float, lat2: float, lon2: float) -> DistanceLevel:
    """Bucket the straight-line distance between two coordinates."""
    d = haversine_m(lat1, lon1, lat2, lon2)
    for level, limit in zip(DistanceLevel, FALLBACK_LADDER_M):
        if d < limit:
            return level
    return DistanceLevel.DIFFERENT_PROVINCE


def compare_places(
    lat1: float, lon1: float, cells1: Optional[CellIndex],
    lat2: float, lon2: float, cells2: Optional[CellIndex],
) -> DistanceLevel:
    """Cell-based distance level, degrading to the distance ladder. Never fails."""
    level = distance_level(cells1, cells2)
    if level is None:
        level = fallback_distance_level(lat1, lon1, lat2, lon2)
    return level
