"""Value types shared by the clustering, learning and classification modules."""

import datetime
import enum
from dataclasses import dataclass
from typing import Any, Hashable, Optional

from cells import CellIndex, index_coordinate


@dataclass(frozen=True)
class PhotoPoint:
    """A geotagged photo: where and when it was taken, plus an opaque reference."""

    latitude: float
    longitude: float
    timestamp: datetime.datetime
    photo_id: Hashable = None


@dataclass(frozen=True)
class PlaceCluster:
    """One dwell at one place.

    The centroid is the per-axis median of member coordinates (or a
    count-weighted average once clusters from different segments are merged).
    ``label``, ``address`` and ``place_type`` are optional hints supplied by
    collaborators; the core never fills them in on its own. ``activity`` is set
    by the activity-labelling stage of the pipeline.
    """

    id: int
    latitude: float
    longitude: float
    start: datetime.datetime
    end: datetime.datetime
    points: tuple[PhotoPoint, ...]
    label: Optional[str] = None
    address: Optional[str] = None
    place_type: Optional[str] = None
    activity: Optional["ActivityType"] = None

    @property
    def photo_count(self) -> int:
        return len(self.points)

    @property
    def photo_ids(self) -> list[Any]:
        return [p.photo_id for p in self.points]

    @property
    def cells(self) -> Optional[CellIndex]:
        return index_coordinate(self.latitude, self.longitude)


class PlaceRole(str, enum.Enum):
    HOME = "home"
    WORK = "work"
    SCHOOL = "school"
    CUSTOM = "custom"


@dataclass(frozen=True)
class BasePlace:
    """A reference place the classifier measures "near" and "far" from."""

    latitude: float
    longitude: float
    role: PlaceRole
    cells: Optional[CellIndex] = None
    name: Optional[str] = None

    @classmethod
    def at(cls, latitude: float, longitude: float, role: PlaceRole = PlaceRole.HOME,
           name: Optional[str] = None) -> "BasePlace":
        return cls(latitude, longitude, role, index_coordinate(latitude, longitude), name)


@dataclass(frozen=True)
class GeocodeHint:
    """What a reverse-geocoding collaborator knows about a coordinate."""

    name: Optional[str] = None
    address: Optional[str] = None
    place_type: Optional[str] = None


class ActivityType(str, enum.Enum):
    """What the user was most likely doing at a place."""

    CAFE = "cafe"
    RESTAURANT = "restaurant"
    BEACH = "beach"
    MOUNTAIN = "mountain"
    TOURIST = "tourist"
    SHOPPING = "shopping"
    CULTURE = "culture"
    AIRPORT = "airport"
    NATURE = "nature"
    NIGHTLIFE = "nightlife"
    ACCOMMODATION = "accommodation"
    OTHER = "other"
