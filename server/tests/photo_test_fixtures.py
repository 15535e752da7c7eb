"""Photo test fixture data simulating one ordinary day in San Francisco.

The day has 21 geotagged photos in 4 time segments:
1. HOME_MORNING (5 photos, 08:00-08:12) - near 37.7615, -122.4240
2. COFFEE (4 photos, 09:00-09:09)        - near 37.7655, -122.4195, ~590m NE
3. OFFICE (8 photos, 10:00-10:35)        - near 37.7738, -122.4128, ~1.1km further N
4. HOME_EVENING (4 photos, 19:00-19:15)  - back home, merges with segment 1

Consecutive segments are separated by idle gaps longer than 30 minutes.
Scatter within each place is under 15m.
"""

import datetime
import math

import h3

from cells import index_coordinate
from classification import ClusterSummary
from domain import PhotoPoint, PlaceCluster

HOME_CENTER = {"latitude": 37.7615, "longitude": -122.4240}
COFFEE_SHOP_CENTER = {"latitude": 37.7655, "longitude": -122.4195}
OFFICE_CENTER = {"latitude": 37.7738, "longitude": -122.4128}

DAY = datetime.datetime(2024, 1, 15, 0, 0, 0)

# 1 degree of latitude in metres
M_PER_DEG_LAT = 111_195.0


def _t(hour, minute=0):
    return DAY + datetime.timedelta(hours=hour, minutes=minute)


def _photos(prefix, center, times, jitter):
    return [
        PhotoPoint(
            latitude=center["latitude"] + dlat,
            longitude=center["longitude"] + dlon,
            timestamp=ts,
            photo_id=f"{prefix}-{i}",
        )
        for i, (ts, (dlat, dlon)) in enumerate(zip(times, jitter))
    ]


HOME_MORNING = _photos(
    "home-am", HOME_CENTER,
    [_t(8, m) for m in (0, 3, 6, 9, 12)],
    [(0.00002, -0.00005), (-0.00004, 0.00002), (0.00003, 0.00006), (-0.00001, -0.00003), (0.00005, 0.00001)],
)

COFFEE = _photos(
    "coffee", COFFEE_SHOP_CENTER,
    [_t(9, m) for m in (0, 3, 6, 9)],
    [(0.00003, 0.00002), (-0.00002, -0.00004), (0.00001, 0.00005), (-0.00006, 0.00001)],
)

OFFICE = _photos(
    "office", OFFICE_CENTER,
    [_t(10, m) for m in (0, 5, 10, 15, 20, 25, 30, 35)],
    [
        (0.00004, -0.00002), (-0.00003, 0.00004), (0.00001, 0.00001), (-0.00005, -0.00006),
        (0.00006, 0.00003), (-0.00002, 0.00005), (0.00002, -0.00004), (-0.00004, -0.00001),
    ],
)

HOME_EVENING = _photos(
    "home-pm", HOME_CENTER,
    [_t(19, m) for m in (0, 5, 10, 15)],
    [(-0.00003, 0.00004), (0.00004, -0.00002), (-0.00001, -0.00005), (0.00002, 0.00003)],
)

PHOTO_DAY = HOME_MORNING + COFFEE + OFFICE + HOME_EVENING


def offset(center, north_m=0.0, east_m=0.0):
    """Coordinate ``north_m`` / ``east_m`` metres away from ``center`` (small offsets)."""
    lat = center["latitude"] + north_m / M_PER_DEG_LAT
    lon = center["longitude"] + east_m / (M_PER_DEG_LAT * math.cos(math.radians(center["latitude"])))
    return lat, lon


def neighborhood_center(lat, lon):
    """Centre of the neighbourhood-resolution cell containing a coordinate."""
    cells = index_coordinate(lat, lon)
    return h3.cell_to_latlng(cells.neighborhood)


def building_cells_in_neighborhood(lat, lon, count):
    """Centres of ``count`` building-resolution cells inside the same neighbourhood cell."""
    cells = index_coordinate(lat, lon)
    children = sorted(h3.cell_to_children(cells.neighborhood, 9))
    return [h3.cell_to_latlng(c) for c in children[:count]]


def make_cluster(cluster_id, lat, lon, count=3, start=None, minutes=10):
    """A hand-built cluster of ``count`` photos stacked on one coordinate."""
    start = start or _t(12)
    points = tuple(
        PhotoPoint(lat, lon, start + datetime.timedelta(minutes=minutes * i / max(1, count - 1)), f"c{cluster_id}-{i}")
        for i in range(count)
    )
    return PlaceCluster(
        id=cluster_id,
        latitude=lat,
        longitude=lon,
        start=points[0].timestamp,
        end=points[-1].timestamp,
        points=points,
    )


def make_summary(cluster_id, lat, lon, start=None, count=3):
    return ClusterSummary.from_cluster(make_cluster(cluster_id, lat, lon, count=count, start=start))
