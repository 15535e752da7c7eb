"""Spatial-temporal clustering of geotagged photos into place visits.

Pipeline (pure, no I/O):
1. Split the time-ordered stream into segments wherever the idle gap between
   consecutive photos exceeds ``idle_gap_seconds``.
2. Cluster each segment with DBSCAN over great-circle distance. With
   ``min_cluster_points=1`` every photo lands in exactly one cluster.
3. Merge clusters from different segments that sit within ``merge_radius_m``
   of each other (revisits of the same place).
4. Once there are more than ``sparse_filter_after`` clusters, drop those with
   fewer than ``sparse_min_photos`` photos.

The merge in step 3 is a single greedy pass: a chain A-B-C where A matches B
and B matches C, but A does not match C, may not collapse into one cluster.
"""

import itertools
import logging
import statistics
from typing import Iterator, Sequence

import numpy as np
from sklearn.cluster import DBSCAN

from cells import EARTH_RADIUS_M, haversine_m
from domain import PhotoPoint, PlaceCluster
from thresholds import DEFAULT_THRESHOLDS, Thresholds

logger = logging.getLogger(__name__)


class ClusterBuilder:
    """Collects the members of one cluster, then freezes them into a PlaceCluster."""

    def __init__(self, points: Sequence[PhotoPoint] = ()):
        self.points: list[PhotoPoint] = list(points)

    def add(self, point: PhotoPoint) -> None:
        self.points.append(point)

    def build(self, cluster_id: int) -> PlaceCluster:
        if not self.points:
            raise ValueError("cannot build an empty cluster")
        timestamps = [p.timestamp for p in self.points]
        return PlaceCluster(
            id=cluster_id,
            latitude=statistics.median_high(p.latitude for p in self.points),
            longitude=statistics.median_high(p.longitude for p in self.points),
            start=min(timestamps),
            end=max(timestamps),
            points=tuple(self.points),
        )


# ---------------------------------------------------------------------------
# Step 1: Idle-gap segmentation
# ---------------------------------------------------------------------------

def split_by_idle_gap(points: Sequence[PhotoPoint], max_gap_seconds: float) -> list[list[PhotoPoint]]:
    """Split a chronologically sorted stream into maximal runs without long gaps."""
    if not points:
        return []

    segments = []
    current = [points[0]]
    for prev, pt in zip(points, points[1:]):
        if (pt.timestamp - prev.timestamp).total_seconds() > max_gap_seconds:
            segments.append(current)
            current = [pt]
        else:
            current.append(pt)
    segments.append(current)
    return segments


# ---------------------------------------------------------------------------
# Step 2: Density clustering per segment
# ---------------------------------------------------------------------------

def dbscan_segment(segment: Sequence[PhotoPoint], thresholds: Thresholds = DEFAULT_THRESHOLDS) -> list[list[PhotoPoint]]:
    """Group one segment's photos with haversine DBSCAN.

    Groups are returned in order of their first member. Points DBSCAN labels as
    noise (only possible with ``min_cluster_points > 1``) become singletons.
    """
    if not segment:
        return []
    if len(segment) == 1:
        return [list(segment)]

    coords = np.radians([[p.latitude, p.longitude] for p in segment])
    labels = DBSCAN(
        eps=thresholds.cluster_radius_m / EARTH_RADIUS_M,
        min_samples=thresholds.min_cluster_points,
        metric="haversine",
        algorithm="ball_tree",
    ).fit(coords).labels_

    groups: dict = {}
    for i, (point, label) in enumerate(zip(segment, labels)):
        key = f"noise-{i}" if label == -1 else int(label)
        groups.setdefault(key, []).append(point)
    return list(groups.values())


def _segment_clusters(points: Sequence[PhotoPoint], thresholds: Thresholds) -> Iterator[PlaceCluster]:
    ids = itertools.count(1)
    segments = split_by_idle_gap(points, thresholds.idle_gap_seconds)
    logger.info("Clustering %d photos in %d time segments", len(points), len(segments))

    for i, segment in enumerate(segments):
        groups = dbscan_segment(segment, thresholds)
        logger.info("Segment %d: %d photos -> %d clusters", i, len(segment), len(groups))
        for group in groups:
            yield ClusterBuilder(group).build(next(ids))


# ---------------------------------------------------------------------------
# Step 3: Cross-segment merge
# ---------------------------------------------------------------------------

def _absorb(current: PlaceCluster, other: PlaceCluster) -> PlaceCluster:
    total = current.photo_count + other.photo_count
    w1 = current.photo_count / total
    w2 = other.photo_count / total
    return PlaceCluster(
        id=current.id,
        latitude=current.latitude * w1 + other.latitude * w2,
        longitude=current.longitude * w1 + other.longitude * w2,
        start=min(current.start, other.start),
        end=max(current.end, other.end),
        points=current.points + other.points,
        label=current.label or other.label,
        address=current.address or other.address,
        place_type=current.place_type or other.place_type,
        activity=current.activity or other.activity,
    )


def merge_nearby_clusters(clusters: Sequence[PlaceCluster], merge_radius_m: float) -> list[PlaceCluster]:
    """Fold later clusters into the first earlier cluster within ``merge_radius_m``.

    Each cluster is absorbed at most once; the absorbing cluster keeps its id.
    """
    if len(clusters) <= 1:
        return list(clusters)

    merged = []
    used: set[int] = set()
    for i, cluster in enumerate(clusters):
        if i in used:
            continue
        current = cluster
        for j in range(i + 1, len(clusters)):
            if j in used:
                continue
            other = clusters[j]
            d = haversine_m(current.latitude, current.longitude, other.latitude, other.longitude)
            if d < merge_radius_m:
                logger.debug("Merging cluster %d into %d (%.0fm apart)", other.id, current.id, d)
                current = _absorb(current, other)
                used.add(j)
        merged.append(current)
    return merged


# ---------------------------------------------------------------------------
# Step 4: Sparse-cluster filter
# ---------------------------------------------------------------------------

def filter_sparse_clusters(clusters: Sequence[PlaceCluster], thresholds: Thresholds = DEFAULT_THRESHOLDS) -> list[PlaceCluster]:
    if len(clusters) <= thresholds.sparse_filter_after:
        return list(clusters)
    kept = [c for c in clusters if c.photo_count >= thresholds.sparse_min_photos]
    logger.info("Sparse filter: %d -> %d clusters", len(clusters), len(kept))
    return kept


# ---------------------------------------------------------------------------
# Full pipeline
# ---------------------------------------------------------------------------

def build_clusters(points: Sequence[PhotoPoint], thresholds: Thresholds = DEFAULT_THRESHOLDS) -> list[PlaceCluster]:
    """Segment, cluster and merge, without the sparse filter."""
    clusters = list(_segment_clusters(points, thresholds))
    merged = merge_nearby_clusters(clusters, thresholds.merge_radius_m)
    logger.info("Merged %d clusters into %d", len(clusters), len(merged))
    return merged


def cluster_points(points: Sequence[PhotoPoint], thresholds: Thresholds = DEFAULT_THRESHOLDS) -> list[PlaceCluster]:
    """Turn a chronologically sorted photo stream into place clusters."""
    if not points:
        logger.info("No photos to cluster")
        return []
    return filter_sparse_clusters(build_clusters(points, thresholds), thresholds)
