"""Photo analysis pipeline: clustering, place hints, context classification, learning.

Processing pipeline (runs once per photo selection, no I/O of its own):
1. Sort geotagged photos chronologically and cluster them into place visits
2. Ask the optional reverse-geocoding collaborator for a name/address per cluster
3. Label clusters sitting on a registered place with that place's name
4. Guess each cluster's activity and a theme for the session
5. Classify the session as daily / outing / travel / mixed
6. (separately) record each cluster as a visit to its learned place
"""

import dataclasses
import datetime
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence

from activities import infer_activity, infer_registered_activity, session_theme
from cells import haversine_m
from classification import (
    ClassificationResult,
    ClusterSummary,
    ContextClassifier,
    select_base_places,
    total_distance_m,
)
from clustering import cluster_points
from domain import BasePlace, GeocodeHint, PhotoPoint, PlaceCluster
from patterns import VisitRecord
from thresholds import DEFAULT_THRESHOLDS, Thresholds
from timeutils import to_local

logger = logging.getLogger(__name__)

Geocoder = Callable[[float, float], Optional[GeocodeHint]]
ProgressCallback = Callable[[float, str], None]


@dataclass(frozen=True)
class AnalysisResult:
    clusters: list[PlaceCluster]
    classification: ClassificationResult
    photo_count: int
    start: Optional[datetime.datetime] = None
    end: Optional[datetime.datetime] = None
    total_distance_km: float = 0.0
    theme: Optional[str] = None


def _report(progress: Optional[ProgressCallback], fraction: float, step: str) -> None:
    logger.debug("Progress %.0f%%: %s", fraction * 100, step)
    if progress is not None:
        progress(fraction, step)


# ---------------------------------------------------------------------------
# Step 2: Reverse-geocoding hints
# ---------------------------------------------------------------------------

def apply_geocoding(clusters: Sequence[PlaceCluster], geocoder: Geocoder) -> list[PlaceCluster]:
    """Attach collaborator-supplied names; a failed lookup leaves the cluster unnamed."""
    result = []
    for cluster in clusters:
        try:
            hint = geocoder(cluster.latitude, cluster.longitude)
        except Exception as e:
            logger.warning("Reverse geocode failed for cluster %d: %s", cluster.id, e)
            hint = None
        if hint is not None:
            cluster = dataclasses.replace(
                cluster,
                label=hint.name or cluster.label,
                address=hint.address or cluster.address,
                place_type=hint.place_type or cluster.place_type,
            )
        result.append(cluster)
    return result


# ---------------------------------------------------------------------------
# Step 3: Registered place matching
# ---------------------------------------------------------------------------

def find_matching_place(
    cluster: PlaceCluster,
    places: Iterable[BasePlace],
    radius_m: float = DEFAULT_THRESHOLDS.place_match_radius_m,
) -> Optional[BasePlace]:
    """The first named place within ``radius_m`` of the cluster centroid."""
    for place in places:
        if not place.name:
            continue
        if haversine_m(cluster.latitude, cluster.longitude, place.latitude, place.longitude) <= radius_m:
            return place
    return None


def label_registered_places(
    clusters: Sequence[PlaceCluster],
    places: Sequence[BasePlace],
    radius_m: float = DEFAULT_THRESHOLDS.place_match_radius_m,
) -> list[PlaceCluster]:
    result = []
    for cluster in clusters:
        match = find_matching_place(cluster, places, radius_m)
        if match is not None:
            logger.info("Cluster %d matches registered place %r", cluster.id, match.name)
            cluster = dataclasses.replace(cluster, label=match.name)
        result.append(cluster)
    return result


# ---------------------------------------------------------------------------
# Step 4: Activity labelling
# ---------------------------------------------------------------------------

def label_activities(
    clusters: Sequence[PlaceCluster],
    places: Sequence[BasePlace] = (),
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> list[PlaceCluster]:
    result = []
    for cluster in clusters:
        local = to_local(cluster.start, thresholds.timezone)
        match = find_matching_place(cluster, places, thresholds.place_match_radius_m)
        if match is not None:
            activity = infer_registered_activity(match.role, local)
        else:
            activity = infer_activity(cluster.place_type, local)
        logger.debug("Cluster %d: activity %s", cluster.id, activity.value)
        result.append(dataclasses.replace(cluster, activity=activity))
    return result


# ---------------------------------------------------------------------------
# Full pipeline
# ---------------------------------------------------------------------------

def analyze_points(
    points: Sequence[PhotoPoint],
    base_places: Sequence[BasePlace] = (),
    learned: Iterable[VisitRecord] = (),
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
    geocoder: Optional[Geocoder] = None,
    progress: Optional[ProgressCallback] = None,
) -> AnalysisResult:
    """Cluster a photo selection and label the session.

    ``base_places`` are the user's registered places; confirmed ``learned``
    records are only consulted when there are none.
    """
    _report(progress, 0.1, "Clustering photos")
    ordered = sorted(points, key=lambda p: p.timestamp)
    clusters = cluster_points(ordered, thresholds)
    logger.info("Analysis: %d photos -> %d clusters", len(ordered), len(clusters))

    if geocoder is not None and clusters:
        _report(progress, 0.4, "Looking up place names")
        clusters = apply_geocoding(clusters, geocoder)

    if base_places:
        _report(progress, 0.6, "Matching registered places")
        clusters = label_registered_places(clusters, base_places, thresholds.place_match_radius_m)

    _report(progress, 0.7, "Inferring activities")
    clusters = label_activities(clusters, base_places, thresholds)
    theme = session_theme(c.activity for c in clusters)

    _report(progress, 0.8, "Classifying context")
    summaries = [ClusterSummary.from_cluster(c) for c in clusters]
    classifier = ContextClassifier(thresholds)
    classification = classifier.classify(summaries, select_base_places(base_places, learned))
    logger.info(
        "Context: %s (confidence %.2f) - %s",
        classification.context.value, classification.confidence, classification.reasoning,
    )

    _report(progress, 1.0, "Done")
    return AnalysisResult(
        clusters=clusters,
        classification=classification,
        photo_count=len(ordered),
        start=ordered[0].timestamp if ordered else None,
        end=ordered[-1].timestamp if ordered else None,
        total_distance_km=total_distance_m(summaries) / 1000,
        theme=theme,
    )


# ---------------------------------------------------------------------------
# Step 6: Visit learning
# ---------------------------------------------------------------------------

def learn_visits(
    clusters: Iterable[PlaceCluster],
    records: dict[str, VisitRecord],
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
    now: Optional[datetime.datetime] = None,
) -> list[VisitRecord]:
    """Record each cluster as a visit to the learned place in its building cell.

    ``records`` maps building cell ids to records and is updated in place.
    Returns the records created for previously unseen cells.
    """
    created = []
    for cluster in clusters:
        cells = cluster.cells
        if cells is None:
            logger.warning("No cell index for cluster %d, skipping learning", cluster.id)
            continue

        record = records.get(cells.building)
        if record is None:
            record = VisitRecord(
                latitude=cluster.latitude,
                longitude=cluster.longitude,
                cells=cells,
                display_name=cluster.label,
                thresholds=thresholds,
            )
            records[cells.building] = record
            created.append(record)
            logger.info("Learning new place %s", cells.building)

        record.record_visit(cluster.start, now=now)
        logger.info(
            "Learned place %s: %d visit days, suggestion=%s",
            record.location_summary, record.total_visit_days,
            record.suggested_role.value if record.suggested_role else None,
        )
    return created
