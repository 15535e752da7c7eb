"""Context classification: is a photo session daily life, an outing, or travel?

Cluster locations are compared against base places (home, work, school or
custom) through nested H3 cells, and ordered rules label the whole session.
Without any base place a distance/duration heuristic is used instead.
"""

import datetime
import enum
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from cells import CellIndex, DistanceLevel, compare_places, haversine_m
from domain import BasePlace, PlaceCluster
from patterns import VisitRecord
from thresholds import DEFAULT_THRESHOLDS, Thresholds
from timeutils import day_span

logger = logging.getLogger(__name__)


class TravelContext(str, enum.Enum):
    DAILY = "daily"
    OUTING = "outing"
    TRAVEL = "travel"
    MIXED = "mixed"


@dataclass(frozen=True)
class ClusterSummary:
    """What the classifier needs to know about one place cluster."""

    cluster_id: int
    cells: Optional[CellIndex]
    latitude: float
    longitude: float
    photo_count: int
    start: datetime.datetime
    end: datetime.datetime

    @classmethod
    def from_cluster(cls, cluster: PlaceCluster) -> "ClusterSummary":
        return cls(
            cluster_id=cluster.id,
            cells=cluster.cells,
            latitude=cluster.latitude,
            longitude=cluster.longitude,
            photo_count=cluster.photo_count,
            start=cluster.start,
            end=cluster.end,
        )

    def distance_level(self, base: BasePlace) -> DistanceLevel:
        return compare_places(
            self.latitude, self.longitude, self.cells,
            base.latitude, base.longitude, base.cells,
        )


@dataclass(frozen=True)
class MixedSplit:
    """Which clusters look like daily life and which look like travel."""

    near_cluster_ids: list[int] = field(default_factory=list)
    far_cluster_ids: list[int] = field(default_factory=list)
    near_photo_count: int = 0
    far_photo_count: int = 0


@dataclass(frozen=True)
class ClassificationResult:
    context: TravelContext
    confidence: float
    distance_level: DistanceLevel
    reasoning: str
    mixed: Optional[MixedSplit] = None


def select_base_places(registered: Iterable[BasePlace], learned: Iterable[VisitRecord] = ()) -> list[BasePlace]:
    """Registered places win; confirmed, non-ignored learned places stand in otherwise."""
    base = list(registered)
    if base:
        return base
    candidates = [r for r in learned if r.is_base_candidate]
    if candidates:
        logger.info("No registered places, using %d confirmed learned places", len(candidates))
    return [r.as_base_place() for r in candidates]


def total_distance_m(summaries: Sequence[ClusterSummary]) -> float:
    """Sum of great-circle distances between consecutive clusters."""
    return sum(
        haversine_m(a.latitude, a.longitude, b.latitude, b.longitude)
        for a, b in zip(summaries, summaries[1:])
    )


class ContextClassifier:
    def __init__(self, thresholds: Thresholds = DEFAULT_THRESHOLDS):
        self.thresholds = thresholds

    def classify_clusters(self, clusters: Sequence[PlaceCluster], base_places: Sequence[BasePlace]) -> ClassificationResult:
        return self.classify([ClusterSummary.from_cluster(c) for c in clusters], base_places)

    def classify(self, summaries: Sequence[ClusterSummary], base_places: Sequence[BasePlace]) -> ClassificationResult:
        logger.info("Classifying %d clusters against %d base places", len(summaries), len(base_places))

        if not summaries:
            return ClassificationResult(
                context=TravelContext.DAILY,
                confidence=0.5,
                distance_level=DistanceLevel.SAME_NEIGHBORHOOD,
                reasoning="No places to analyse",
            )

        if not base_places:
            return self._classify_without_base(summaries)

        levels = [
            (s, min(s.distance_level(base) for base in base_places))
            for s in summaries
        ]
        for s, level in levels:
            logger.debug("Cluster %d: %s", s.cluster_id, level.description)

        days = self._day_span(summaries)
        return self._apply_rules(levels, days)

    def _day_span(self, summaries: Sequence[ClusterSummary]) -> int:
        timestamps = [t for s in summaries for t in (s.start, s.end)]
        return day_span(timestamps, self.thresholds.timezone)

    def _apply_rules(self, levels: list[tuple[ClusterSummary, DistanceLevel]], days: int) -> ClassificationResult:
        t = self.thresholds
        near = [s for s, level in levels if level <= DistanceLevel.SAME_NEIGHBORHOOD]
        far = [s for s, level in levels if level >= DistanceLevel.DIFFERENT_PROVINCE]
        total = len(levels)
        near_ratio = len(near) / total
        far_ratio = len(far) / total
        city_ratio = sum(1 for _, level in levels if level <= DistanceLevel.SAME_CITY) / total

        logger.info(
            "Near: %d, far: %d, total: %d, day span: %d",
            len(near), len(far), total, days,
        )

        if near and far:
            logger.info("-> mixed (daily and travel places together)")
            return ClassificationResult(
                context=TravelContext.MIXED,
                confidence=0.8,
                distance_level=DistanceLevel.DIFFERENT_PROVINCE,
                reasoning="Includes both everyday places and far-away places",
                mixed=MixedSplit(
                    near_cluster_ids=[s.cluster_id for s in near],
                    far_cluster_ids=[s.cluster_id for s in far],
                    near_photo_count=sum(s.photo_count for s in near),
                    far_photo_count=sum(s.photo_count for s in far),
                ),
            )

        if near_ratio >= t.near_ratio and days <= 1:
            logger.info("-> daily")
            return ClassificationResult(
                context=TravelContext.DAILY,
                confidence=min(0.95, near_ratio),
                distance_level=DistanceLevel.SAME_NEIGHBORHOOD,
                reasoning="Taken near your registered places within a single day",
            )

        if city_ratio >= t.city_ratio and days <= 1:
            logger.info("-> outing")
            return ClassificationResult(
                context=TravelContext.OUTING,
                confidence=min(0.9, city_ratio),
                distance_level=DistanceLevel.SAME_CITY,
                reasoning="A same-day outing within your area",
            )

        if far_ratio >= t.far_ratio or days >= t.travel_min_days or far:
            logger.info("-> travel")
            return ClassificationResult(
                context=TravelContext.TRAVEL,
                confidence=min(0.95, max(far_ratio, days / 5.0)),
                distance_level=DistanceLevel.DIFFERENT_PROVINCE,
                reasoning=(
                    f"A {days}-day trip" if days >= t.travel_min_days
                    else "A trip to places far from home"
                ),
            )

        logger.info("-> outing (default)")
        return ClassificationResult(
            context=TravelContext.OUTING,
            confidence=0.7,
            distance_level=DistanceLevel.SAME_CITY,
            reasoning="A regular outing",
        )

    def _classify_without_base(self, summaries: Sequence[ClusterSummary]) -> ClassificationResult:
        t = self.thresholds
        days = self._day_span(summaries)
        distance = total_distance_m(summaries)
        provinces = {s.cells.province for s in summaries if s.cells is not None}

        logger.info(
            "No base places: day span %d, distance %.1f km, %d provinces",
            days, distance / 1000, len(provinces),
        )

        if len(provinces) >= 2 or days >= t.travel_min_days or distance >= t.fallback_travel_distance_m:
            return ClassificationResult(
                context=TravelContext.TRAVEL,
                confidence=0.8,
                distance_level=(
                    DistanceLevel.DIFFERENT_PROVINCE if distance >= t.fallback_travel_distance_m
                    else DistanceLevel.SAME_PROVINCE
                ),
                reasoning="Register home or work for a more accurate classification",
            )

        if days == 1 and distance < t.fallback_outing_distance_m:
            return ClassificationResult(
                context=TravelContext.OUTING,
                confidence=0.7,
                distance_level=DistanceLevel.SAME_CITY,
                reasoning="Looks like a same-day outing",
            )

        return ClassificationResult(
            context=TravelContext.OUTING,
            confidence=0.6,
            distance_level=DistanceLevel.SAME_CITY,
            reasoning="Register home or work for a more accurate classification",
        )
