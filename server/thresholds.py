"""Tuning constants for clustering, visit learning and context classification.

Every radius, window and ratio used by the analysis core lives on a single
frozen ``Thresholds`` value. Components take it at construction time so tests
(and deployments, through the Config table) can vary a threshold without
touching algorithm code.
"""

import dataclasses
from dataclasses import dataclass
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


@dataclass(frozen=True)
class Thresholds:
    # Clustering
    idle_gap_seconds: float = 30 * 60      # split segments on gaps longer than this
    cluster_radius_m: float = 200.0        # DBSCAN neighbourhood radius
    min_cluster_points: int = 1            # DBSCAN min samples
    merge_radius_m: float = 200.0          # cross-segment revisit merge
    sparse_filter_after: int = 3           # filter only when cluster count exceeds this
    sparse_min_photos: int = 2

    # Visit-pattern learning
    home_window_days: int = 28
    work_window_days: int = 42
    log_retention_days: int = 90
    night_start_hour: int = 20
    night_end_hour: int = 5
    daytime_start_hour: int = 9
    daytime_end_hour: int = 18
    home_night_ratio: float = 0.30
    work_daytime_ratio: float = 0.25
    home_min_days: int = 7
    work_min_days: int = 14
    home_full_confidence_ratio: float = 0.6
    work_full_confidence_ratio: float = 0.5

    # Context classification
    near_ratio: float = 0.8
    city_ratio: float = 0.8
    far_ratio: float = 0.5
    travel_min_days: int = 2
    fallback_travel_distance_m: float = 50_000.0
    fallback_outing_distance_m: float = 20_000.0
    place_match_radius_m: float = 100.0

    # IANA zone for calendar arithmetic; None keeps timestamps as given
    timezone: Optional[str] = None

    def __post_init__(self):
        if self.log_retention_days < self.inference_window_days:
            raise ValueError(
                f"log_retention_days={self.log_retention_days} is shorter than "
                f"the {self.inference_window_days}-day inference window"
            )
        if self.timezone:
            try:
                ZoneInfo(self.timezone)
            except (ZoneInfoNotFoundError, ValueError) as e:
                raise ValueError(f"unknown timezone {self.timezone!r}") from e

    @property
    def inference_window_days(self) -> int:
        """The shared window both home and work inference are evaluated over."""
        return max(self.home_window_days, self.work_window_days)


DEFAULT_THRESHOLDS = Thresholds()


def thresholds_as_dict(thresholds: Thresholds) -> dict:
    return dataclasses.asdict(thresholds)
