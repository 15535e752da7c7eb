"""Visit-pattern learning: infer home and work places from when they are visited.

Each distinct place (keyed by its building-resolution cell) keeps a rolling log
of visit timestamps. After every visit the log is trimmed to the retention
window and the counters are recomputed over the inference window:

- night visit-days: distinct days with a visit between 20:00 and 05:00
- weekday-daytime visit-days: distinct Mon-Fri days with a visit 09:00-18:00
- observed days: days since the first visit, capped at the window, at least 1

A place is suggested as home when night-days / observed-days exceeds 0.30 over
at least 7 observed days, otherwise as work when weekday-daytime-days /
observed-days exceeds 0.25 over at least 14 observed days. Home and work share
the 42-day window and differ only by threshold.

A VisitRecord is mutated in place; callers must ensure one writer per place.
"""

import datetime
import json
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from cells import CellIndex, index_coordinate
from domain import BasePlace, PlaceRole
from thresholds import DEFAULT_THRESHOLDS, Thresholds
from timeutils import as_aware, days_between, to_local

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Visit log serialization (JSON array of ISO-8601 timestamps)
# ---------------------------------------------------------------------------

def _parse_entry(value) -> datetime.datetime:
    if isinstance(value, str):
        return datetime.datetime.fromisoformat(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.datetime.fromtimestamp(value, tz=datetime.timezone.utc)
    raise TypeError(f"unexpected visit log entry {value!r}")


def parse_visit_log(raw: Optional[str]) -> list[datetime.datetime]:
    """Decode a stored visit log. Anything unreadable is treated as an empty log.

    Entries are ISO-8601 strings; bare epoch seconds are read as UTC.
    """
    if not raw:
        return []
    try:
        values = json.loads(raw)
        if not isinstance(values, list):
            raise ValueError("visit log is not a list")
        return [_parse_entry(v) for v in values]
    except (ValueError, TypeError, OverflowError, OSError) as e:
        logger.warning("Discarding corrupted visit log (%s)", e)
        return []


def dump_visit_log(visits: Iterable[datetime.datetime]) -> str:
    return json.dumps([v.isoformat() for v in visits])


# ---------------------------------------------------------------------------
# Visit record
# ---------------------------------------------------------------------------

@dataclass
class VisitRecord:
    """Visit statistics and role suggestion for one learned place."""

    latitude: float
    longitude: float
    cells: Optional[CellIndex] = None
    display_name: Optional[str] = None
    visit_log: list[datetime.datetime] = field(default_factory=list)
    total_visit_days: int = 0
    night_visit_days: int = 0
    weekday_daytime_visit_days: int = 0
    window_total_days: int = 0
    first_visit: Optional[datetime.datetime] = None
    last_visit: Optional[datetime.datetime] = None
    suggested_role: Optional[PlaceRole] = None
    confidence: float = 0.0
    is_confirmed: bool = False
    is_ignored: bool = False
    thresholds: Thresholds = field(default=DEFAULT_THRESHOLDS, repr=False, compare=False)

    @classmethod
    def at(cls, latitude: float, longitude: float, thresholds: Thresholds = DEFAULT_THRESHOLDS) -> "VisitRecord":
        return cls(latitude, longitude, cells=index_coordinate(latitude, longitude), thresholds=thresholds)

    @property
    def cell_id(self) -> Optional[str]:
        return self.cells.building if self.cells else None

    def matches(self, cell_id: str) -> bool:
        return self.cell_id == cell_id

    # -- ratios ---------------------------------------------------------------

    @property
    def night_visit_proportion(self) -> float:
        if self.window_total_days <= 0:
            return 0.0
        return self.night_visit_days / self.window_total_days

    @property
    def weekday_daytime_proportion(self) -> float:
        if self.window_total_days <= 0:
            return 0.0
        return self.weekday_daytime_visit_days / self.window_total_days

    @property
    def can_suggest_as_home(self) -> bool:
        t = self.thresholds
        return self.night_visit_proportion > t.home_night_ratio and self.window_total_days >= t.home_min_days

    @property
    def can_suggest_as_work(self) -> bool:
        t = self.thresholds
        return self.weekday_daytime_proportion > t.work_daytime_ratio and self.window_total_days >= t.work_min_days

    @property
    def location_summary(self) -> str:
        return self.display_name or f"({self.latitude:.4f}, {self.longitude:.4f})"

    # -- updates --------------------------------------------------------------

    def record_visit(self, at: datetime.datetime, now: Optional[datetime.datetime] = None) -> None:
        """Log a visit, trim the log, recompute counters and the role suggestion.

        ``now`` is the reference clock for the retention and inference windows;
        it defaults to the most recent logged visit.
        """
        tz = self.thresholds.timezone
        at = as_aware(at, tz)
        log = [as_aware(v, tz) for v in self.visit_log]

        if not log or self.first_visit is None:
            self.first_visit = at
        else:
            self.first_visit = min(as_aware(self.first_visit, tz), at)
        self.last_visit = at if self.last_visit is None else max(as_aware(self.last_visit, tz), at)

        visits = log + [at]
        now = max(visits) if now is None else as_aware(now, tz)

        cutoff = now - datetime.timedelta(days=self.thresholds.log_retention_days)
        self.visit_log = sorted(v for v in visits if v > cutoff)

        self._recompute_window(now)
        self._update_suggestion()

    def _recompute_window(self, now: datetime.datetime) -> None:
        t = self.thresholds
        tz = t.timezone
        window_days = t.inference_window_days
        window_start = now - datetime.timedelta(days=window_days)
        in_window = [to_local(v, tz) for v in self.visit_log if window_start < v <= now]

        since_first = days_between(self.first_visit, now, tz) if self.first_visit else 0
        self.window_total_days = min(window_days, max(1, since_first + 1))

        days = {v.date() for v in in_window}
        night_days = {v.date() for v in in_window if self._is_night(v)}
        daytime_days = {v.date() for v in in_window if self._is_weekday_daytime(v)}

        self.total_visit_days = min(len(days), self.window_total_days)
        self.night_visit_days = min(len(night_days), self.window_total_days)
        self.weekday_daytime_visit_days = min(len(daytime_days), self.window_total_days)

    def _is_night(self, local: datetime.datetime) -> bool:
        t = self.thresholds
        return local.hour >= t.night_start_hour or local.hour < t.night_end_hour

    def _is_weekday_daytime(self, local: datetime.datetime) -> bool:
        t = self.thresholds
        return local.weekday() < 5 and t.daytime_start_hour <= local.hour < t.daytime_end_hour

    def _update_suggestion(self) -> None:
        t = self.thresholds
        if self.can_suggest_as_home:
            self.suggested_role = PlaceRole.HOME
            self.confidence = min(1.0, self.night_visit_proportion / t.home_full_confidence_ratio)
        elif self.can_suggest_as_work:
            self.suggested_role = PlaceRole.WORK
            self.confidence = min(1.0, self.weekday_daytime_proportion / t.work_full_confidence_ratio)
        else:
            self.suggested_role = None
            self.confidence = 0.0

    def confirm(self) -> None:
        self.is_confirmed = True
        self.is_ignored = False

    def ignore(self) -> None:
        self.is_ignored = True

    @property
    def is_base_candidate(self) -> bool:
        return self.is_confirmed and not self.is_ignored

    def as_base_place(self) -> BasePlace:
        return BasePlace(
            latitude=self.latitude,
            longitude=self.longitude,
            role=self.suggested_role or PlaceRole.CUSTOM,
            cells=self.cells,
            name=self.display_name,
        )

