"""Storage boundary: ORM rows <-> analysis values, and the DB-backed pipeline.

This is the only module that maps role strings to ``PlaceRole``, visit-log
JSON to timestamps and Config rows to ``Thresholds``. DateTime columns hold
naive UTC.
"""

import dataclasses
import datetime
import logging
from typing import Iterable, Optional, Sequence

from sqlalchemy.orm import Session

from cells import CellIndex, index_coordinate
from domain import BasePlace, PhotoPoint, PlaceCluster, PlaceRole
from models import Config, LearnedPlace, UserPlace
from patterns import VisitRecord, dump_visit_log, parse_visit_log
from processing import AnalysisResult, Geocoder, ProgressCallback, analyze_points, learn_visits
from thresholds import DEFAULT_THRESHOLDS, Thresholds
from timeutils import as_aware

logger = logging.getLogger(__name__)

def _role_from_str(raw: Optional[str]) -> Optional[PlaceRole]:
    if not raw:
        return None
    try:
        return PlaceRole(raw)
    except ValueError:
        logger.warning("Unknown place role %r", raw)
        return None

def _to_column(dt: Optional[datetime.datetime], tz_name: Optional[str]) -> Optional[datetime.datetime]:
    if dt is None:
        return None
    return as_aware(dt, tz_name).astimezone(datetime.timezone.utc).replace(tzinfo=None)

def _from_column(dt: Optional[datetime.datetime]) -> Optional[datetime.datetime]:
    if dt is None:
        return None
    return dt.replace(tzinfo=datetime.timezone.utc)

# ---------------------------------------------------------------------------
# Registered places
# ---------------------------------------------------------------------------

def place_to_base(place: UserPlace) -> BasePlace:
    return BasePlace(
        latitude=place.latitude,
        longitude=place.longitude,
        role=_role_from_str(place.role) or PlaceRole.CUSTOM,
        cells=CellIndex.from_cells(
            place.cell_building, place.cell_neighborhood, place.cell_city, place.cell_province,
        ),
        name=place.name,
    )

def load_base_places(db: Session) -> list[BasePlace]:
    return [place_to_base(p) for p in db.query(UserPlace).order_by(UserPlace.id).all()]

def register_place(
    db: Session,
    name: str,
    latitude: float,
    longitude: float,
    role: PlaceRole = PlaceRole.CUSTOM,
    address: Optional[str] = None,
) -> UserPlace:
    """Store a base place together with its precomputed cell index."""
    cells = index_coordinate(latitude, longitude)
    place = UserPlace(
        name=name,
        latitude=latitude,
        longitude=longitude,
        address=address,
        role=role.value,
    )
    if cells is not None:
        place.cell_building = cells.building
        place.cell_neighborhood = cells.neighborhood
        place.cell_city = cells.city
        place.cell_province = cells.province
    db.add(place)
    db.commit()
    db.refresh(place)
    logger.info("Registered %s place %r (id=%d)", role.value, name, place.id)
    return place

def delete_place(db: Session, place_id: int) -> bool:
    place = db.query(UserPlace).filter(UserPlace.id == place_id).first()
    if place is None:
        return False
    db.delete(place)
    db.commit()
    return True

# ---------------------------------------------------------------------------
# Learned places
# ---------------------------------------------------------------------------

def record_from_row(row: LearnedPlace, thresholds: Thresholds) -> VisitRecord:
    return VisitRecord(
        latitude=row.latitude,
        longitude=row.longitude,
        cells=CellIndex.from_cells(
            row.cell_building, row.cell_neighborhood, row.cell_city, row.cell_province,
        ),
        display_name=row.display_name,
        visit_log=parse_visit_log(row.visit_log),
        total_visit_days=row.total_visit_days or 0,
        night_visit_days=row.night_visit_days or 0,
        weekday_daytime_visit_days=row.weekday_daytime_visit_days or 0,
        window_total_days=row.window_total_days or 0,
        first_visit=_from_column(row.first_visit),
        last_visit=_from_column(row.last_visit),
        suggested_role=_role_from_str(row.suggested_role),
        confidence=row.confidence or 0.0,
        is_confirmed=bool(row.is_confirmed),
        is_ignored=bool(row.is_ignored),
        thresholds=thresholds,
    )

def apply_record(row: LearnedPlace, record: VisitRecord) -> None:
    """Copy a record's state onto its row."""
    tz = record.thresholds.timezone
    if record.cells is not None:
        row.cell_building = record.cells.building
        row.cell_neighborhood = record.cells.neighborhood
        row.cell_city = record.cells.city
        row.cell_province = record.cells.province
    row.latitude = record.latitude
    row.longitude = record.longitude
    row.display_name = record.display_name
    row.visit_log = dump_visit_log(record.visit_log)
    row.total_visit_days = record.total_visit_days
    row.night_visit_days = record.night_visit_days
    row.weekday_daytime_visit_days = record.weekday_daytime_visit_days
    row.window_total_days = record.window_total_days
    row.first_visit = _to_column(record.first_visit, tz)
    row.last_visit = _to_column(record.last_visit, tz)
    row.suggested_role = record.suggested_role.value if record.suggested_role else None
    row.confidence = record.confidence
    row.is_confirmed = record.is_confirmed
    row.is_ignored = record.is_ignored

def load_visit_records(db: Session, thresholds: Thresholds) -> list[VisitRecord]:
    return [record_from_row(r, thresholds) for r in db.query(LearnedPlace).order_by(LearnedPlace.id).all()]

def record_cluster_visits(
    db: Session,
    clusters: Sequence[PlaceCluster],
    thresholds: Thresholds,
    now: Optional[datetime.datetime] = None,
) -> list[LearnedPlace]:
    """Update (or create) the learned place for each cluster and persist it.

    Returns the rows that were touched.
    """
    rows = {r.cell_building: r for r in db.query(LearnedPlace).all()}
    records = {cell: record_from_row(row, thresholds) for cell, row in rows.items()}

    created = learn_visits(clusters, records, thresholds, now=now)

    touched = []
    seen = set()
    for cluster in clusters:
        cells = cluster.cells
        if cells is None or cells.building in seen:
            continue
        seen.add(cells.building)
        row = rows.get(cells.building)
        if row is None:
            row = LearnedPlace()
            db.add(row)
        apply_record(row, records[cells.building])
        touched.append(row)

    db.commit()
    logger.info(
        "Learned places updated: %d touched, %d new, %d total",
        len(touched), len(created), len(records),
    )
    return touched

def set_learned_status(
    db: Session,
    place_id: int,
    thresholds: Thresholds,
    confirmed: bool = False,
    ignored: bool = False,
) -> Optional[LearnedPlace]:
    """Confirm or ignore a learned place's suggestion."""
    row = db.query(LearnedPlace).filter(LearnedPlace.id == place_id).first()
    if row is None:
        return None
    record = record_from_row(row, thresholds)
    if confirmed:
        record.confirm()
    if ignored:
        record.ignore()
    apply_record(row, record)
    db.commit()
    logger.info("Learned place %d: confirmed=%s ignored=%s", place_id, record.is_confirmed, record.is_ignored)
    return row

# ---------------------------------------------------------------------------
# Configuration overrides
# ---------------------------------------------------------------------------

def _coerce(field: dataclasses.Field, raw: str):
    default = field.default
    if isinstance(default, bool):
        return raw.strip().lower() in ("1", "true", "yes")
    if isinstance(default, int):
        return int(float(raw))
    if isinstance(default, float):
        return float(raw)
    return raw or None

def load_thresholds(db: Session) -> Thresholds:
    """Read threshold overrides from the Config table, falling back to defaults."""
    fields = {f.name: f for f in dataclasses.fields(Thresholds)}
    rows = db.query(Config).filter(Config.key.in_(list(fields))).all()

    overrides = {}
    for row in rows:
        try:
            overrides[row.key] = _coerce(fields[row.key], row.value)
        except (ValueError, OverflowError):
            logger.warning("Ignoring unparseable config value %s=%r", row.key, row.value)

    try:
        return dataclasses.replace(DEFAULT_THRESHOLDS, **overrides)
    except ValueError as e:
        logger.warning("Config overrides rejected (%s); using defaults", e)
        return DEFAULT_THRESHOLDS

# ---------------------------------------------------------------------------
# DB-backed pipeline
# ---------------------------------------------------------------------------

def process_photos(
    db: Session,
    points: Iterable[PhotoPoint],
    learn: bool = True,
    geocoder: Optional[Geocoder] = None,
    progress: Optional[ProgressCallback] = None,
    thresholds: Optional[Thresholds] = None,
    now: Optional[datetime.datetime] = None,
) -> AnalysisResult:
    """Analyze a photo selection against stored places, then learn from it."""
    if thresholds is None:
        thresholds = load_thresholds(db)

    result = analyze_points(
        list(points),
        base_places=load_base_places(db),
        learned=load_visit_records(db, thresholds),
        thresholds=thresholds,
        geocoder=geocoder,
        progress=progress,
    )

    if learn and result.clusters:
        record_cluster_visits(db, result.clusters, thresholds, now=now)
    return result
