"""REST API endpoints for the journaling app (analysis, registered and learned places)."""

import datetime
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from database import get_db
from domain import PhotoPoint, PlaceRole
from models import LearnedPlace, UserPlace
from store import delete_place, load_thresholds, process_photos, register_place, set_learned_status
from thresholds import thresholds_as_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class PhotoIn(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    timestamp: datetime.datetime = Field(..., description="ISO 8601 capture time")
    photo_id: Optional[str] = None


class AnalyzeRequest(BaseModel):
    photos: list[PhotoIn]
    learn: bool = True


class ClusterResponse(BaseModel):
    id: int
    latitude: float
    longitude: float
    start: str
    end: str
    photo_count: int
    photo_ids: list[Optional[str]]
    label: Optional[str] = None
    address: Optional[str] = None
    place_type: Optional[str] = None
    activity: Optional[str] = None


class MixedSplitResponse(BaseModel):
    near_cluster_ids: list[int]
    far_cluster_ids: list[int]
    near_photo_count: int
    far_photo_count: int


class ClassificationResponse(BaseModel):
    context: str
    confidence: float
    distance_level: str
    reasoning: str
    mixed: Optional[MixedSplitResponse] = None


class AnalyzeResponse(BaseModel):
    photo_count: int
    start: Optional[str] = None
    end: Optional[str] = None
    total_distance_km: float
    theme: Optional[str] = None
    clusters: list[ClusterResponse]
    classification: ClassificationResponse


class PlaceCreate(BaseModel):
    name: str
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    role: PlaceRole = PlaceRole.CUSTOM
    address: Optional[str] = None


class PlaceResponse(BaseModel):
    id: int
    name: str
    latitude: float
    longitude: float
    role: str
    address: Optional[str] = None
    cell_building: Optional[str] = None

    class Config:
        from_attributes = True


class LearnedPlaceResponse(BaseModel):
    id: int
    cell_building: str
    latitude: float
    longitude: float
    display_name: Optional[str] = None
    total_visit_days: int
    night_visit_days: int
    weekday_daytime_visit_days: int
    window_total_days: int
    suggested_role: Optional[str] = None
    confidence: float
    is_confirmed: bool
    is_ignored: bool

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# Analysis endpoint
# ---------------------------------------------------------------------------

@router.post("/analyze", response_model=AnalyzeResponse)
def analyze(req: AnalyzeRequest, db: Session = Depends(get_db)):
    points = [
        PhotoPoint(latitude=p.latitude, longitude=p.longitude, timestamp=p.timestamp, photo_id=p.photo_id)
        for p in req.photos
    ]
    result = process_photos(db, points, learn=req.learn)
    c = result.classification

    logger.info(
        "Analyzed %d photos: %d clusters, context=%s",
        result.photo_count, len(result.clusters), c.context.value,
    )

    return AnalyzeResponse(
        photo_count=result.photo_count,
        start=result.start.isoformat() if result.start else None,
        end=result.end.isoformat() if result.end else None,
        total_distance_km=round(result.total_distance_km, 3),
        theme=result.theme,
        clusters=[
            ClusterResponse(
                id=cl.id,
                latitude=cl.latitude,
                longitude=cl.longitude,
                start=cl.start.isoformat(),
                end=cl.end.isoformat(),
                photo_count=cl.photo_count,
                photo_ids=cl.photo_ids,
                label=cl.label,
                address=cl.address,
                place_type=cl.place_type,
                activity=cl.activity.value if cl.activity else None,
            )
            for cl in result.clusters
        ],
        classification=ClassificationResponse(
            context=c.context.value,
            confidence=round(c.confidence, 3),
            distance_level=c.distance_level.name.lower(),
            reasoning=c.reasoning,
            mixed=MixedSplitResponse(
                near_cluster_ids=c.mixed.near_cluster_ids,
                far_cluster_ids=c.mixed.far_cluster_ids,
                near_photo_count=c.mixed.near_photo_count,
                far_photo_count=c.mixed.far_photo_count,
            ) if c.mixed else None,
        ),
    )


# ---------------------------------------------------------------------------
# Registered place endpoints
# ---------------------------------------------------------------------------

@router.get("/places", response_model=list[PlaceResponse])
def list_places(db: Session = Depends(get_db)):
    return db.query(UserPlace).order_by(UserPlace.id).all()


@router.post("/places", response_model=PlaceResponse, status_code=201)
def create_place(req: PlaceCreate, db: Session = Depends(get_db)):
    return register_place(db, req.name, req.latitude, req.longitude, req.role, req.address)


@router.delete("/places/{place_id}", status_code=204)
def remove_place(place_id: int, db: Session = Depends(get_db)):
    if not delete_place(db, place_id):
        raise HTTPException(status_code=404, detail="Place not found")


# ---------------------------------------------------------------------------
# Learned place endpoints
# ---------------------------------------------------------------------------

@router.get("/learned-places", response_model=list[LearnedPlaceResponse])
def list_learned_places(db: Session = Depends(get_db)):
    return (
        db.query(LearnedPlace)
        .order_by(LearnedPlace.confidence.desc(), LearnedPlace.total_visit_days.desc())
        .all()
    )


@router.post("/learned-places/{place_id}/confirm", response_model=LearnedPlaceResponse)
def confirm_learned_place(place_id: int, db: Session = Depends(get_db)):
    row = set_learned_status(db, place_id, load_thresholds(db), confirmed=True)
    if row is None:
        raise HTTPException(status_code=404, detail="Learned place not found")
    return row


@router.post("/learned-places/{place_id}/ignore", response_model=LearnedPlaceResponse)
def ignore_learned_place(place_id: int, db: Session = Depends(get_db)):
    row = set_learned_status(db, place_id, load_thresholds(db), ignored=True)
    if row is None:
        raise HTTPException(status_code=404, detail="Learned place not found")
    return row


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@router.get("/thresholds")
def get_thresholds(db: Session = Depends(get_db)):
    return thresholds_as_dict(load_thresholds(db))
