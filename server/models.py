"""SQLAlchemy models for registered places, learned places and config overrides."""

import datetime
from sqlalchemy import Column, Integer, Float, String, DateTime, Boolean, Text

from database import Base


class Config(Base):
    """Key/value overrides for the analysis thresholds."""

    __tablename__ = "config"

    key = Column(String, primary_key=True)
    value = Column(String, nullable=False)


class UserPlace(Base):
    """A place the user registered as home, work, school or a custom base."""

    __tablename__ = "user_places"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    address = Column(Text, nullable=True)
    role = Column(String, nullable=False, default="custom")
    cell_building = Column(String, nullable=True)
    cell_neighborhood = Column(String, nullable=True)
    cell_city = Column(String, nullable=True)
    cell_province = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.datetime.utcnow)


class LearnedPlace(Base):
    """Visit statistics for a place discovered from photo clusters.

    One row per building-resolution cell. Rows are never deleted automatically.
    """

    __tablename__ = "learned_places"

    id = Column(Integer, primary_key=True, index=True)
    cell_building = Column(String, unique=True, nullable=False, index=True)
    cell_neighborhood = Column(String, nullable=False)
    cell_city = Column(String, nullable=False)
    cell_province = Column(String, nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    display_name = Column(String, nullable=True)
    visit_log = Column(Text, nullable=True)
    total_visit_days = Column(Integer, default=0)
    night_visit_days = Column(Integer, default=0)
    weekday_daytime_visit_days = Column(Integer, default=0)
    window_total_days = Column(Integer, default=0)
    first_visit = Column(DateTime, nullable=True)
    last_visit = Column(DateTime, nullable=True)
    suggested_role = Column(String, nullable=True)
    confidence = Column(Float, default=0.0)
    is_confirmed = Column(Boolean, default=False)
    is_ignored = Column(Boolean, default=False)
    updated_at = Column(DateTime, default=datetime.datetime.utcnow, onupdate=datetime.datetime.utcnow)
