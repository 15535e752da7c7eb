"""Shared pytest fixtures: in-memory DB, registered home."""

import sys
import os

# Add server root to path so imports work
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from database import Base
from models import Config, LearnedPlace, UserPlace  # noqa: F401
from domain import PlaceRole
from store import register_place


@pytest.fixture
def engine():
    """Create a fresh in-memory SQLite database for each test."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def db(engine):
    """Provide a DB session, closed after each test."""
    Session = sessionmaker(bind=engine)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def home_place(db):
    """Register the fixture home as a base place."""
    from tests.photo_test_fixtures import HOME_CENTER

    return register_place(
        db, "Home", HOME_CENTER["latitude"], HOME_CENTER["longitude"], role=PlaceRole.HOME,
    )
