"""Database setup and session management using SQLAlchemy + SQLite."""

import logging
import os

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

logger = logging.getLogger(__name__)

DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///itinerary.db")

engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False})
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create all tables and seed the default settings."""
    from models import Config, LearnedPlace, UserPlace  # noqa: F401

    logger.info("Initializing database at %s", DATABASE_URL)
    Base.metadata.create_all(bind=engine)
    _seed_config()


DEFAULT_SETTINGS = {
    "timezone": os.environ.get("TIMEZONE", "UTC"),
}


def _seed_config():
    """Insert default settings if not present; thresholds fall back to code defaults."""
    from models import Config

    db = SessionLocal()
    try:
        for key, value in DEFAULT_SETTINGS.items():
            if not db.query(Config).filter(Config.key == key).first():
                db.add(Config(key=key, value=value))
        db.commit()
    finally:
        db.close()
