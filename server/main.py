"""Entry point: starts the FastAPI server for the photo itinerary API."""

import logging
import logging.handlers
import os
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from api import router
from database import init_db

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------
LOG_DIR = os.environ.get("LOG_DIR", "/data" if os.path.isdir("/data") else ".")
LOG_FILE = os.path.join(LOG_DIR, "photo-itinerary.log")

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s  %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    handlers=[
        logging.StreamHandler(),
        logging.handlers.RotatingFileHandler(
            LOG_FILE, maxBytes=5 * 1024 * 1024, backupCount=3,
        ),
    ],
)
logger = logging.getLogger("itinerary")

# Quiet noisy libraries
logging.getLogger("multipart").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Photo itinerary service started")
    yield


app = FastAPI(title="Photo Itinerary", lifespan=lifespan)
app.include_router(router)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", "8080")))
