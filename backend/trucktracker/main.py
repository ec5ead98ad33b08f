from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from trucktracker.config import settings
from trucktracker.observability.logging import configure_logging
from trucktracker.db.session import engine, Base
from sqlalchemy import text
from trucktracker.api.routes_health import router as health_router
from trucktracker.api.routes_trackers import router as trackers_router
from trucktracker.services.ingestion import IngestionPipeline
from trucktracker.services.scheduler import RefreshScheduler
import trucktracker.db.models  # noqa: F401  registers tables on Base.metadata

configure_logging()
logger = logging.getLogger("trucktracker")


def init_database(max_retries: int = 5, retry_delay: int = 2):
    """
    Initialize database with retry logic.
    Managed Postgres instances may take a moment to accept connections.
    """
    for attempt in range(max_retries):
        try:
            # Test connection
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))

            # Create all tables
            Base.metadata.create_all(bind=engine)
            logger.info("Database initialized successfully")
            return True

        except Exception as e:
            logger.warning(f"Database connection attempt {attempt + 1}/{max_retries} failed: {e}")
            if attempt < max_retries - 1:
                time.sleep(retry_delay)
            else:
                logger.error("Failed to connect to database after all retries")
                # Don't crash - allow app to start, reads will answer 500
                return False
    return False


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup
    logger.info("Starting Live Truck Tracker API")
    logger.info(f"   Environment: {settings.environment}")
    logger.info(f"   Optimus API: {'configured' if settings.telemetry_configured else 'NOT configured'}")

    init_database()
    if settings.scheduler_enabled:
        refresh_scheduler.start()
    else:
        logger.info("Scheduler disabled; refresh only via POST /api/refresh")

    yield

    # Shutdown
    logger.info("Shutting down...")
    await refresh_scheduler.shutdown()
    await pipeline.close()


app = FastAPI(
    title="Live Truck Tracker API",
    version="0.1.0",
    lifespan=lifespan
)


@app.get("/")
def root():
    return {
        "name": "Live Truck Tracker API",
        "status": "ok",
        "docs": "/docs",
        "health": "/health"
    }


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(health_router)
app.include_router(trackers_router)

# Single pipeline + scheduler for the process
pipeline = IngestionPipeline()
refresh_scheduler = RefreshScheduler(pipeline)

# Inject into routes_trackers module (simple shared singleton)
import trucktracker.api.routes_trackers as routes_trackers_module
routes_trackers_module.refresh_scheduler = refresh_scheduler
