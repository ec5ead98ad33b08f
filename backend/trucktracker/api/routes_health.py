from __future__ import annotations

from fastapi import APIRouter

from trucktracker.config import settings
import trucktracker.api.routes_trackers as routes_trackers

router = APIRouter()


@router.get("/health")
def health():
    """Health check endpoint with scheduler status."""
    scheduler = routes_trackers.refresh_scheduler
    return {
        "status": "ok",
        "environment": settings.environment,
        "telemetry_configured": settings.telemetry_configured,
        "scheduler_running": bool(scheduler and scheduler.running),
        "cycle_in_flight": bool(scheduler and scheduler.cycle_in_flight),
        "version": "0.1.0",
    }
