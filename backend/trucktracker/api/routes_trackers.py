from __future__ import annotations

import logging
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import List

from trucktracker.deps import get_db
from trucktracker.exceptions import IngestionError
from trucktracker.schemas.tracker import ErrorOut, RefreshFailure, RefreshResponse, TrackerOut
from trucktracker.services.query_service import QueryService
from trucktracker.services.scheduler import RefreshScheduler

logger = logging.getLogger("trucktracker.api")

router = APIRouter(prefix="/api")
query_svc = QueryService()
refresh_scheduler: RefreshScheduler | None = None

_STORE_ERROR = {500: {"model": ErrorOut}}


def get_scheduler() -> RefreshScheduler:
    assert refresh_scheduler is not None, "RefreshScheduler not initialized"
    return refresh_scheduler


def _store_failure(e: Exception) -> JSONResponse:
    logger.error("Error fetching tracker data: %s", e)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@router.get("/trackers", response_model=List[TrackerOut], responses=_STORE_ERROR)
def list_trackers(db: Session = Depends(get_db)):
    """All stored positions, newest ``last_update`` first."""
    try:
        rows = query_svc.list_all(db)
    except SQLAlchemyError as e:
        return _store_failure(e)
    return [TrackerOut.model_validate(r) for r in rows]


@router.get("/trackers/latest", response_model=List[TrackerOut], responses=_STORE_ERROR)
def latest_trackers(db: Session = Depends(get_db)):
    """One row per truck: its most recent position."""
    try:
        rows = query_svc.latest(db)
    except SQLAlchemyError as e:
        return _store_failure(e)
    return [TrackerOut.model_validate(r) for r in rows]


@router.get(
    "/trackers/{tracker_id}/history",
    response_model=List[TrackerOut],
    responses={404: {"model": ErrorOut}, **_STORE_ERROR},
)
def tracker_history(tracker_id: str, db: Session = Depends(get_db)):
    try:
        rows = query_svc.history(db, tracker_id)
    except SQLAlchemyError as e:
        return _store_failure(e)
    if not rows:
        return JSONResponse(status_code=404, content={"error": "Tracker not found"})
    return [TrackerOut.model_validate(r) for r in rows]


@router.post("/refresh", response_model=RefreshResponse, responses={500: {"model": RefreshFailure}})
async def refresh(scheduler: RefreshScheduler = Depends(get_scheduler)):
    """Run an ingestion cycle now and return what upstream sent."""
    try:
        result = await scheduler.refresh_now()
    except IngestionError as e:
        logger.error("On-demand refresh failed: %s", e)
        return JSONResponse(
            status_code=500,
            content=RefreshFailure(error=str(e)).model_dump(),
        )
    return RefreshResponse(data=result.raw)
