from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_serializer, field_validator
from typing import Any, List, Optional
import datetime as dt

from trucktracker.utils.time import as_utc, isoformat_z


class TrackerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tracker_id: str
    location: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    speed: Optional[float] = None
    status: Optional[str] = None
    last_update: dt.datetime
    description: Optional[str] = None

    @field_validator("last_update")
    @classmethod
    def _last_update_utc(cls, value: dt.datetime) -> dt.datetime:
        return as_utc(value)

    @field_serializer("last_update")
    def _serialize_last_update(self, value: dt.datetime) -> str:
        return isoformat_z(value)


class RefreshResponse(BaseModel):
    success: bool = True
    message: str = "Data refreshed from Optimus API"
    # Everything upstream sent this cycle, including entries that were skipped
    data: List[Any] = []


class RefreshFailure(BaseModel):
    success: bool = False
    message: str = "Failed to refresh data"
    error: str


class ErrorOut(BaseModel):
    error: str
