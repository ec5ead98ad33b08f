from __future__ import annotations

from sqlalchemy import Column, String, DateTime, Text, Integer, Float

from trucktracker.db.session import Base


class TrackerData(Base):
    """One observed position of one truck. Rows are append-only."""

    __tablename__ = "tracker_data"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tracker_id = Column(String, index=True, nullable=False)
    location = Column(Text, nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    speed = Column(Float, nullable=True)
    status = Column(String, nullable=True)
    last_update = Column(DateTime(timezone=True), index=True, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
