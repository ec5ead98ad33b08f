from __future__ import annotations

from typing import List

from sqlalchemy.orm import Session

from trucktracker.db.models import TrackerData
from trucktracker.services.normalizer import NormalizedTelemetry
from trucktracker.utils.time import utc_now


class TrackerStore:
    """Append/query access to the ``tracker_data`` table.

    Rows are only ever inserted; nothing here updates or deletes.
    """

    def insert(self, db: Session, record: NormalizedTelemetry, location: str) -> TrackerData:
        row = TrackerData(
            tracker_id=record.tracker_id,
            location=location,
            latitude=record.latitude,
            longitude=record.longitude,
            speed=record.speed,
            status=record.status,
            last_update=record.last_update,
            description=record.description,
            created_at=utc_now(),
        )
        db.add(row)
        db.commit()
        db.refresh(row)
        return row

    def list_all(self, db: Session) -> List[TrackerData]:
        return (
            db.query(TrackerData)
            .order_by(TrackerData.last_update.desc(), TrackerData.id.desc())
            .all()
        )
