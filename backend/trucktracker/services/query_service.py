from __future__ import annotations

import datetime as dt
from typing import Dict, Iterable, List, Protocol, Tuple

from sqlalchemy.orm import Session

from trucktracker.db.models import TrackerData
from trucktracker.services.store import TrackerStore
from trucktracker.utils.time import as_utc


class PositionRecord(Protocol):
    id: int
    tracker_id: str
    last_update: dt.datetime


def _recency_key(record: PositionRecord) -> Tuple[dt.datetime, int]:
    # id breaks ties between rows that share a timestamp
    return as_utc(record.last_update), record.id or 0


def latest_per_tracker(records: Iterable[PositionRecord]) -> List[PositionRecord]:
    """Latest state of every truck, newest first.

    Works on any input order; the result only depends on the set of records.
    """
    latest: Dict[str, PositionRecord] = {}
    for rec in records:
        current = latest.get(rec.tracker_id)
        if current is None or _recency_key(rec) > _recency_key(current):
            latest[rec.tracker_id] = rec
    return sorted(latest.values(), key=_recency_key, reverse=True)


def history_for(records: Iterable[PositionRecord], tracker_id: str) -> List[PositionRecord]:
    """Every record of one truck, newest first."""
    return sorted(
        (rec for rec in records if rec.tracker_id == tracker_id),
        key=_recency_key,
        reverse=True,
    )


class QueryService:
    """Read side of the tracker store."""

    def __init__(self, store: TrackerStore | None = None):
        self.store = store or TrackerStore()

    def list_all(self, db: Session) -> List[TrackerData]:
        return self.store.list_all(db)

    def latest(self, db: Session) -> List[TrackerData]:
        return latest_per_tracker(self.list_all(db))

    def history(self, db: Session, tracker_id: str) -> List[TrackerData]:
        return history_for(self.list_all(db), tracker_id)
