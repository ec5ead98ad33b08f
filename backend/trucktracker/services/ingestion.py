from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from trucktracker.db.session import SessionLocal
from trucktracker.exceptions import RecordRejected
from trucktracker.schemas.tracker import TrackerOut
from trucktracker.services.geocoder import GeocodeResolver
from trucktracker.services.normalizer import TelemetryNormalizer, classify_body
from trucktracker.services.store import TrackerStore
from trucktracker.services.telemetry_client import TelemetryClient

logger = logging.getLogger("trucktracker.ingestion")


@dataclass
class CycleResult:
    # Every entry upstream sent, before filtering. This is the refresh payload.
    raw: List[Any]
    accepted: List[TrackerOut] = field(default_factory=list)
    rejected: int = 0
    failed: int = 0


class IngestionPipeline:
    """One fetch -> normalize -> geocode -> persist pass over the fleet.

    Fetch failures abort the cycle and propagate. Anything that goes wrong
    with a single entry is logged and the loop moves on to the next one.
    """

    def __init__(
        self,
        client: Optional[TelemetryClient] = None,
        geocoder: Optional[GeocodeResolver] = None,
        normalizer: Optional[TelemetryNormalizer] = None,
        store: Optional[TrackerStore] = None,
        session_factory: Callable[[], Session] = SessionLocal,
    ):
        self.client = client or TelemetryClient()
        self.geocoder = geocoder or GeocodeResolver()
        self.normalizer = normalizer or TelemetryNormalizer()
        self.store = store or TrackerStore()
        self._session_factory = session_factory

    async def run_cycle(self) -> CycleResult:
        body = await self.client.fetch()
        entries = classify_body(body).entries
        result = CycleResult(raw=entries)

        db = self._session_factory()
        try:
            for raw in entries:
                await self._ingest_one(db, raw, result)
        finally:
            db.close()

        logger.info(
            "Ingestion cycle done: received=%d accepted=%d rejected=%d failed=%d",
            len(entries), len(result.accepted), result.rejected, result.failed,
        )
        return result

    async def _ingest_one(self, db: Session, raw: Any, result: CycleResult) -> None:
        try:
            record = self.normalizer.normalize(raw)
        except RecordRejected as e:
            logger.warning("Skipping insert: %s. Truck: %s", e.reason, raw)
            result.rejected += 1
            return

        location: Optional[str] = None
        if record.has_coordinates:
            location = await self.geocoder.resolve(record.raw_latitude, record.raw_longitude)
        if not location:
            logger.warning("Skipping insert: location is null. Truck: %s", raw)
            result.rejected += 1
            return

        try:
            row = self.store.insert(db, record, location)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Error inserting data for tracker %s: %s", record.tracker_id, e)
            result.failed += 1
            return
        result.accepted.append(TrackerOut.model_validate(row))

    async def close(self) -> None:
        await self.client.close()
        await self.geocoder.close()
