"""Mapping of raw Optimus telemetry into canonical truck positions.

Upstream devices do not agree on field names, so every canonical field is
resolved through an ordered alias list. Nothing in this module does I/O.
"""

from __future__ import annotations

import datetime as dt
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import TypeAdapter, ValidationError

from trucktracker.exceptions import RecordRejected, UpstreamShapeError
from trucktracker.utils.time import as_utc, utc_now

logger = logging.getLogger("trucktracker.normalizer")

TRACKER_ID_ALIASES: Tuple[str, ...] = ("id", "deviceId", "tracker_id")
LAST_UPDATE_ALIASES: Tuple[str, ...] = ("utcDate", "last_update", "lastUpdate")
SPEED_ALIASES: Tuple[str, ...] = ("speed",)
STATUS_ALIASES: Tuple[str, ...] = ("status", "state")
DESCRIPTION_ALIASES: Tuple[str, ...] = ("description",)
LATITUDE_ALIASES: Tuple[str, ...] = ("latitude",)
LONGITUDE_ALIASES: Tuple[str, ...] = ("longitude",)

_datetime_adapter = TypeAdapter(dt.datetime)


def first_present(raw: Mapping[str, Any], aliases: Sequence[str]) -> Any:
    """Return the value of the first alias whose value is not None."""
    for name in aliases:
        value = raw.get(name)
        if value is not None:
            return value
    return None


def safe_float(value: Any) -> Optional[float]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text else None


def parse_timestamp(value: Any) -> Optional[dt.datetime]:
    """Parse ISO 8601 strings or epoch numbers into an aware UTC datetime."""
    try:
        parsed = _datetime_adapter.validate_python(value)
    except ValidationError:
        return None
    return as_utc(parsed)


# ── Body shape ─────────────────────────────────────────────


@dataclass
class ArrayBody:
    entries: List[Any]


@dataclass
class WrappedBody:
    entries: List[Any]


@dataclass
class SingleBody:
    entry: Dict[str, Any]

    @property
    def entries(self) -> List[Any]:
        return [self.entry]


TelemetryBody = Union[ArrayBody, WrappedBody, SingleBody]


def classify_body(body: Any) -> TelemetryBody:
    """Resolve the upstream response into one of the three accepted shapes."""
    if isinstance(body, list):
        return ArrayBody(entries=body)
    if isinstance(body, dict):
        data = body.get("data")
        if isinstance(data, list):
            return WrappedBody(entries=data)
        return SingleBody(entry=body)
    raise UpstreamShapeError(
        f"Unexpected telemetry response shape: {type(body).__name__}"
    )


# ── Records ────────────────────────────────────────────────


@dataclass
class NormalizedTelemetry:
    """A truck position whose location has not been resolved yet."""

    tracker_id: str
    last_update: dt.datetime
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    speed: Optional[float] = None
    status: Optional[str] = None
    description: Optional[str] = None
    # Coordinates exactly as upstream sent them, for the geocoding fallback
    raw_latitude: Any = field(default=None, repr=False)
    raw_longitude: Any = field(default=None, repr=False)

    @property
    def has_coordinates(self) -> bool:
        return bool(self.raw_latitude) and bool(self.raw_longitude) and (
            self.latitude is not None and self.longitude is not None
        )


class TelemetryNormalizer:
    def __init__(self, clock: Callable[[], dt.datetime] = utc_now):
        self._clock = clock

    def resolve_tracker_id(self, raw: Any) -> str:
        if not isinstance(raw, dict):
            raise RecordRejected("entry is not an object")
        # Blank ids fall through to the next alias
        for name in TRACKER_ID_ALIASES:
            value = safe_str(raw.get(name))
            if value is not None and value.strip():
                return value
        raise RecordRejected("missing tracker_id")

    def resolve_last_update(self, raw: Mapping[str, Any]) -> dt.datetime:
        value = first_present(raw, LAST_UPDATE_ALIASES)
        if value is None:
            return self._clock()
        parsed = parse_timestamp(value)
        if parsed is None:
            logger.warning("Unparseable last_update %r, using ingestion time", value)
            return self._clock()
        return parsed

    def normalize(self, raw: Any) -> NormalizedTelemetry:
        tracker_id = self.resolve_tracker_id(raw)
        raw_lat = first_present(raw, LATITUDE_ALIASES)
        raw_lng = first_present(raw, LONGITUDE_ALIASES)
        return NormalizedTelemetry(
            tracker_id=tracker_id,
            last_update=self.resolve_last_update(raw),
            latitude=safe_float(raw_lat),
            longitude=safe_float(raw_lng),
            speed=safe_float(first_present(raw, SPEED_ALIASES)),
            status=safe_str(first_present(raw, STATUS_ALIASES)),
            description=safe_str(first_present(raw, DESCRIPTION_ALIASES)),
            raw_latitude=raw_lat,
            raw_longitude=raw_lng,
        )
