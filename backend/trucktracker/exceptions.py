"""Exception hierarchy for the tracker service."""

from __future__ import annotations

from typing import Any, Optional


class TrackerError(Exception):
    """Base exception for all tracker service errors."""


class IngestionError(TrackerError):
    """A failure that aborts the whole ingestion cycle."""


class FetchError(IngestionError):
    """Upstream telemetry call failed (network, auth, non-2xx)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        body: Any = None,
    ) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class UpstreamShapeError(IngestionError):
    """Upstream answered, but not with a JSON array or object."""


class RecordRejected(TrackerError):
    """A single raw entry cannot be persisted; the cycle continues."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)
