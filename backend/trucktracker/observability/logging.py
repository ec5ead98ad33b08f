from __future__ import annotations

import logging
import sys

from trucktracker.config import settings

_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Install a single stream handler on the root logger.

    Safe to call more than once; later calls only adjust the level.
    """
    root = logging.getLogger()
    root.setLevel((level or settings.log_level).upper())
    if any(getattr(h, "_trucktracker", False) for h in root.handlers):
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler._trucktracker = True  # type: ignore[attr-defined]
    root.addHandler(handler)

    # httpx logs every request at INFO; geocoding one call per truck is noisy
    logging.getLogger("httpx").setLevel(logging.WARNING)
