from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from trucktracker.config import settings

logger = logging.getLogger("trucktracker.geocoder")


class GeocodeResolver:
    """Reverse geocoding against a Nominatim-compatible service.

    ``resolve`` never raises: when the lookup fails for any reason the
    coordinates themselves become the address, formatted ``"{lat},{lng}"``.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or settings.geocoder_base_url).rstrip("/")
        self._headers: Dict[str, str] = {"User-Agent": settings.geocoder_user_agent}
        self._client = client or httpx.AsyncClient(timeout=settings.geocoder_timeout_s)

    @staticmethod
    def fallback(latitude: Any, longitude: Any) -> str:
        return f"{latitude},{longitude}"

    async def resolve(self, latitude: Any, longitude: Any) -> str:
        try:
            r = await self._client.get(
                f"{self.base_url}/reverse",
                params={"format": "json", "lat": latitude, "lon": longitude},
                headers=self._headers,
            )
            r.raise_for_status()
            payload = r.json()
        except Exception as e:
            logger.warning("Reverse geocoding failed for %s,%s: %s", latitude, longitude, e)
            return self.fallback(latitude, longitude)

        name = payload.get("display_name") if isinstance(payload, dict) else None
        if not name:
            logger.warning("Reverse geocoding returned no display_name for %s,%s", latitude, longitude)
            return self.fallback(latitude, longitude)
        return str(name)

    async def close(self) -> None:
        await self._client.aclose()
