from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from trucktracker.config import settings
from trucktracker.exceptions import FetchError, UpstreamShapeError

logger = logging.getLogger("trucktracker.telemetry_client")


def _error_body(r: httpx.Response) -> Any:
    try:
        return r.json()
    except ValueError:
        return r.text or None


class TelemetryClient:
    """HTTP adapter for the Optimus fleet-telemetry API.

    The API exposes a single snapshot endpoint:
      - GET <OPTIMUS_API_URL>  -> JSON array, {"data": [...]}, or a single object
    authenticated with ``Authorization: Bearer <OPTIMUS_BEARER_TOKEN>``.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url or settings.optimus_api_url
        token = token or settings.optimus_bearer_token
        self._headers: Dict[str, str] = {}
        if token:
            self._headers["Authorization"] = f"Bearer {token}"
        self._client = client or httpx.AsyncClient(timeout=settings.telemetry_timeout_s)

    async def fetch(self) -> Any:
        """Return the decoded JSON body of one telemetry snapshot."""
        if not self.url:
            raise FetchError("OPTIMUS_API_URL is not configured")

        try:
            r = await self._client.get(self.url, headers=self._headers)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error("Optimus API request failed: %s", e)
            raise FetchError(f"Optimus API request failed: {e}") from e

        if r.is_error:
            body = _error_body(r)
            logger.error("Optimus API returned %s: %s", r.status_code, body)
            raise FetchError(
                f"Optimus API returned HTTP {r.status_code}",
                status_code=r.status_code,
                body=body,
            )

        try:
            payload = r.json()
        except ValueError as e:
            raise UpstreamShapeError("Optimus API response is not valid JSON") from e
        logger.debug("Optimus API response: %s", payload)
        return payload

    async def close(self) -> None:
        await self._client.aclose()
