"""Address verification through the Google Places "find place" API."""
from __future__ import annotations

import json
from typing import Any

import httpx

from app.config import settings
from app.services import logger as log_service

MISSING_KEY_WARNING = "No Google Maps API Key provided. Cannot verify address real-time."
PLACE_FIELDS = "formatted_address,name,geometry,place_id"


class LocationVerifier:
    """Looks up a free-text address; never raises.

    Missing credentials and upstream failures come back as a readable
    diagnostic string so the research loop can record them as findings.
    """

    def __init__(
        self,
        api_key: str | None = None,
        places_url: str | None = None,
        timeout: float | None = None,
    ):
        self.api_key = settings.google_maps_api_key if api_key is None else api_key
        self.places_url = places_url or settings.google_places_url
        self.timeout = timeout or settings.upstream_timeout_seconds

    async def verify(self, query: str) -> str:
        if not self.api_key:
            return json.dumps({"warning": MISSING_KEY_WARNING, "input": query}, ensure_ascii=False)

        params: dict[str, Any] = {
            "input": query,
            "inputtype": "textquery",
            "fields": PLACE_FIELDS,
            "key": self.api_key,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.places_url, params=params)
                response.raise_for_status()
                payload = response.json()
        except Exception as e:
            log_service.logger.warning(f"Google Maps lookup failed for '{query}': {e}")
            return f"Error calling Google Maps API: {e}"

        if not isinstance(payload, dict):
            return "No location found or API Error: unexpected response"
        status = payload.get("status", "")
        if status == "OK" and "candidates" in payload:
            return json.dumps(payload["candidates"], ensure_ascii=False)
        return f"No location found or API Error: {status}"
