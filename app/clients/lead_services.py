"""HTTP clients for the lead, property and quote services."""
from __future__ import annotations

from typing import Any, Protocol

import httpx

from app.config import settings
from app.models.domain import Lead, PropertyInfo, Quote


class LeadProvider(Protocol):
    async def get_lead(self, lead_id: int) -> Lead | None: ...


class PropertyProvider(Protocol):
    async def get_property(self, property_id: str) -> PropertyInfo | None: ...


class QuoteProvider(Protocol):
    async def get_quotes(self, lead_id: int) -> list[Quote]: ...


async def _get_json(base_url: str, path: str, timeout: float) -> Any | None:
    """GET ``path``; returns None on 404 or an empty body, raises on other errors."""
    async with httpx.AsyncClient(base_url=base_url, timeout=timeout) as client:
        response = await client.get(path, headers={"Accept": "application/json"})
        if response.status_code == 404:
            return None
        response.raise_for_status()
        if not response.content:
            return None
        return response.json()


class LeadServiceClient:
    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = (base_url or settings.lead_service_url).rstrip("/")
        self.timeout = timeout or settings.upstream_timeout_seconds

    async def get_lead(self, lead_id: int) -> Lead | None:
        payload = await _get_json(self.base_url, f"/property-lead/{lead_id}", self.timeout)
        return Lead.model_validate(payload) if payload else None


class PropertyServiceClient:
    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = (base_url or settings.property_service_url).rstrip("/")
        self.timeout = timeout or settings.upstream_timeout_seconds

    async def get_property(self, property_id: str) -> PropertyInfo | None:
        payload = await _get_json(self.base_url, f"/propertyInfo/{property_id}", self.timeout)
        return PropertyInfo.model_validate(payload) if payload else None


class QuoteServiceClient:
    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = (base_url or settings.quote_service_url).rstrip("/")
        self.timeout = timeout or settings.upstream_timeout_seconds

    async def get_quotes(self, lead_id: int) -> list[Quote]:
        payload = await _get_json(self.base_url, f"/property-quote/lead/{lead_id}", self.timeout)
        if not payload:
            return []
        return [Quote.model_validate(item) for item in payload]
