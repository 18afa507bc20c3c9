"""Business records served by the lead, property and quote services."""
from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class LeadStatus(str, Enum):
    ACTIVE = "ACTIVE"
    IN_REVIEWING = "IN_REVIEWING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"


class _UpstreamRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class Lead(_UpstreamRecord):
    id: int
    owner_id: str | None = Field(default=None, alias="userInfo")
    property_id: str | None = Field(default=None, alias="propertyInfo")
    status: LeadStatus | None = None
    create_date: date | None = Field(default=None, alias="createDate")
    expiry_date: date | None = Field(default=None, alias="expiryDate")


class PropertyInfo(_UpstreamRecord):
    """Property snapshot; location, attributes and valuation are kept as served."""

    id: str
    location: dict[str, Any] | None = None
    attributes: dict[str, Any] | None = None
    valuation: dict[str, Any] | None = None


class Coverage(_UpstreamRecord):
    code: str
    limit: Any = None


class Quote(_UpstreamRecord):
    id: int
    lead_id: int | None = Field(default=None, alias="leadId")
    agent_id: str | None = Field(default=None, alias="agentId")
    agent_name: str | None = Field(default=None, alias="agentName")
    plan: str | None = None
    status: str | None = None
    sum_insured: int | None = Field(default=None, alias="sumInsured")
    coverages: list[Coverage] = Field(default_factory=list)
    premium: dict[str, Any] | None = None

    @property
    def fire_limit(self) -> str:
        for coverage in self.coverages:
            if coverage.code == "FIRE":
                return str(coverage.limit)
        return "0"


class DomainSnapshot(BaseModel):
    """Business data fetched once when a run starts."""

    lead: Lead
    property_info: PropertyInfo
    quotes: list[Quote] = Field(default_factory=list)
