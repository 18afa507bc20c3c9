from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from pydantic import BaseModel, Field


# --- Persisted ---


class Report(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    owner_id: str | None
    subject_id: str
    lead_id: int
    final_summary: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# --- Responses ---


class ResearchStatusResponse(BaseModel):
    lead_id: int
    researched: bool


class SessionContextResponse(BaseModel):
    id: str
    lead_id: int
    goal: str
    findings: list[str]
    history: list[str]


class ResearchPromptResponse(BaseModel):
    lead_id: int
    prompt: str
