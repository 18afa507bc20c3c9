from __future__ import annotations

import httpx
from fastapi import APIRouter, HTTPException
from sse_starlette.sse import EventSourceResponse

from app.agents.orchestrator import ResearchStartError
from app.api.deps import get_orchestrator, get_store
from app.models.events import EventType
from app.models.schemas import (
    Report,
    ResearchPromptResponse,
    ResearchStatusResponse,
    SessionContextResponse,
)
from app.services import logger as log_service

router = APIRouter(prefix="/api/research", tags=["research"])


def _upstream_error(e: httpx.HTTPError, lead_id: int) -> HTTPException:
    log_service.log_event(
        event_type="upstream_error",
        message="Could not load lead data",
        error=str(e),
        lead_id=lead_id,
    )
    return HTTPException(status_code=502, detail=f"Upstream service error: {e}")


@router.get("/sessions/{session_id}", response_model=SessionContextResponse)
async def get_session_context(session_id: str):
    context = await get_store().get_context(session_id)
    if context is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return SessionContextResponse(
        id=context.id,
        lead_id=context.lead_id,
        goal=context.goal,
        findings=context.findings,
        history=context.history,
    )


@router.get("/{lead_id}/stream")
async def stream_research(lead_id: int):
    """Start a research run for the lead and stream its progress as SSE.

    Missing lead or property fails here with 404, before any stream exists.
    """
    orchestrator = get_orchestrator()
    try:
        run = await orchestrator.start(lead_id)
    except ResearchStartError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except httpx.HTTPError as e:
        raise _upstream_error(e, lead_id)

    async def event_generator():
        try:
            async for event in run.events():
                yield {"event": event.event.value, "data": event.data}
        except Exception as e:
            log_service.log_event(
                event_type="stream_error",
                message="Unhandled error in research stream",
                error=str(e),
                session_id=run.session_id,
            )
            yield {"event": EventType.ERROR.value, "data": "Research stream failed unexpectedly."}

    return EventSourceResponse(event_generator(), headers={"X-Research-Session": run.session_id})


@router.get("/{lead_id}/prompt", response_model=ResearchPromptResponse)
async def get_prompt(lead_id: int):
    """Preview the prompt the first research step would send, without starting a run."""
    try:
        prompt = await get_orchestrator().preview_prompt(lead_id)
    except ResearchStartError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except httpx.HTTPError as e:
        raise _upstream_error(e, lead_id)
    return ResearchPromptResponse(lead_id=lead_id, prompt=prompt)


@router.get("/{lead_id}/report", response_model=Report)
async def get_report(lead_id: int):
    report = await get_store().get_latest_report(lead_id)
    if report is None:
        raise HTTPException(status_code=404, detail=f"No research report for lead {lead_id}")
    return report


@router.get("/{lead_id}/status", response_model=ResearchStatusResponse)
async def get_status(lead_id: int):
    researched = await get_store().has_report(lead_id)
    return ResearchStatusResponse(lead_id=lead_id, researched=researched)
