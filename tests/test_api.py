"""Tests for API routes."""
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from app.agents.orchestrator import LeadNotFoundError, ResearchOrchestrator
from app.models.context import SessionContext
from app.models.domain import DomainSnapshot
from app.models.schemas import Report
from app.services.database import InMemoryResearchStore
from app.tools.location_verifier import LocationVerifier
from tests.fakes import (
    FakeGateway,
    FakeLeadProvider,
    FakePropertyProvider,
    FakeQuoteProvider,
    decision,
    make_lead,
    make_property,
)


@pytest.fixture
def app():
    from app.main import app
    return app


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient
    return TestClient(app)


@pytest.fixture
def store():
    store = InMemoryResearchStore()
    with patch("app.api.routes.research.get_store", return_value=store):
        yield store


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["service"] == "lead-research"


def test_stream_unknown_lead_returns_404(client):
    orchestrator = MagicMock()
    orchestrator.start = AsyncMock(side_effect=LeadNotFoundError("Lead not found: 99"))
    with patch("app.api.routes.research.get_orchestrator", return_value=orchestrator):
        response = client.get("/api/research/99/stream")

    assert response.status_code == 404
    assert response.json()["detail"] == "Lead not found: 99"


def test_stream_upstream_failure_returns_502(client):
    orchestrator = MagicMock()
    orchestrator.start = AsyncMock(side_effect=httpx.ConnectError("connection refused"))
    with patch("app.api.routes.research.get_orchestrator", return_value=orchestrator):
        response = client.get("/api/research/8/stream")

    assert response.status_code == 502


def test_stream_emits_progress_events(client, store):
    orchestrator = ResearchOrchestrator(
        gateway=FakeGateway(
            [
                decision("SEARCH", reasoning="Need flood data", query="flood risk Ward 1"),
                decision("ANSWER", answer="Low risk"),
            ]
        ),
        lead_provider=FakeLeadProvider(),
        property_provider=FakePropertyProvider(),
        quote_provider=FakeQuoteProvider(),
        store=store,
        location_verifier=LocationVerifier(api_key=""),
        max_steps=4,
    )
    with patch("app.api.routes.research.get_orchestrator", return_value=orchestrator):
        response = client.get("/api/research/8/stream")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    body = response.text
    assert body.index("event: init") < body.index("event: thought")
    assert body.index("event: step") < body.index("event: answer")
    assert "data: Starting deep research for Lead #8" in body
    assert "data: Searching: flood risk Ward 1" in body
    assert "data: Low risk" in body
    assert len(store.reports) == 1
    assert store.contexts[response.headers["x-research-session"]]["findings"] == [
        "Search Result: facts about flood risk Ward 1"
    ]


def test_report_and_status(client, store):
    assert client.get("/api/research/8/report").status_code == 404
    assert client.get("/api/research/8/status").json() == {"lead_id": 8, "researched": False}

    store.reports.append(
        Report(owner_id="user123", subject_id="prop123", lead_id=8, final_summary="# Report")
    )

    report = client.get("/api/research/8/report").json()
    assert report["final_summary"] == "# Report"
    assert report["subject_id"] == "prop123"
    assert client.get("/api/research/8/status").json() == {"lead_id": 8, "researched": True}


def test_session_context(client, store):
    assert client.get("/api/research/sessions/missing").status_code == 404

    context = SessionContext(
        id="session-1",
        lead_id=8,
        goal="goal",
        snapshot=DomainSnapshot(lead=make_lead(), property_info=make_property()),
        findings=["Maps Result: []"],
        history=["ACTION: MAPS completed"],
    )
    store.contexts[context.id] = context.to_dict()

    data = client.get("/api/research/sessions/session-1").json()
    assert data == {
        "id": "session-1",
        "lead_id": 8,
        "goal": "goal",
        "findings": ["Maps Result: []"],
        "history": ["ACTION: MAPS completed"],
    }


def build_orchestrator(store) -> ResearchOrchestrator:
    return ResearchOrchestrator(
        gateway=FakeGateway([]),
        lead_provider=FakeLeadProvider(),
        property_provider=FakePropertyProvider(),
        quote_provider=FakeQuoteProvider(),
        store=store,
        location_verifier=LocationVerifier(api_key=""),
    )


def test_prompt_preview_renders_without_starting_a_run(client, store):
    orchestrator = build_orchestrator(store)
    with patch("app.api.routes.research.get_orchestrator", return_value=orchestrator):
        response = client.get("/api/research/8/prompt")

    assert response.status_code == 200
    data = response.json()
    assert data["lead_id"] == 8
    prompt = data["prompt"]
    assert prompt.startswith("GOAL: ")
    assert "123 Nguyen Hue" in prompt
    assert '"fireLimit": "5000000000"' in prompt
    assert '"type": "SEARCH" | "VERIFY_LOCATION" | "ANSWER"' in prompt
    assert store.contexts == {}
    assert orchestrator.gateway.decide_calls == []


def test_prompt_preview_unknown_lead_returns_404(client, store):
    orchestrator = build_orchestrator(store)
    orchestrator.lead_provider = FakeLeadProvider({})
    with patch("app.api.routes.research.get_orchestrator", return_value=orchestrator):
        response = client.get("/api/research/99/prompt")

    assert response.status_code == 404
    assert response.json()["detail"] == "Lead not found: 99"


def test_prompt_preview_upstream_failure_returns_502(client):
    orchestrator = MagicMock()
    orchestrator.preview_prompt = AsyncMock(side_effect=httpx.ConnectError("connection refused"))
    with patch("app.api.routes.research.get_orchestrator", return_value=orchestrator):
        response = client.get("/api/research/8/prompt")

    assert response.status_code == 502
