from __future__ import annotations

from app.agents.orchestrator import ResearchOrchestrator
from app.clients.lead_services import LeadServiceClient, PropertyServiceClient, QuoteServiceClient
from app.llm_client import gateway
from app.services.database import ResearchStore, get_research_store

_orchestrator: ResearchOrchestrator | None = None


def get_store() -> ResearchStore:
    return get_research_store()


def get_orchestrator() -> ResearchOrchestrator:
    """Build the orchestrator once, wired to the configured services."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = ResearchOrchestrator(
            gateway=gateway(),
            lead_provider=LeadServiceClient(),
            property_provider=PropertyServiceClient(),
            quote_provider=QuoteServiceClient(),
            store=get_store(),
        )
    return _orchestrator
