from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable
from uuid import uuid4

from app.clients.lead_services import LeadProvider, PropertyProvider, QuoteProvider
from app.config import settings
from app.llm_client import ModelGateway, ModelOptions
from app.models.actions import AnswerAction, NextAction, SearchAction, VerifyLocationAction
from app.models.context import SessionContext
from app.models.domain import DomainSnapshot, Quote
from app.models.events import ProgressEvent
from app.models.schemas import Report
from app.services import logger as log_service
from app.services import streaming
from app.services.database import ResearchStore
from app.services.event_sink import EventSink, QueueEventSink
from app.services.prompt_store import render_prompt
from app.services.response_parser import ActionParseError, parse_next_action
from app.tools.location_verifier import LocationVerifier
from app.tools.web_search import WebSearcher

logger = log_service.logger


class ResearchStartError(Exception):
    """A run could not start because required business data is missing."""


class LeadNotFoundError(ResearchStartError):
    pass


class PropertyNotFoundError(ResearchStartError):
    pass


class RunOutcome(str, Enum):
    ANSWERED = "answered"
    EXHAUSTED = "exhausted"
    ABORTED = "aborted"


@dataclass
class RunResult:
    session_id: str
    outcome: RunOutcome
    steps_taken: int
    report: Report | None = None
    error: str | None = None


@dataclass
class ResearchRun:
    """Handle returned to the caller of ``start``; the loop runs in ``task``."""

    session_id: str
    lead_id: int
    sink: EventSink
    task: asyncio.Task[RunResult]

    def events(self) -> AsyncIterator[ProgressEvent]:
        if not isinstance(self.sink, QueueEventSink):
            raise TypeError("events() is only available for queue-backed runs")
        return self.sink.events()

    async def wait(self) -> RunResult:
        return await self.task


@dataclass
class _RunState:
    context: SessionContext
    sink: EventSink
    terminal_sent: bool = False
    completed: bool = False
    report: Report | None = None


class ResearchOrchestrator:
    """Drives the bounded decide/act loop for one lead at a time.

    Flow per step:
      1. Render the context projection plus the action format
      2. Ask the model for the next action and parse it strictly
      3. Dispatch SEARCH / VERIFY_LOCATION / ANSWER
      4. Persist the context before the next step

    Startup failures raise from ``start``; everything after that is reported
    through the run's event sink only.
    """

    def __init__(
        self,
        *,
        gateway: ModelGateway,
        lead_provider: LeadProvider,
        property_provider: PropertyProvider,
        quote_provider: QuoteProvider,
        store: ResearchStore,
        location_verifier: LocationVerifier | None = None,
        web_searcher: WebSearcher | None = None,
        max_steps: int | None = None,
        decision_temperature: float | None = None,
        thinking_budget: int | None = None,
        goal: str | None = None,
    ):
        self.gateway = gateway
        self.lead_provider = lead_provider
        self.property_provider = property_provider
        self.quote_provider = quote_provider
        self.store = store
        self.location_verifier = location_verifier or LocationVerifier()
        self.web_searcher = web_searcher or WebSearcher(gateway)
        self.max_steps = max(int(max_steps if max_steps is not None else settings.research_max_steps), 1)
        self.decision_temperature = (
            settings.decision_temperature if decision_temperature is None else decision_temperature
        )
        budget = settings.thinking_budget if thinking_budget is None else thinking_budget
        self.thinking_budget = budget or None
        self.goal = goal or settings.research_goal
        self._handlers: dict[type, Callable[[_RunState, Any, int], Awaitable[bool]]] = {
            SearchAction: self._handle_search,
            VerifyLocationAction: self._handle_verify_location,
            AnswerAction: self._handle_answer,
        }
        self._tasks: set[asyncio.Task[RunResult]] = set()

    # --- Startup ---

    async def _load_snapshot(self, lead_id: int) -> DomainSnapshot:
        lead = await self.lead_provider.get_lead(lead_id)
        if lead is None:
            raise LeadNotFoundError(f"Lead not found: {lead_id}")
        if not lead.property_id or not lead.property_id.strip():
            raise PropertyNotFoundError(f"Lead does not have a property_info associated: {lead_id}")

        property_info = await self.property_provider.get_property(lead.property_id)
        if property_info is None:
            raise PropertyNotFoundError(f"Property not found with id: {lead.property_id}")

        quotes: list[Quote] = []
        try:
            quotes = await self.quote_provider.get_quotes(lead_id)
        except Exception as e:
            logger.warning(f"Could not fetch quotes for lead {lead_id}: {e}")

        return DomainSnapshot(lead=lead, property_info=property_info, quotes=quotes)

    async def start(self, lead_id: int, sink: EventSink | None = None) -> ResearchRun:
        """Resolve the lead's business data and launch the loop as a task.

        Raises ``ResearchStartError`` before any event exists when the lead or
        its property cannot be found.
        """
        snapshot = await self._load_snapshot(lead_id)
        session_id = str(uuid4())
        context = SessionContext(
            id=session_id,
            lead_id=lead_id,
            goal=self.goal,
            snapshot=snapshot,
        )
        state = _RunState(context=context, sink=sink or QueueEventSink())

        task = asyncio.create_task(self._run(state), name=f"research-{session_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        log_service.log_event(
            event_type="research_started",
            message="Research run started",
            session_id=session_id,
            lead_id=lead_id,
            quotes=len(snapshot.quotes),
        )
        return ResearchRun(session_id=session_id, lead_id=lead_id, sink=state.sink, task=task)

    async def preview_prompt(self, lead_id: int) -> str:
        """Render the first-step user prompt for a lead without starting a run."""
        snapshot = await self._load_snapshot(lead_id)
        context = SessionContext(id="", lead_id=lead_id, goal=self.goal, snapshot=snapshot)
        return self._user_prompt(context)

    # --- Loop ---

    async def _emit(self, state: _RunState, event: ProgressEvent) -> None:
        await state.sink.send(event)
        if event.is_terminal:
            state.terminal_sent = True

    async def _finish(self, state: _RunState, error: BaseException | None = None) -> None:
        if state.completed:
            return
        state.completed = True
        if error is None:
            await state.sink.complete()
        else:
            await state.sink.complete_with_error(error)

    def _user_prompt(self, context: SessionContext) -> str:
        return context.to_prompt_string() + "\n\n" + render_prompt("research.action_format")

    async def _decide(self, context: SessionContext) -> NextAction:
        system_prompt = render_prompt("research.system_prompt", max_steps=self.max_steps)
        raw = await self.gateway.decide(
            system_prompt,
            self._user_prompt(context),
            ModelOptions(
                temperature=self.decision_temperature,
                thinking_budget=self.thinking_budget,
            ),
        )
        return parse_next_action(raw)

    async def _run(self, state: _RunState) -> RunResult:
        context = state.context
        steps_taken = 0
        try:
            await self.store.save_context(context)
            await self._emit(state, streaming.init(context.lead_id))

            for step in range(self.max_steps):
                steps_taken = step + 1
                try:
                    action = await self._decide(context)
                except ActionParseError as e:
                    log_service.log_research_step(context.id, steps_taken, "parse", "failed", {"error": str(e)})
                    await self._emit(state, streaming.parse_failed(steps_taken, str(e)))
                    await self._finish(state)
                    return RunResult(context.id, RunOutcome.ABORTED, steps_taken, error=str(e))

                log_service.log_research_step(context.id, steps_taken, action.type, "started")
                if action.has_reasoning:
                    await self._emit(state, streaming.thought(action.reasoning))
                    context.add_to_history(f"STEP {steps_taken} - THOUGHT: {action.reasoning}")

                handler = self._handlers[type(action)]
                if await handler(state, action, steps_taken):
                    await self._finish(state)
                    return RunResult(context.id, RunOutcome.ANSWERED, steps_taken, report=state.report)

                await self.store.save_context(context)
                log_service.log_research_step(context.id, steps_taken, action.type, "completed")

            await self._emit(state, streaming.budget_exhausted(self.max_steps))
            await self._finish(state)
            return RunResult(context.id, RunOutcome.EXHAUSTED, steps_taken)
        except Exception as e:
            logger.exception(f"Research loop failed for session {context.id}")
            if not state.terminal_sent:
                try:
                    await self._emit(state, streaming.error(str(e)))
                except Exception as send_error:
                    logger.warning(f"Could not deliver error event for session {context.id}: {send_error}")
            await self._finish(state, e)
            return RunResult(context.id, RunOutcome.ABORTED, steps_taken, error=str(e))
        finally:
            if not state.completed:
                state.completed = True
                await state.sink.complete()

    # --- Dispatch (one handler per action; True ends the run) ---

    async def _handle_search(self, state: _RunState, action: SearchAction, step: int) -> bool:
        await self._emit(state, streaming.search_step(action.query))
        summary = await self.web_searcher.search(action.query)
        state.context.add_finding(f"Search Result: {summary}")
        state.context.add_to_history("ACTION: SEARCH completed")
        return False

    async def _handle_verify_location(
        self, state: _RunState, action: VerifyLocationAction, step: int
    ) -> bool:
        await self._emit(state, streaming.location_step(action.query))
        result = await self.location_verifier.verify(action.query)
        state.context.add_finding(f"Maps Result: {result}")
        state.context.add_to_history("ACTION: MAPS completed")
        return False

    async def _handle_answer(self, state: _RunState, action: AnswerAction, step: int) -> bool:
        snapshot = state.context.snapshot
        await self._emit(state, streaming.answer(action.answer))
        state.report = await self.store.save_report(
            Report(
                owner_id=snapshot.lead.owner_id,
                subject_id=snapshot.property_info.id,
                lead_id=snapshot.lead.id,
                final_summary=action.answer,
            )
        )
        await self.store.save_context(state.context)
        log_service.log_research_step(
            state.context.id, step, action.type, "answered", {"report_id": state.report.id}
        )
        return True
