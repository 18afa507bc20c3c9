from __future__ import annotations

from app.models.events import EventType, ProgressEvent


def init(lead_id: int) -> ProgressEvent:
    return ProgressEvent(event=EventType.INIT, data=f"Starting deep research for Lead #{lead_id}")


def thought(reasoning: str) -> ProgressEvent:
    return ProgressEvent(event=EventType.THOUGHT, data=reasoning)


def search_step(query: str) -> ProgressEvent:
    return ProgressEvent(event=EventType.STEP, data=f"Searching: {query}")


def location_step(query: str) -> ProgressEvent:
    return ProgressEvent(event=EventType.STEP, data=f"Checking Google Maps: {query}")


def answer(text: str) -> ProgressEvent:
    return ProgressEvent(event=EventType.ANSWER, data=text)


def budget_exhausted(max_steps: int) -> ProgressEvent:
    return ProgressEvent(
        event=EventType.WARNING,
        data=f"Research completed without final answer after {max_steps} steps",
    )


def parse_failed(step: int, reason: str) -> ProgressEvent:
    return ProgressEvent(
        event=EventType.ERROR,
        data=f"Step {step}: could not parse model response: {reason}",
    )


def error(message: str) -> ProgressEvent:
    return ProgressEvent(event=EventType.ERROR, data=f"Research failed: {message}")
