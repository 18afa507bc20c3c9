from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class EventType(str, Enum):
    INIT = "init"
    THOUGHT = "thought"
    STEP = "step"
    ANSWER = "answer"
    WARNING = "warning"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (EventType.ANSWER, EventType.WARNING, EventType.ERROR)


@dataclass(frozen=True)
class ProgressEvent:
    event: EventType
    data: str = ""

    @property
    def is_terminal(self) -> bool:
        return self.event.is_terminal
