from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from app.models.domain import DomainSnapshot


@dataclass
class SessionContext:
    """Working memory of one research run.

    ``findings`` and ``history`` are append-only; the run task that owns the
    context is its only writer.
    """

    id: str
    lead_id: int
    goal: str
    snapshot: DomainSnapshot
    findings: list[str] = field(default_factory=list)
    history: list[str] = field(default_factory=list)

    def add_finding(self, finding: str) -> None:
        self.findings.append(finding)

    def add_to_history(self, entry: str) -> None:
        self.history.append(entry)

    def _quotes_for_prompt(self) -> list[dict[str, Any]]:
        quotes = []
        for quote in self.snapshot.quotes:
            data = quote.model_dump(mode="json", by_alias=True, exclude_none=True)
            data["fireLimit"] = quote.fire_limit
            quotes.append(data)
        return quotes

    def to_prompt_string(self) -> str:
        property_json = self.snapshot.property_info.model_dump_json(by_alias=True, exclude_none=True)
        parts = [
            f"GOAL: {self.goal}",
            f"PROPERTY: {property_json}",
        ]
        if self.snapshot.quotes:
            parts.append(
                f"EXISTING AGENT QUOTES: {json.dumps(self._quotes_for_prompt(), ensure_ascii=False)}"
            )
        parts.append("HISTORY (What you have done so far):\n" + "\n".join(self.history))
        parts.append("FINDINGS (Knowledge Base):\n" + "\n".join(self.findings))
        return "\n\n".join(parts)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "lead_id": self.lead_id,
            "goal": self.goal,
            "snapshot": self.snapshot.model_dump(mode="json", by_alias=True),
            "findings": list(self.findings),
            "history": list(self.history),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionContext":
        return cls(
            id=data["id"],
            lead_id=int(data["lead_id"]),
            goal=data["goal"],
            snapshot=DomainSnapshot.model_validate(data["snapshot"]),
            findings=list(data.get("findings") or []),
            history=list(data.get("history") or []),
        )
