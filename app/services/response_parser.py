"""Turns free-text model output into a structured research action."""
from __future__ import annotations

import json

from pydantic import ValidationError

from app.models.actions import NextAction, next_action_adapter

FENCE = "```"


class ActionParseError(ValueError):
    """Model output could not be decoded into a NextAction."""


def extract(raw_text: str | None) -> str:
    """Return the JSON object candidate embedded in ``raw_text``.

    Strips a leading ```json / ``` marker and a trailing fence, then keeps the
    span from the first ``{`` to the last ``}``. Text without such a span is
    returned trimmed, so decoding it fails later.
    """
    if raw_text is None:
        return "{}"
    text = raw_text.strip()
    if text.startswith(FENCE + "json"):
        text = text[len(FENCE) + 4 :]
    elif text.startswith(FENCE):
        text = text[len(FENCE) :]
    if text.endswith(FENCE):
        text = text[: -len(FENCE)]
    text = text.strip()

    start = text.find("{")
    end = text.rfind("}")
    if start < 0 or end <= start:
        return text
    return text[start : end + 1]


def parse_next_action(raw_text: str | None) -> NextAction:
    candidate = extract(raw_text)
    try:
        payload = json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise ActionParseError(f"invalid JSON ({exc.msg})") from exc
    if not isinstance(payload, dict):
        raise ActionParseError("expected a JSON object")
    try:
        return next_action_adapter.validate_python(payload)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'action'}: {err['msg']}"
            for err in exc.errors()
        )
        raise ActionParseError(problems) from exc
