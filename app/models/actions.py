"""Actions the model may choose at each research step."""
from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, StringConstraints, TypeAdapter

NonBlank = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class _Action(BaseModel):
    reasoning: str | None = None

    @property
    def has_reasoning(self) -> bool:
        return bool(self.reasoning and self.reasoning.strip())


class SearchAction(_Action):
    type: Literal["SEARCH"]
    query: NonBlank


class VerifyLocationAction(_Action):
    type: Literal["VERIFY_LOCATION"]
    query: NonBlank


class AnswerAction(_Action):
    type: Literal["ANSWER"]
    answer: NonBlank


NextAction = Annotated[
    Union[SearchAction, VerifyLocationAction, AnswerAction],
    Field(discriminator="type"),
]

next_action_adapter: TypeAdapter[NextAction] = TypeAdapter(NextAction)
