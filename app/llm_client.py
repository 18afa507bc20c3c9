"""OpenRouter model gateway used by the research loop."""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

from app.config import settings
from app.services import logger as log_service

SEARCH_PROMPT = "Search for the following and summarize the key facts: {query}"


@dataclass(frozen=True)
class ModelOptions:
    temperature: float
    search_augmented: bool = False
    thinking_budget: int | None = None


class ModelGateway:
    """Blocking request/response access to the model.

    ``decide`` asks for the next research action, ``search`` asks the model to
    search the web and summarize. Failures are logged and re-raised.
    """

    def __init__(self, openai_client: Any, model: str | None = None):
        self._client = openai_client
        self.model = model or get_model()

    @staticmethod
    def _extra_body(options: ModelOptions) -> dict[str, Any]:
        extra: dict[str, Any] = {}
        if options.search_augmented:
            extra["plugins"] = [{"id": "web"}]
        if options.thinking_budget:
            extra["reasoning"] = {"max_tokens": options.thinking_budget}
        return extra

    async def _complete(
        self,
        caller: str,
        messages: list[dict[str, str]],
        options: ModelOptions,
    ) -> str:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": options.temperature,
        }
        extra_body = self._extra_body(options)
        if extra_body:
            kwargs["extra_body"] = extra_body

        t0 = time.monotonic()
        try:
            response = await self._client.chat.completions.create(**kwargs)
        except Exception as e:
            log_service.log_llm_call(
                model=self.model,
                caller=caller,
                duration_ms=int((time.monotonic() - t0) * 1000),
                status="error",
                error=str(e),
            )
            raise
        elapsed_ms = int((time.monotonic() - t0) * 1000)

        usage = getattr(response, "usage", None)
        log_service.log_llm_call(
            model=self.model,
            caller=caller,
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
            duration_ms=elapsed_ms,
        )

        choices = getattr(response, "choices", None) or []
        if not choices:
            return ""
        return getattr(choices[0].message, "content", None) or ""

    async def decide(self, system_prompt: str, user_prompt: str, options: ModelOptions) -> str:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})
        return await self._complete("decide", messages, options)

    async def search(self, query: str, options: ModelOptions) -> str:
        if not options.search_augmented:
            options = ModelOptions(
                temperature=options.temperature,
                search_augmented=True,
                thinking_budget=options.thinking_budget,
            )
        messages = [{"role": "user", "content": SEARCH_PROMPT.format(query=query)}]
        return await self._complete("search", messages, options)


def get_client() -> Any:
    """Get an OpenRouter client via the OpenAI-compatible SDK."""
    from openai import AsyncOpenAI

    base_url = settings.openrouter_base_url.strip() or "https://openrouter.ai/api/v1"
    return AsyncOpenAI(
        api_key=settings.openrouter_api_key,
        base_url=base_url,
    )


def get_model() -> str:
    """Get the active OpenRouter model id."""
    if settings.openrouter_model:
        return settings.openrouter_model
    return settings.default_model


_gateway: ModelGateway | None = None


def gateway() -> ModelGateway:
    """Get or create the shared model gateway."""
    global _gateway
    if _gateway is None:
        _gateway = ModelGateway(get_client())
    return _gateway
