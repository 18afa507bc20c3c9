from __future__ import annotations

from app.config import settings
from app.llm_client import ModelGateway, ModelOptions


class WebSearcher:
    """Web search through the model's search augmentation."""

    def __init__(self, gateway: ModelGateway, temperature: float | None = None):
        self.gateway = gateway
        self.temperature = settings.search_temperature if temperature is None else temperature

    async def search(self, query: str) -> str:
        options = ModelOptions(temperature=self.temperature, search_augmented=True)
        return await self.gateway.search(query, options)
