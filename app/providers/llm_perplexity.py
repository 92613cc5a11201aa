"""Perplexity provider client (OpenAI-compatible API with web search)."""

import logging
from typing import Any

from app.providers.base import (
    SYSTEM_PROMPT,
    BaseLlmProvider,
    GenerationOptions,
    LlmResponse,
    ProviderCitation,
    parse_chat_completion,
)

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "sonar"
API_URL = "https://api.perplexity.ai/chat/completions"


class PerplexityProvider(BaseLlmProvider):
    """Perplexity Sonar API. Answers come with the URLs the model searched."""

    provider = "perplexity"
    default_model = DEFAULT_MODEL

    def endpoint(self) -> str:
        return API_URL

    def build_payload(self, prompt: str, options: GenerationOptions) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": options.temperature,
            "max_tokens": options.max_tokens,
        }

    def parse_response(self, data: dict[str, Any]) -> LlmResponse:
        text, model, usage = parse_chat_completion(data, self.model)
        return LlmResponse(text=text, model=model, usage=usage, citations=_extract_citations(data))


def _extract_citations(data: dict[str, Any]) -> list[ProviderCitation]:
    """Merge ``search_results`` (url + title) with the bare ``citations`` list."""
    citations: list[ProviderCitation] = []
    seen: set[str] = set()

    for item in data.get("search_results") or []:
        if isinstance(item, dict) and isinstance(item.get("url"), str) and item["url"] not in seen:
            seen.add(item["url"])
            citations.append(ProviderCitation(url=item["url"], title=item.get("title") or None))

    for url in data.get("citations") or []:
        if isinstance(url, str) and url not in seen:
            seen.add(url)
            citations.append(ProviderCitation(url=url))

    return citations
