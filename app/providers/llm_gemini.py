"""Google Gemini provider client (native generateContent API)."""

import logging
from typing import Any

from app.providers.base import SYSTEM_PROMPT, BaseLlmProvider, GenerationOptions, LlmResponse, ProviderCitation, TokenUsage

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-1.5-flash"
API_BASE = "https://generativelanguage.googleapis.com/v1beta"


class GeminiProvider(BaseLlmProvider):
    """Gemini ``models/{model}:generateContent``."""

    provider = "gemini"
    default_model = DEFAULT_MODEL

    def endpoint(self) -> str:
        return f"{API_BASE}/models/{self.model}:generateContent"

    def headers(self) -> dict[str, str]:
        return {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }

    def build_payload(self, prompt: str, options: GenerationOptions) -> dict[str, Any]:
        return {
            "systemInstruction": {"parts": [{"text": SYSTEM_PROMPT}]},
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "maxOutputTokens": options.max_tokens,
                "temperature": options.temperature,
            },
        }

    def parse_response(self, data: dict[str, Any]) -> LlmResponse:
        candidates = data.get("candidates") or []
        candidate = candidates[0] if candidates and isinstance(candidates[0], dict) else {}

        # Blocked prompts come back with no content and a finishReason
        parts = (candidate.get("content") or {}).get("parts") or []
        text = "".join(p.get("text", "") for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str))
        if not text and candidate.get("finishReason"):
            logger.warning("Gemini returned no text (finishReason=%s)", candidate["finishReason"])

        usage = data.get("usageMetadata") or {}
        return LlmResponse(
            text=text,
            model=data.get("modelVersion") or self.model,
            usage=TokenUsage(
                input_tokens=usage.get("promptTokenCount", 0) or 0,
                output_tokens=usage.get("candidatesTokenCount", 0) or 0,
            ),
            citations=_grounding_citations(candidate),
        )


def _grounding_citations(candidate: dict[str, Any]) -> list[ProviderCitation]:
    chunks = (candidate.get("groundingMetadata") or {}).get("groundingChunks") or []
    citations = []
    for chunk in chunks:
        web = chunk.get("web") if isinstance(chunk, dict) else None
        if isinstance(web, dict) and isinstance(web.get("uri"), str):
            citations.append(ProviderCitation(url=web["uri"], title=web.get("title") or None))
    return citations
