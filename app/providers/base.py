"""Base AI provider client.

A provider turns one prompt into one ``LlmResponse``: a single HTTP POST, no
retries and no caching. Anything that goes wrong with the call itself
(missing key, transport failure, non-2xx) raises ``ProviderError`` so the
orchestrator can degrade that provider without failing the scan. A 2xx
response whose text cannot be found is treated as an empty answer.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx

from app.core.exceptions import ProviderError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a helpful assistant. Answer the following question thoroughly."


@dataclass
class GenerationOptions:
    max_tokens: int = 1000
    temperature: float = 0.3


@dataclass
class TokenUsage:
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class ProviderCitation:
    """A source the provider attached to its answer (outside the text)."""

    url: str
    title: str | None = None


@dataclass
class LlmResponse:
    """Raw response from a provider API."""

    text: str
    model: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    citations: list[ProviderCitation] = field(default_factory=list)


class BaseLlmProvider(ABC):
    """Abstract base class for AI provider clients."""

    provider: str = ""  # platform label stored on results
    default_model: str = ""

    def __init__(self, api_key: str, model: str | None = None, timeout: float = 60.0):
        if not api_key:
            raise ProviderError(self.provider, "API key not configured")
        self.api_key = api_key
        self.model = model or self.default_model
        self.timeout = timeout

    # -- Per-provider mapping ----------------------------------------------

    @abstractmethod
    def endpoint(self) -> str:
        """URL the prompt is POSTed to."""

    @abstractmethod
    def build_payload(self, prompt: str, options: GenerationOptions) -> dict[str, Any]:
        """JSON body for one prompt."""

    @abstractmethod
    def parse_response(self, data: dict[str, Any]) -> LlmResponse:
        """Map a decoded 2xx body to an LlmResponse; must not raise on missing fields."""

    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    # -- Transport ---------------------------------------------------------

    async def send(self, prompt: str, options: GenerationOptions | None = None) -> LlmResponse:
        """Send one prompt and return the provider's answer."""
        options = options or GenerationOptions()
        payload = self.build_payload(prompt, options)

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(self.endpoint(), json=payload, headers=self.headers())
        except httpx.HTTPError as e:
            logger.error("%s transport error (model=%s): %s", self.provider, self.model, e)
            raise ProviderError(self.provider, f"{type(e).__name__}: {e}") from e

        if resp.status_code >= 400:
            message = _error_message(resp)
            logger.error("%s API %d for model=%s: %s", self.provider, resp.status_code, self.model, message)
            raise ProviderError(self.provider, message, http_status=resp.status_code)

        try:
            data = resp.json()
        except ValueError:
            logger.warning("%s returned a non-JSON body (model=%s), treating as empty", self.provider, self.model)
            return LlmResponse(text="", model=self.model)

        if not isinstance(data, dict):
            logger.warning("%s returned unexpected JSON (%s), treating as empty", self.provider, type(data).__name__)
            return LlmResponse(text="", model=self.model)

        response = self.parse_response(data)
        if not response.text:
            logger.warning("%s returned no answer text (model=%s)", self.provider, self.model)
        return response


def _error_message(resp: httpx.Response) -> str:
    """Best-effort error message from a failed provider response."""
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:500]
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])[:500]
        if isinstance(err, str):
            return err[:500]
    return resp.text[:500]


def parse_chat_completion(data: dict[str, Any], fallback_model: str) -> tuple[str, str, TokenUsage]:
    """Extract (text, model, usage) from an OpenAI-style chat completion body."""
    text = ""
    choices = data.get("choices")
    if isinstance(choices, list) and choices:
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        if isinstance(message, dict):
            text = message.get("content") or ""

    usage = data.get("usage") or {}
    return (
        text if isinstance(text, str) else "",
        data.get("model") or fallback_model,
        TokenUsage(
            input_tokens=usage.get("prompt_tokens", 0) or 0,
            output_tokens=usage.get("completion_tokens", 0) or 0,
        ),
    )
