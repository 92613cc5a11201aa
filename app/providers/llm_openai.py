"""OpenAI (ChatGPT) provider client."""

import logging
from typing import Any

from app.providers.base import SYSTEM_PROMPT, BaseLlmProvider, GenerationOptions, LlmResponse, parse_chat_completion

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"
API_URL = "https://api.openai.com/v1/chat/completions"

# Reasoning models reject temperature and max_tokens;
# they take max_completion_tokens instead.
_REASONING_MODEL_PREFIXES = ("gpt-5", "o1", "o3", "o4")


def _is_reasoning_model(model: str) -> bool:
    """Check if a model is a reasoning model (GPT-5 / o-series)."""
    return any(model.startswith(p) for p in _REASONING_MODEL_PREFIXES)


class OpenAiProvider(BaseLlmProvider):
    """OpenAI Chat Completions API."""

    provider = "chatgpt"
    default_model = DEFAULT_MODEL

    def endpoint(self) -> str:
        return API_URL

    def build_payload(self, prompt: str, options: GenerationOptions) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        }
        if _is_reasoning_model(self.model):
            payload["max_completion_tokens"] = options.max_tokens
        else:
            payload["temperature"] = options.temperature
            payload["max_tokens"] = options.max_tokens
        return payload

    def parse_response(self, data: dict[str, Any]) -> LlmResponse:
        text, model, usage = parse_chat_completion(data, self.model)
        return LlmResponse(text=text, model=model, usage=usage)
