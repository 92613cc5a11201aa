"""Build provider clients from configuration."""

import logging

from app.core.config import Settings, settings as default_settings
from app.providers.base import BaseLlmProvider
from app.providers.llm_gemini import GeminiProvider
from app.providers.llm_openai import OpenAiProvider
from app.providers.llm_perplexity import PerplexityProvider

logger = logging.getLogger(__name__)

# Platform label -> (client class, api key setting, model setting)
_PROVIDER_MAP: dict[str, tuple[type[BaseLlmProvider], str, str]] = {
    "chatgpt": (OpenAiProvider, "openai_api_key", "openai_model"),
    "perplexity": (PerplexityProvider, "perplexity_api_key", "perplexity_model"),
    "gemini": (GeminiProvider, "gemini_api_key", "gemini_model"),
}

PLATFORMS = tuple(_PROVIDER_MAP)


def configured_providers(cfg: Settings | None = None) -> dict[str, BaseLlmProvider]:
    """Return a client for every provider that has an API key.

    Providers without a key are left out; they are never called.
    """
    cfg = cfg or default_settings
    providers: dict[str, BaseLlmProvider] = {}
    for name, (cls, key_attr, model_attr) in _PROVIDER_MAP.items():
        api_key = getattr(cfg, key_attr, "")
        if not api_key:
            logger.debug("Provider %s has no API key, skipping", name)
            continue
        providers[name] = cls(
            api_key=api_key,
            model=getattr(cfg, model_attr, None),
            timeout=cfg.provider_timeout_seconds,
        )
    return providers
