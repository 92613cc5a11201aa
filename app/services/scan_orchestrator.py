"""Scan orchestrator: one (brand, keyword, topic) unit across all providers.

Providers are called concurrently. Each call is isolated: a failing provider
yields a degraded result (``"Scan failed: <reason>"``, confidence 0) instead
of failing the batch. The orchestrator never touches the database.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import asdict, dataclass, field

from app.analysis.analyzer import HeuristicAnalyzer, ResponseAnalyzer
from app.core.config import settings
from app.core.exceptions import ConfigurationError, ProviderError
from app.core.metrics import PROVIDER_CALLS, PROVIDER_LATENCY
from app.providers.base import BaseLlmProvider, GenerationOptions, LlmResponse
from app.providers.registry import configured_providers

logger = logging.getLogger(__name__)

ERROR_PLATFORM = "error"  # pseudo-provider for scans that failed before any provider call


@dataclass
class ScanRequest:
    brand_name: str
    keyword: str
    topic: str | None = None
    competitors: list[str] = field(default_factory=list)
    brand_id: int | None = None
    keyword_id: int | None = None
    user_id: uuid.UUID | None = None

    @property
    def prompt(self) -> str:
        return (self.topic or "").strip() or self.keyword


@dataclass
class ScanResultData:
    """One provider's analyzed answer, ready to be stored."""

    platform: str
    query: str
    model: str | None = None
    brand_mentioned: bool = False
    position: int | None = None
    response_text: str = ""
    brand_context: str = ""
    sentiment: str = "neutral"
    source_urls: list[dict] = field(default_factory=list)
    confidence: float = 0.0
    scan_duration: int = 0  # ms
    tokens: int | None = None
    error: str | None = None

    @property
    def degraded(self) -> bool:
        return self.error is not None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ProviderOutcome:
    """Result of one provider task: either a response or the error it raised."""

    provider: str
    model: str | None
    response: LlmResponse | None = None
    error: Exception | None = None
    duration_ms: int = 0


def degraded_result(platform: str, query: str, reason: str, model: str | None = None, duration_ms: int = 0) -> ScanResultData:
    return ScanResultData(
        platform=platform,
        query=query,
        model=model,
        brand_mentioned=False,
        position=None,
        response_text=f"Scan failed: {reason}",
        confidence=0.0,
        scan_duration=duration_ms,
        error=reason,
    )


class ScanOrchestrator:
    """Fan a prompt out to every configured provider and analyze the answers."""

    def __init__(
        self,
        providers: dict[str, BaseLlmProvider] | None = None,
        analyzer: ResponseAnalyzer | None = None,
        options: GenerationOptions | None = None,
    ):
        self.providers = configured_providers() if providers is None else providers
        self.analyzer = analyzer or HeuristicAnalyzer()
        self.options = options or GenerationOptions(
            max_tokens=settings.scan_max_tokens,
            temperature=settings.scan_temperature,
        )

    def ensure_configured(self) -> None:
        if not self.providers:
            raise ConfigurationError(
                "No AI providers configured: set OPENAI_API_KEY, PERPLEXITY_API_KEY or GEMINI_API_KEY"
            )

    async def scan_keyword(self, request: ScanRequest) -> list[ScanResultData]:
        """Run one scan and return exactly one result per configured provider."""
        self.ensure_configured()
        prompt = request.prompt

        outcomes = await asyncio.gather(
            *(self._call_provider(name, provider, prompt) for name, provider in self.providers.items())
        )

        results = [self._to_result(outcome, request, prompt) for outcome in outcomes]
        logger.info(
            "Scan brand=%r keyword=%r: %d results, %d mentions, %d degraded",
            request.brand_name,
            request.keyword,
            len(results),
            sum(1 for r in results if r.brand_mentioned),
            sum(1 for r in results if r.degraded),
        )
        return results

    async def _call_provider(self, name: str, provider: BaseLlmProvider, prompt: str) -> ProviderOutcome:
        start = time.perf_counter()
        try:
            response = await provider.send(prompt, self.options)
        except ProviderError as e:
            outcome = ProviderOutcome(provider=name, model=provider.model, error=e)
        except Exception as e:
            logger.exception(
                "Unexpected %s failure for provider %s", type(e).__name__, name, extra={"provider": name}
            )
            outcome = ProviderOutcome(provider=name, model=provider.model, error=e)
        else:
            outcome = ProviderOutcome(provider=name, model=response.model, response=response)

        elapsed = time.perf_counter() - start
        outcome.duration_ms = int(elapsed * 1000)
        PROVIDER_LATENCY.labels(provider=name).observe(elapsed)
        PROVIDER_CALLS.labels(provider=name, status="error" if outcome.error else "ok").inc()
        return outcome

    def _to_result(self, outcome: ProviderOutcome, request: ScanRequest, prompt: str) -> ScanResultData:
        if outcome.error is not None or outcome.response is None:
            reason = str(outcome.error) if outcome.error else "no response"
            logger.warning(
                "Provider %s degraded for keyword %r: %s",
                outcome.provider,
                request.keyword,
                reason,
                extra={"provider": outcome.provider},
            )
            return degraded_result(outcome.provider, prompt, reason, outcome.model, outcome.duration_ms)

        start = time.perf_counter()
        response = outcome.response
        analyzed = self.analyzer.analyze(
            response.text,
            request.brand_name,
            request.competitors,
            [(c.url, c.title) for c in response.citations],
        )
        analysis_ms = int((time.perf_counter() - start) * 1000)

        return ScanResultData(
            platform=outcome.provider,
            query=prompt,
            model=outcome.model,
            brand_mentioned=analyzed.brand_mentioned,
            position=analyzed.position,
            response_text=response.text,
            brand_context=analyzed.brand_context,
            sentiment=analyzed.sentiment.value,
            source_urls=[s.to_dict() for s in analyzed.source_urls],
            confidence=analyzed.confidence,
            scan_duration=outcome.duration_ms + analysis_ms,
            tokens=response.usage.total or None,
        )
