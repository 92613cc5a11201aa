"""Response analyzer.

``ResponseAnalyzer`` is the seam the orchestrator depends on; the default
``HeuristicAnalyzer`` uses substring matching, list parsing and a word
lexicon. A stronger analyzer (e.g. an LLM judge) can be swapped in by
passing another implementation to the orchestrator.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable

from app.analysis.citation_extractor import extract_sources
from app.analysis.ranking_parser import estimate_position
from app.analysis.sentiment import classify_sentiment, sentence_window
from app.analysis.types import AnalyzedResult, StructureType

logger = logging.getLogger(__name__)

CONTEXT_RADIUS = 100  # chars on each side of the first mention

# Confidence weights, sum to 1.0
_W_LENGTH = 0.2
_W_MENTION = 0.5
_W_SOURCES = 0.2
_W_POSITION = 0.1
_FULL_LENGTH_CHARS = 1000  # answers this long get the full length weight


class ResponseAnalyzer(ABC):
    """Extract brand signals from one provider answer. Must be pure."""

    @abstractmethod
    def analyze(
        self,
        raw_text: str,
        brand_name: str,
        competitor_names: list[str] | None = None,
        citations: Iterable[tuple[str, str | None]] | None = None,
    ) -> AnalyzedResult: ...


def find_mention(text: str, brand_name: str) -> int:
    """Offset of the first case-insensitive occurrence of the brand, or -1.

    Plain substring: no word boundaries, stemming or fuzzy matching.
    """
    if not brand_name or not text:
        return -1
    return text.lower().find(brand_name.lower())


def extract_context(text: str, start: int, length: int, radius: int = CONTEXT_RADIUS) -> str:
    return text[max(0, start - radius) : start + length + radius].strip()


def score_confidence(text_length: int, mentioned: bool, has_sources: bool, has_position: bool) -> float:
    """Weighted sum of corroborating signals, in [0, 1]."""
    length_factor = min(max(text_length, 0) / _FULL_LENGTH_CHARS, 1.0)
    score = (
        _W_LENGTH * length_factor
        + _W_MENTION * (1.0 if mentioned else 0.0)
        + _W_SOURCES * (1.0 if has_sources else 0.0)
        + _W_POSITION * (1.0 if has_position else 0.0)
    )
    return round(min(max(score, 0.0), 1.0), 3)


class HeuristicAnalyzer(ResponseAnalyzer):
    """Substring mention, list-rank position, lexicon sentiment."""

    def analyze(
        self,
        raw_text: str,
        brand_name: str,
        competitor_names: list[str] | None = None,
        citations: Iterable[tuple[str, str | None]] | None = None,
    ) -> AnalyzedResult:
        text = raw_text or ""
        sources = extract_sources(text, citations)

        offset = find_mention(text, brand_name)
        if offset < 0:
            return AnalyzedResult(
                brand_mentioned=False,
                source_urls=sources,
                confidence=score_confidence(len(text), False, bool(sources), False),
                structure_type=StructureType.NARRATIVE,
            )

        end = offset + len(brand_name)
        position, structure = estimate_position(text, brand_name, competitor_names)
        sentiment = classify_sentiment(sentence_window(text, offset, end))

        return AnalyzedResult(
            brand_mentioned=True,
            position=position,
            brand_context=extract_context(text, offset, len(brand_name)),
            sentiment=sentiment,
            source_urls=sources,
            confidence=score_confidence(len(text), True, bool(sources), position is not None),
            structure_type=structure,
        )

