"""Core types for response analysis."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class StructureType(str, Enum):
    """Detected structural format of the response."""

    NUMBERED_LIST = "numbered_list"  # 1. Brand A  2. Brand B ...
    BULLETED_LIST = "bulleted_list"  # - Brand A  - Brand B ...
    NARRATIVE = "narrative"  # Continuous prose
    TABLE = "table"  # Markdown table
    MIXED = "mixed"  # Combination


class SentimentLabel(str, Enum):
    """Three-way sentiment around the brand mention."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


# ---------------------------------------------------------------------------
# Data containers
# ---------------------------------------------------------------------------


@dataclass
class SourceUrl:
    """A cited source, normalized for storage."""

    url: str
    domain: str
    title: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class AnalyzedResult:
    """Signals extracted from one provider answer."""

    brand_mentioned: bool = False
    position: int | None = None  # 1-based rank in an enumerated answer
    brand_context: str = ""  # text around the first mention
    sentiment: SentimentLabel = SentimentLabel.NEUTRAL
    source_urls: list[SourceUrl] = field(default_factory=list)
    confidence: float = 0.0  # 0.0 .. 1.0
    structure_type: StructureType = StructureType.NARRATIVE
