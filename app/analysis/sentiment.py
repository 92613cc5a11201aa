"""Lexicon sentiment around a brand mention.

The window is the sentence holding the first mention. Hits from a fixed
positive and a fixed negative word list are counted; the larger count wins
and a tie (including no hits) is neutral.
"""

from __future__ import annotations

import re

from app.analysis.types import SentimentLabel

POSITIVE_WORDS = (
    "best",
    "top",
    "excellent",
    "recommended",
    "recommend",
    "great",
    "popular",
    "leading",
    "reliable",
    "trusted",
    "outstanding",
    "favorite",
    "innovative",
    "powerful",
)

NEGATIVE_WORDS = (
    "poor",
    "bad",
    "avoid",
    "worst",
    "terrible",
    "unreliable",
    "disappointing",
    "overpriced",
    "complaints",
    "lacking",
    "buggy",
    "outdated",
)

_POSITIVE_RE = re.compile(r"\b(?:" + "|".join(POSITIVE_WORDS) + r")\b", re.IGNORECASE)
_NEGATIVE_RE = re.compile(r"\b(?:" + "|".join(NEGATIVE_WORDS) + r")\b", re.IGNORECASE)

# Sentence boundary: terminal punctuation followed by whitespace, or a newline
_SENTENCE_END = re.compile(r"[.!?](?=\s)|\n")


def sentence_window(text: str, start: int, end: int) -> str:
    """Return the sentence that contains ``text[start:end]``."""
    left = 0
    for m in _SENTENCE_END.finditer(text, 0, start):
        left = m.end()
    m = _SENTENCE_END.search(text, end)
    right = m.end() if m else len(text)
    return text[left:right]


def classify_sentiment(window: str) -> SentimentLabel:
    positive = len(_POSITIVE_RE.findall(window))
    negative = len(_NEGATIVE_RE.findall(window))
    if positive > negative:
        return SentimentLabel.POSITIVE
    if negative > positive:
        return SentimentLabel.NEGATIVE
    return SentimentLabel.NEUTRAL
