"""Citation & Source Extractor.

Collects the sources behind an answer and normalizes each one to
``{url, domain, title}``:
  - Native citations from the provider API (Perplexity, Gemini grounding)
  - Inline hyperlinks: [text](url)
  - Footnote definitions: [1]: https://...
  - Bare URLs: https://example.com

Results are de-duplicated by URL and capped at ``MAX_SOURCES``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from urllib.parse import urlparse

from app.analysis.types import SourceUrl

logger = logging.getLogger(__name__)

MAX_SOURCES = 10

# ---------------------------------------------------------------------------
# URL / link extraction patterns
# ---------------------------------------------------------------------------

# Markdown-style links: [anchor text](url)
_MD_LINK_PATTERN = re.compile(
    r"\[([^\]]+)\]\((https?://[^\s\)]+)\)",
)

# Bare URLs
_BARE_URL_PATTERN = re.compile(
    r"(?<!\()(https?://[^\s\)\]\}\"'<>,]+)",
)

# Footnote definitions at end of text: [1]: https://... "optional title"
_FOOTNOTE_DEF_PATTERN = re.compile(
    r"^\s*\[\^?(\d+)\]:?\s+(https?://\S+)(?:\s+\"([^\"]+)\")?",
    re.MULTILINE,
)

_TRAILING_PUNCT = ".,;:!?*"


def extract_domain(url: str) -> str:
    """Extract domain from URL, stripping www. prefix."""
    try:
        domain = urlparse(url).hostname or ""
    except ValueError:
        return ""
    if domain.startswith("www."):
        domain = domain[4:]
    return domain.lower()


def _clean_url(url: str) -> str:
    return url.strip().rstrip(_TRAILING_PUNCT)


def extract_sources(
    text: str,
    native_citations: Iterable[tuple[str, str | None]] | None = None,
    limit: int = MAX_SOURCES,
) -> list[SourceUrl]:
    """Extract cited sources from the answer text and provider metadata.

    Args:
        text: Raw answer text.
        native_citations: ``(url, title)`` pairs supplied by the provider API.
        limit: Maximum number of sources returned.

    Returns:
        SourceUrl list, native citations first, deduplicated by URL.
    """
    sources: list[SourceUrl] = []
    seen: set[str] = set()

    def _add(url: str, title: str | None) -> None:
        url = _clean_url(url)
        domain = extract_domain(url)
        if not url or not domain or url in seen:
            return
        seen.add(url)
        sources.append(SourceUrl(url=url, domain=domain, title=(title or "").strip() or domain))

    # 1. Provider citation metadata
    for url, title in native_citations or []:
        if isinstance(url, str):
            _add(url, title)

    # 2. Markdown links: [text](url)
    for match in _MD_LINK_PATTERN.finditer(text):
        anchor = match.group(1).strip()
        # "[1](https://...)" style anchors are just indices
        _add(match.group(2), None if anchor.isdigit() else anchor)

    # 3. Footnote definitions: [1]: https://...
    for match in _FOOTNOTE_DEF_PATTERN.finditer(text):
        _add(match.group(2), match.group(3))

    # 4. Bare URLs (markdown link targets are already seen)
    for match in _BARE_URL_PATTERN.finditer(text):
        _add(match.group(1), None)

    if len(sources) > limit:
        logger.debug("Truncating %d sources to %d", len(sources), limit)
    return sources[:limit]


def get_unique_domains(sources: Iterable[SourceUrl]) -> list[str]:
    """Get a deduplicated list of domains from sources."""
    seen: set[str] = set()
    domains: list[str] = []
    for s in sources:
        if s.domain and s.domain not in seen:
            seen.add(s.domain)
            domains.append(s.domain)
    return domains
