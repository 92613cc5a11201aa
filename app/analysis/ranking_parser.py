"""Structural & Ranking Parser.

Detects whether an answer is enumerated (numbered list, bulleted list,
markdown table) and, if so, where the brand ranks in it. Narrative answers
have no position.

Rank is counted over the entries that name a recognized brand (the target
or one of its competitors) so that filler entries ("Conclusion", "Pricing")
do not push the brand down. When no competitor shows up in the list, every
entry counts.
"""

from __future__ import annotations

import logging
import re

from app.analysis.types import StructureType

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Structure detection patterns
# ---------------------------------------------------------------------------

# Numbered list: "1. ", "2) ", "3: ", "### 1. ", "**1.** ", "1st: "
_NUMBERED_PATTERN = re.compile(
    r"^\s*(?:#{1,6}\s+)?(?:\*\*|__)?(\d{1,3})(?:st|nd|rd|th)?\s*[.):\-](?:\*\*|__)?\s+(.+)$",
    re.MULTILINE,
)

# Bulleted list: "- ", "* ", "• ", "+ "
_BULLET_PATTERN = re.compile(
    r"^\s*[-*•+]\s+(.+)$",
    re.MULTILINE,
)

# Markdown table: "| col1 | col2 |"
_TABLE_ROW_PATTERN = re.compile(
    r"^\s*\|(.+)\|\s*$",
    re.MULTILINE,
)

# Table separator: "|---|---|" or "| --- | :---: |"
_TABLE_SEP_PATTERN = re.compile(
    r"^\s*\|[\s\-:|]+\|\s*$",
    re.MULTILINE,
)


# ---------------------------------------------------------------------------
# Structure detection
# ---------------------------------------------------------------------------


def detect_structure(text: str) -> StructureType:
    """Detect the dominant structural format of the response text."""
    numbered_matches = _NUMBERED_PATTERN.findall(text)
    bullet_matches = _BULLET_PATTERN.findall(text)
    table_rows = _TABLE_ROW_PATTERN.findall(text)
    table_seps = _TABLE_SEP_PATTERN.findall(text)

    has_table = len(table_rows) >= 2 and len(table_seps) >= 1
    has_numbered = len(numbered_matches) >= 2
    has_bullets = len(bullet_matches) >= 2

    # Priority: table > numbered > bulleted > mixed > narrative
    if has_table and not has_numbered and not has_bullets:
        return StructureType.TABLE
    if has_numbered and not has_bullets:
        return StructureType.NUMBERED_LIST
    if has_bullets and not has_numbered:
        return StructureType.BULLETED_LIST
    if (has_numbered and has_bullets) or (has_table and (has_numbered or has_bullets)):
        return StructureType.MIXED

    return StructureType.NARRATIVE


def extract_list_items(text: str, structure: StructureType) -> list[str]:
    """Extract list entries in document order for the detected structure."""
    if structure == StructureType.NUMBERED_LIST:
        return [m.group(2).strip() for m in _NUMBERED_PATTERN.finditer(text)]

    if structure == StructureType.BULLETED_LIST:
        return [m.group(1).strip() for m in _BULLET_PATTERN.finditer(text)]

    if structure == StructureType.TABLE:
        return _extract_table_rows(text)

    if structure == StructureType.MIXED:
        # Ranked entries are normally the numbered ones; sub-bullets hold details
        items = extract_list_items(text, StructureType.NUMBERED_LIST)
        if not items:
            items = extract_list_items(text, StructureType.BULLETED_LIST)
        if not items:
            items = _extract_table_rows(text)
        return items

    return []


def _extract_table_rows(text: str) -> list[str]:
    """Data rows of a markdown table; the header row and separators are skipped."""
    lines = text.splitlines()
    items: list[str] = []
    for idx, line in enumerate(lines):
        if not _TABLE_ROW_PATTERN.match(line) or _TABLE_SEP_PATTERN.match(line):
            continue
        next_line = lines[idx + 1] if idx + 1 < len(lines) else ""
        if _TABLE_SEP_PATTERN.match(next_line):
            continue  # header
        cells = [c.strip() for c in line.strip().strip("|").split("|")]
        row = " | ".join(c for c in cells if c)
        if row:
            items.append(row)
    return items


def _contains(item: str, name: str) -> bool:
    return bool(name) and name.lower() in item.lower()


def find_brand_rank(items: list[str], brand_name: str, competitor_names: list[str] | None = None) -> int | None:
    """1-based rank of the first entry naming the brand, or None."""
    if not brand_name:
        return None

    competitors = [c for c in (competitor_names or []) if c and c.lower() != brand_name.lower()]
    recognized = [
        item for item in items if _contains(item, brand_name) or any(_contains(item, c) for c in competitors)
    ]
    has_competitor_entries = any(any(_contains(item, c) for c in competitors) for item in recognized)
    ranked = recognized if has_competitor_entries else items

    for idx, item in enumerate(ranked):
        if _contains(item, brand_name):
            return idx + 1
    return None


def estimate_position(
    text: str,
    brand_name: str,
    competitor_names: list[str] | None = None,
) -> tuple[int | None, StructureType]:
    """Return (position, structure) for the brand in the answer text."""
    structure = detect_structure(text)
    if structure == StructureType.NARRATIVE:
        return None, structure

    items = extract_list_items(text, structure)
    position = find_brand_rank(items, brand_name, competitor_names)
    logger.debug("Structure %s: %d entries, brand rank=%s", structure.value, len(items), position)
    return position, structure
