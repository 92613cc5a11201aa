"""Aggregate cited sources across stored scan results."""

from collections import Counter
from collections.abc import Sequence

from app.models.scan_result import ScanResult

TOP_DOMAINS = 10


def summarize_sources(rows: Sequence[ScanResult]) -> dict:
    """Flatten the sources of mentioned results and count them by domain/platform.

    Rows are expected newest first; a URL is listed once, from its newest row.
    """
    sources: list[dict] = []
    seen: set[str] = set()
    domains: Counter[str] = Counter()
    platforms: Counter[str] = Counter()

    for row in rows:
        platforms[row.platform] += 1
        for src in row.source_urls or []:
            url = src.get("url") if isinstance(src, dict) else None
            if not url:
                continue
            domain = src.get("domain") or ""
            domains[domain] += 1
            if url in seen:
                continue
            seen.add(url)
            sources.append(
                {
                    "url": url,
                    "domain": domain,
                    "title": src.get("title") or domain,
                    "platform": row.platform,
                    "keyword_id": row.keyword_id,
                    "position": row.position,
                    "confidence": row.confidence,
                    "created_at": row.created_at,
                }
            )

    positions = [r.position for r in rows if r.position is not None]
    confidences = [r.confidence for r in rows if r.confidence is not None]
    return {
        "sources": sources,
        "top_domains": [{"domain": d, "count": c} for d, c in domains.most_common(TOP_DOMAINS) if d],
        "platform_breakdown": dict(platforms),
        "stats": {
            "total_results": len(rows),
            "total_sources": sum(domains.values()),
            "unique_domains": len([d for d in domains if d]),
            "avg_position": round(sum(positions) / len(positions), 2) if positions else None,
            "avg_confidence": round(sum(confidences) / len(confidences), 3) if confidences else None,
        },
    }
