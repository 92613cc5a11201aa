"""Scan persistence: immutable result rows and keyword aggregates.

Each result row is committed on its own so one bad row never rolls back its
siblings. Aggregates are derived from the current batch only: the new
per-provider positions replace the old snapshot and ``avg_position`` is the
mean of this batch's non-null positions.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import PersistenceError
from app.core.metrics import SCAN_RESULTS_STORED
from app.models.keyword_tracking import KeywordTracking
from app.models.scan_result import ScanResult
from app.services.scan_orchestrator import ScanResultData

logger = logging.getLogger(__name__)

# Platform label -> KeywordTracking column holding its latest position
POSITION_FIELDS: dict[str, str] = {
    "chatgpt": "chatgpt_position",
    "perplexity": "perplexity_position",
    "gemini": "gemini_position",
}


@dataclass
class PersistContext:
    user_id: uuid.UUID
    brand_id: int
    keyword_id: int | None


def to_row(ctx: PersistContext, result: ScanResultData) -> ScanResult:
    return ScanResult(
        user_id=ctx.user_id,
        brand_id=ctx.brand_id,
        keyword_id=ctx.keyword_id,
        platform=result.platform,
        model=result.model,
        query=result.query,
        brand_mentioned=result.brand_mentioned,
        position=result.position,
        response_text=result.response_text,
        brand_context=result.brand_context or None,
        sentiment=result.sentiment,
        source_urls=result.source_urls,
        confidence=result.confidence,
        scan_duration=result.scan_duration,
        tokens=result.tokens,
        error=result.error,
    )


async def store_scan_results(db: AsyncSession, ctx: PersistContext, results: list[ScanResultData]) -> int:
    """Write one row per result; returns how many rows were stored."""
    stored = 0
    for result in results:
        db.add(to_row(ctx, result))
        try:
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            err = PersistenceError(
                f"Failed to store {result.platform} result for keyword {ctx.keyword_id}: {type(e).__name__}: {e}"
            )
            logger.error("%s", err)
            SCAN_RESULTS_STORED.labels(status="error").inc()
            continue
        stored += 1
        SCAN_RESULTS_STORED.labels(status="ok").inc()
    return stored


def average_position(results: list[ScanResultData]) -> float | None:
    """Mean of non-null positions; degraded rows never carry a position."""
    positions = [r.position for r in results if r.position is not None]
    if not positions:
        return None
    return round(sum(positions) / len(positions), 2)


def position_change(previous: float | None, current: float | None) -> float | None:
    """Positive when the brand moved up (to a smaller rank number)."""
    if previous is None or current is None:
        return None
    return round(previous - current, 2)


async def update_keyword_aggregates(
    db: AsyncSession,
    keyword_id: int,
    results: list[ScanResultData],
    scanned_at: datetime,
) -> KeywordTracking:
    """Fold a scan batch into the keyword's aggregate fields and commit.

    The row is re-read from the database so the version check only rejects
    writes that raced this one, not writes that finished before it.
    """
    try:
        keyword = await db.get(KeywordTracking, keyword_id, populate_existing=True)
    except SQLAlchemyError as e:
        raise PersistenceError(f"Failed to load keyword {keyword_id}: {e}") from e
    if keyword is None:
        raise PersistenceError(f"Keyword {keyword_id} no longer exists")

    batch = {r.platform: r.position for r in results if not r.degraded}
    for platform, column in POSITION_FIELDS.items():
        setattr(keyword, column, batch.get(platform))

    new_avg = average_position(results)
    previous = keyword.avg_position
    keyword.previous_avg_position = previous
    keyword.avg_position = new_avg
    keyword.position_change = position_change(previous, new_avg)
    keyword.scan_count = (keyword.scan_count or 0) + 1
    keyword.last_scan_at = scanned_at

    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        raise PersistenceError(f"Failed to update aggregates for keyword {keyword_id}: {type(e).__name__}: {e}") from e

    logger.debug(
        "Keyword %d aggregates: avg=%s previous=%s change=%s scans=%d",
        keyword_id,
        new_avg,
        previous,
        keyword.position_change,
        keyword.scan_count,
    )
    return keyword
