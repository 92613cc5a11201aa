"""Scan service: the single path every scan goes through.

Immediate API scans, queue workers and the automation scheduler all call
``scan_keyword_tracking``: lock the keyword, run the orchestrator, store the
rows, fold the batch into the keyword's aggregates.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import ConfigurationError, PersistenceError
from app.db.base import utcnow
from app.models.brand_profile import BrandProfile
from app.models.keyword_tracking import KeywordTracking
from app.services.keyword_locks import keyword_locks
from app.services.scan_orchestrator import (
    ERROR_PLATFORM,
    ScanOrchestrator,
    ScanRequest,
    ScanResultData,
    degraded_result,
)
from app.services.scan_persistence import PersistContext, store_scan_results, update_keyword_aggregates

logger = logging.getLogger(__name__)


@dataclass
class KeywordScanOutcome:
    keyword_id: int | None
    keyword: str
    results: list[ScanResultData] = field(default_factory=list)
    error: str | None = None

    @property
    def mentions_found(self) -> int:
        return sum(1 for r in self.results if r.brand_mentioned)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def get_user_brand(db: AsyncSession, user_id: uuid.UUID, brand_id: int) -> BrandProfile | None:
    result = await db.execute(
        select(BrandProfile).where(BrandProfile.id == brand_id, BrandProfile.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def backfill_keywords(db: AsyncSession, brand: BrandProfile) -> list[KeywordTracking]:
    """Create KeywordTracking rows from the brand's keyword list when it has none."""
    brand_id, user_id = brand.id, brand.user_id
    existing = (
        await db.execute(select(KeywordTracking.id).where(KeywordTracking.brand_id == brand_id).limit(1))
    ).scalar_one_or_none()
    if existing is not None:
        return []

    created: list[KeywordTracking] = []
    seen: set[str] = set()
    for raw in brand.keywords or []:
        keyword = str(raw).strip()
        if not keyword or keyword.lower() in seen:
            continue
        seen.add(keyword.lower())
        row = KeywordTracking(user_id=user_id, brand_id=brand_id, keyword=keyword, topic=keyword)
        db.add(row)
        created.append(row)

    if created:
        try:
            await db.commit()
        except IntegrityError:
            # A concurrent request back-filled first
            await db.rollback()
            logger.info("Keyword back-fill for brand %d raced with another writer", brand_id)
            return []
        logger.info("Back-filled %d keyword rows for brand %d", len(created), brand_id)
    return created


async def select_keywords(
    db: AsyncSession,
    brand: BrandProfile,
    keyword_id: int | None = None,
) -> list[KeywordTracking]:
    """Active keywords of a brand (or the single requested one)."""
    brand_id = brand.id
    await backfill_keywords(db, brand)
    stmt = select(KeywordTracking).where(
        KeywordTracking.brand_id == brand_id,
        KeywordTracking.is_active == True,  # noqa: E712
    )
    if keyword_id is not None:
        stmt = stmt.where(KeywordTracking.id == keyword_id)
    result = await db.execute(stmt.order_by(KeywordTracking.id))
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Scanning
# ---------------------------------------------------------------------------


def next_run_at(now: datetime, interval_hours: int | None) -> datetime:
    hours = interval_hours if interval_hours and interval_hours > 0 else settings.default_scan_interval_hours
    return now + timedelta(hours=hours)


def build_request(brand: BrandProfile, keyword: KeywordTracking) -> ScanRequest:
    return ScanRequest(
        brand_name=brand.display_name or brand.brand_name,
        keyword=keyword.keyword,
        topic=keyword.topic,
        competitors=brand.competitor_names,
        brand_id=brand.id,
        keyword_id=keyword.id,
        user_id=brand.user_id,
    )


async def scan_keyword_tracking(
    db: AsyncSession,
    brand: BrandProfile,
    keyword: KeywordTracking,
    orchestrator: ScanOrchestrator,
    now: datetime | None = None,
) -> list[ScanResultData]:
    """Scan one keyword and persist the batch.

    Aggregate failures are logged; the provider results are still returned.
    """
    request = build_request(brand, keyword)
    ctx = PersistContext(user_id=request.user_id, brand_id=request.brand_id, keyword_id=request.keyword_id)

    async with keyword_locks.hold(request.keyword_id):
        results = await orchestrator.scan_keyword(request)
        scanned_at = now or utcnow()
        await store_scan_results(db, ctx, results)
        try:
            await update_keyword_aggregates(db, request.keyword_id, results, scanned_at)
        except PersistenceError as e:
            logger.error("%s", e)

    return results


async def run_immediate_scan(
    db: AsyncSession,
    brand: BrandProfile,
    orchestrator: ScanOrchestrator,
    keyword_id: int | None = None,
    now: datetime | None = None,
) -> list[KeywordScanOutcome]:
    """Scan the brand's keywords now and return per-keyword results.

    A keyword that fails outright is reported with an error and a single
    unpersisted ``"error"`` pseudo-result; the other keywords still run.
    """
    orchestrator.ensure_configured()
    brand_id = brand.id

    keywords = await select_keywords(db, brand, keyword_id)
    targets = [(kw.id, kw.keyword, kw.prompt) for kw in keywords]
    if not targets:
        return []
    outcomes: list[KeywordScanOutcome] = []

    for kw_id, kw_text, prompt in targets:
        brand = await db.get(BrandProfile, brand_id)
        keyword = await db.get(KeywordTracking, kw_id)
        if brand is None or keyword is None:
            break
        try:
            results = await scan_keyword_tracking(db, brand, keyword, orchestrator, now=now)
        except ConfigurationError:
            raise
        except Exception as e:
            logger.error("Immediate scan failed for brand %d keyword %d: %s", brand_id, kw_id, e)
            await db.rollback()
            outcomes.append(
                KeywordScanOutcome(
                    keyword_id=kw_id,
                    keyword=kw_text,
                    results=[degraded_result(ERROR_PLATFORM, prompt, str(e))],
                    error=str(e),
                )
            )
            continue
        outcomes.append(KeywordScanOutcome(keyword_id=kw_id, keyword=kw_text, results=results))

    brand = await db.get(BrandProfile, brand_id)
    if brand is not None:
        scanned_at = now or utcnow()
        brand.last_scan_at = scanned_at
        brand.scanning_enabled = True
        if brand.auto_scan_enabled and (brand.next_scan_at is None or brand.next_scan_at < scanned_at):
            brand.next_scan_at = next_run_at(scanned_at, brand.scan_interval)
        await db.commit()

    return outcomes
