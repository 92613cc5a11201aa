"""Automation scheduler and automation toggles.

``AutomationScheduler.run_due_scans`` is invoked periodically (Celery beat or
the cron endpoint). It walks every brand with automation on, skips brands
whose ``next_scan_at`` is still in the future, scans each due brand's
automated keywords one after another and then pushes ``next_scan_at`` forward
by the brand's ``scan_interval``. The ``next_scan_at`` gate is what makes
overlapping invocations harmless.
"""

import logging
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConfigurationError, SchedulingError
from app.core.metrics import AUTOMATION_RUNS
from app.db.base import utcnow
from app.models.brand_profile import BrandProfile
from app.models.keyword_tracking import KeywordTracking
from app.services.scan_orchestrator import ScanOrchestrator
from app.services.scan_service import next_run_at, scan_keyword_tracking

logger = logging.getLogger(__name__)


@dataclass
class KeywordRunResult:
    brand_id: int
    brand_name: str
    keyword_id: int
    keyword: str
    topic: str
    mentions_found: int = 0
    scan_results: int = 0
    error: str | None = None


@dataclass
class AutomationRunSummary:
    total_scans_run: int = 0
    total_mentions_found: int = 0
    brands_processed: int = 0
    brands_skipped: int = 0
    results: list[KeywordRunResult] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


class AutomationScheduler:
    """Runs automated scans for every due brand, strictly sequentially."""

    def __init__(self, db: AsyncSession, orchestrator: ScanOrchestrator | None = None):
        self.db = db
        self.orchestrator = orchestrator or ScanOrchestrator()

    async def run_due_scans(self, now: datetime | None = None) -> AutomationRunSummary:
        self.orchestrator.ensure_configured()
        now = now or utcnow()
        summary = AutomationRunSummary()

        brands = (
            await self.db.execute(
                select(BrandProfile)
                .where(
                    BrandProfile.auto_scan_enabled == True,  # noqa: E712
                    BrandProfile.is_active == True,  # noqa: E712
                )
                .order_by(BrandProfile.id)
            )
        ).scalars().all()
        due = [(b.id, b.display_name or b.brand_name, b.next_scan_at) for b in brands]

        for brand_id, brand_name, next_scan_at in due:
            if next_scan_at is not None and next_scan_at > now:
                summary.brands_skipped += 1
                logger.debug("Brand %d not due until %s", brand_id, next_scan_at.isoformat())
                continue

            summary.brands_processed += 1
            try:
                await self._run_brand(brand_id, brand_name, now, summary)
            except ConfigurationError:
                raise
            except Exception as e:
                await self.db.rollback()
                logger.exception("Automated scan failed for brand %d: %s", brand_id, e)
                AUTOMATION_RUNS.labels(status="brand_error").inc()

        AUTOMATION_RUNS.labels(status="ok").inc()
        logger.info(
            "Automated scan run: %d scans, %d mentions, %d brands processed, %d skipped",
            summary.total_scans_run,
            summary.total_mentions_found,
            summary.brands_processed,
            summary.brands_skipped,
        )
        return summary

    async def _run_brand(self, brand_id: int, brand_name: str, now: datetime, summary: AutomationRunSummary) -> None:
        keywords = (
            await self.db.execute(
                select(KeywordTracking)
                .where(
                    KeywordTracking.brand_id == brand_id,
                    KeywordTracking.auto_scan_enabled == True,  # noqa: E712
                    KeywordTracking.is_active == True,  # noqa: E712
                )
                .order_by(KeywordTracking.id)
            )
        ).scalars().all()
        targets = [(kw.id, kw.keyword, kw.prompt) for kw in keywords]
        logger.info("Brand %d (%s): %d automated keywords due", brand_id, brand_name, len(targets))

        for kw_id, kw_text, topic in targets:
            entry = KeywordRunResult(
                brand_id=brand_id, brand_name=brand_name, keyword_id=kw_id, keyword=kw_text, topic=topic
            )
            brand = await self.db.get(BrandProfile, brand_id)
            keyword = await self.db.get(KeywordTracking, kw_id)
            try:
                results = await scan_keyword_tracking(self.db, brand, keyword, self.orchestrator, now=now)
            except ConfigurationError:
                raise
            except Exception as e:
                await self.db.rollback()
                err = SchedulingError(brand_id, kw_id, e)
                logger.error("Automated keyword scan failed: %s", err)
                entry.error = str(e)
            else:
                entry.scan_results = len(results)
                entry.mentions_found = sum(1 for r in results if r.brand_mentioned)
                summary.total_scans_run += 1
                summary.total_mentions_found += entry.mentions_found

            keyword = await self.db.get(KeywordTracking, kw_id, populate_existing=True)
            if keyword is not None:
                keyword.auto_scan_last_run = now
                await self.db.commit()
            summary.results.append(entry)

        brand = await self.db.get(BrandProfile, brand_id)
        if brand is not None:
            brand.last_scan_at = now
            brand.auto_scan_last_run = now
            brand.next_scan_at = next_run_at(now, brand.scan_interval)
            await self.db.commit()


# ---------------------------------------------------------------------------
# Toggles & status
# ---------------------------------------------------------------------------


async def set_brand_automation(
    db: AsyncSession, brand: BrandProfile, enabled: bool, now: datetime | None = None
) -> BrandProfile:
    """Turn automation on/off for a brand and all of its keywords."""
    now = now or utcnow()
    brand_id = brand.id
    keywords = (
        (await db.execute(select(KeywordTracking).where(KeywordTracking.brand_id == brand_id))).scalars().all()
    )

    brand.auto_scan_enabled = enabled
    if enabled:
        brand.auto_scan_started_at = now
        brand.next_scan_at = next_run_at(now, brand.scan_interval)
    else:
        brand.auto_scan_started_at = None
        brand.next_scan_at = None

    for kw in keywords:
        kw.auto_scan_enabled = enabled
        kw.auto_scan_started_at = now if enabled else None

    await db.commit()
    logger.info("Automation %s for brand %d (%d keywords)", "enabled" if enabled else "disabled", brand_id, len(keywords))
    return brand


async def set_keyword_automation(
    db: AsyncSession, keyword: KeywordTracking, enabled: bool, now: datetime | None = None
) -> KeywordTracking:
    """Turn automation on/off for a single keyword; the brand is untouched."""
    now = now or utcnow()
    keyword.auto_scan_enabled = enabled
    keyword.auto_scan_started_at = now if enabled else None
    await db.commit()
    return keyword


async def automation_status(db: AsyncSession, user_id: uuid.UUID, brand_id: int | None = None) -> list[dict]:
    """Automation state of a user's brands and their keywords."""
    stmt = select(BrandProfile).where(BrandProfile.user_id == user_id, BrandProfile.is_active == True)  # noqa: E712
    if brand_id is not None:
        stmt = stmt.where(BrandProfile.id == brand_id)
    brands = (await db.execute(stmt.order_by(BrandProfile.id))).scalars().all()
    if not brands:
        return []

    keywords = (
        await db.execute(
            select(KeywordTracking)
            .where(KeywordTracking.brand_id.in_([b.id for b in brands]))
            .order_by(KeywordTracking.id)
        )
    ).scalars().all()
    by_brand: dict[int, list[KeywordTracking]] = {}
    for kw in keywords:
        by_brand.setdefault(kw.brand_id, []).append(kw)

    return [
        {
            "brand_id": b.id,
            "brand_name": b.display_name,
            "auto_scan_enabled": b.auto_scan_enabled,
            "auto_scan_started_at": b.auto_scan_started_at,
            "auto_scan_last_run": b.auto_scan_last_run,
            "scan_interval": b.scan_interval,
            "last_scan_at": b.last_scan_at,
            "next_scan_at": b.next_scan_at,
            "keywords": [
                {
                    "keyword_id": kw.id,
                    "keyword": kw.keyword,
                    "topic": kw.topic,
                    "auto_scan_enabled": kw.auto_scan_enabled,
                    "auto_scan_last_run": kw.auto_scan_last_run,
                    "last_scan_at": kw.last_scan_at,
                }
                for kw in by_brand.get(b.id, [])
            ],
        }
        for b in brands
    ]


async def scheduler_status(db: AsyncSession, now: datetime | None = None) -> dict:
    """System-wide view of the automation schedule."""
    now = now or utcnow()
    enabled = (
        BrandProfile.auto_scan_enabled == True,  # noqa: E712
        BrandProfile.is_active == True,  # noqa: E712
    )
    total_brands = (await db.execute(select(func.count(BrandProfile.id)).where(*enabled))).scalar_one()
    total_topics = (
        await db.execute(
            select(func.count(KeywordTracking.id))
            .join(BrandProfile, BrandProfile.id == KeywordTracking.brand_id)
            .where(
                *enabled,
                KeywordTracking.auto_scan_enabled == True,  # noqa: E712
                KeywordTracking.is_active == True,  # noqa: E712
            )
        )
    ).scalar_one()
    next_scan = (await db.execute(select(func.min(BrandProfile.next_scan_at)).where(*enabled))).scalar_one()
    due = (
        await db.execute(
            select(func.count(BrandProfile.id)).where(
                *enabled,
                (BrandProfile.next_scan_at == None) | (BrandProfile.next_scan_at <= now),  # noqa: E711
            )
        )
    ).scalar_one()
    return {
        "total_enabled_brands": total_brands,
        "total_enabled_topics": total_topics,
        "due_brands": due,
        "next_scheduled_scan": next_scan,
        "checked_at": now,
    }
