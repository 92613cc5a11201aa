"""Scan work queue.

Deferred scans are ScanQueueItem rows. A worker claims due items in
(priority, scheduled_at) order and runs them through the same
``scan_keyword_tracking`` call the immediate path uses.

Status machine::

    pending -> running -> completed
                       -> failed -> pending   (while attempts < max_attempts)
    pending -> cancelled

Running items whose worker died are failed once their ``started_at`` is older
than ``scan_queue_stale_after_minutes``.
"""

import logging
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import ConfigurationError, QueueStateError
from app.db.base import utcnow
from app.models.brand_profile import BrandProfile
from app.models.keyword_tracking import KeywordTracking
from app.models.scan_queue_item import QueuePriority, QueueStatus, ScanQueueItem, ScanType
from app.services.scan_orchestrator import ScanOrchestrator
from app.services.scan_service import scan_keyword_tracking

logger = logging.getLogger(__name__)

_TRANSITIONS: dict[QueueStatus, set[QueueStatus]] = {
    QueueStatus.PENDING: {QueueStatus.RUNNING, QueueStatus.CANCELLED},
    QueueStatus.RUNNING: {QueueStatus.COMPLETED, QueueStatus.FAILED},
    QueueStatus.FAILED: {QueueStatus.PENDING},
    QueueStatus.COMPLETED: set(),
    QueueStatus.CANCELLED: set(),
}

RETRY_BACKOFF = timedelta(minutes=5)  # multiplied by the attempt number


@dataclass
class QueueRunSummary:
    claimed: int = 0
    completed: int = 0
    failed: int = 0
    retried: int = 0
    cancelled: int = 0
    reclaimed: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


def transition(
    item: ScanQueueItem,
    target: QueueStatus,
    now: datetime | None = None,
    error: str | None = None,
) -> ScanQueueItem:
    """Move an item to ``target``; raises QueueStateError on illegal moves."""
    now = now or utcnow()
    current = QueueStatus(item.status)
    if target not in _TRANSITIONS[current]:
        raise QueueStateError(item.id, current.value, target.value)

    if target == QueueStatus.RUNNING:
        item.started_at = now
        item.completed_at = None
        item.attempts = (item.attempts or 0) + 1
    elif target == QueueStatus.COMPLETED:
        item.completed_at = now
        item.last_error = None
    elif target == QueueStatus.FAILED:
        item.completed_at = now
        item.last_error = error
    elif target == QueueStatus.CANCELLED:
        item.completed_at = now
    elif target == QueueStatus.PENDING:
        if (item.attempts or 0) >= item.max_attempts:
            raise QueueStateError(item.id, current.value, target.value)
        item.started_at = None
        item.completed_at = None
        item.scheduled_at = now + RETRY_BACKOFF * (item.attempts or 1)

    item.status = target.value
    return item


def fail(item: ScanQueueItem, error: str, now: datetime | None = None) -> bool:
    """Mark a running item failed and requeue it if attempts remain.

    Returns True when the item went back to pending.
    """
    transition(item, QueueStatus.FAILED, now=now, error=error)
    if (item.attempts or 0) < item.max_attempts:
        transition(item, QueueStatus.PENDING, now=now)
        return True
    return False


# ---------------------------------------------------------------------------
# Producers
# ---------------------------------------------------------------------------


async def enqueue_keyword_scans(
    db: AsyncSession,
    brand: BrandProfile,
    keywords: list[KeywordTracking],
    scan_type: ScanType = ScanType.MANUAL,
    scheduled_at: datetime | None = None,
) -> list[ScanQueueItem]:
    """Create one pending queue item per keyword."""
    scheduled_at = scheduled_at or utcnow()
    priority = QueuePriority.MANUAL if scan_type == ScanType.MANUAL else QueuePriority.AUTOMATED
    brand_label = brand.display_name or brand.brand_name

    items = [
        ScanQueueItem(
            user_id=brand.user_id,
            brand_id=brand.id,
            keyword_id=kw.id,
            status=QueueStatus.PENDING.value,
            priority=priority.value,
            scheduled_at=scheduled_at,
            attempts=0,
            max_attempts=settings.scan_queue_max_attempts,
            scan_type=scan_type.value,
            meta={"brand_name": brand_label, "keyword": kw.keyword, "topic": kw.topic},
        )
        for kw in keywords
    ]
    db.add_all(items)
    await db.commit()
    logger.info("Queued %d %s scans for brand %d", len(items), scan_type.value, brand.id)
    return items


async def cancel_pending(db: AsyncSession, user_id: uuid.UUID, brand_id: int | None = None) -> int:
    """Cancel pending items of a user (optionally one brand). Returns the count."""
    stmt = select(ScanQueueItem).where(
        ScanQueueItem.user_id == user_id,
        ScanQueueItem.status == QueueStatus.PENDING.value,
    )
    if brand_id is not None:
        stmt = stmt.where(ScanQueueItem.brand_id == brand_id)
    items = (await db.execute(stmt)).scalars().all()

    now = utcnow()
    for item in items:
        transition(item, QueueStatus.CANCELLED, now=now)
    await db.commit()
    return len(items)


async def queue_status(db: AsyncSession, user_id: uuid.UUID, brand_id: int | None = None) -> dict[str, int]:
    """Item counts per status."""
    stmt = (
        select(ScanQueueItem.status, func.count(ScanQueueItem.id))
        .where(ScanQueueItem.user_id == user_id)
        .group_by(ScanQueueItem.status)
    )
    if brand_id is not None:
        stmt = stmt.where(ScanQueueItem.brand_id == brand_id)
    counts = {status.value: 0 for status in QueueStatus}
    for status, count in (await db.execute(stmt)).all():
        counts[status] = count
    return counts


# ---------------------------------------------------------------------------
# Worker
# ---------------------------------------------------------------------------


async def reclaim_stale_items(db: AsyncSession, now: datetime) -> int:
    """Fail running items whose worker never reported back.

    They are requeued like any other failure while attempts remain.
    """
    cutoff = now - timedelta(minutes=settings.scan_queue_stale_after_minutes)
    items = (
        await db.execute(
            select(ScanQueueItem)
            .where(
                ScanQueueItem.status == QueueStatus.RUNNING.value,
                ScanQueueItem.started_at < cutoff,
            )
            .with_for_update(skip_locked=True)
        )
    ).scalars().all()

    for item in items:
        error = f"Worker did not finish within {settings.scan_queue_stale_after_minutes} minutes"
        requeued = fail(item, error, now=now)
        logger.warning("Reclaimed stale queue item %d (%s)", item.id, "requeued" if requeued else "failed")

    if items:
        await db.commit()
    return len(items)


async def claim_due_items(db: AsyncSession, now: datetime, limit: int) -> tuple[list[int], int]:
    """Move due pending items to running.

    Items whose brand is gone, inactive or stopped are cancelled instead.
    Returns (claimed item ids, cancelled count).
    """
    stmt = (
        select(ScanQueueItem)
        .where(
            ScanQueueItem.status == QueueStatus.PENDING.value,
            ScanQueueItem.scheduled_at <= now,
        )
        .order_by(ScanQueueItem.priority, ScanQueueItem.scheduled_at, ScanQueueItem.id)
        .limit(limit)
        .with_for_update(skip_locked=True)
    )
    items = (await db.execute(stmt)).scalars().all()

    claimed: list[int] = []
    cancelled = 0
    for item in items:
        brand = await db.get(BrandProfile, item.brand_id)
        if brand is None or not brand.is_active or not brand.scanning_enabled:
            transition(item, QueueStatus.CANCELLED, now=now)
            cancelled += 1
            continue
        transition(item, QueueStatus.RUNNING, now=now)
        claimed.append(item.id)

    await db.commit()
    return claimed, cancelled


async def process_due_queue_items(
    db: AsyncSession,
    orchestrator: ScanOrchestrator,
    now: datetime | None = None,
    limit: int | None = None,
) -> QueueRunSummary:
    """Claim and run due queue items, one at a time."""
    orchestrator.ensure_configured()
    now = now or utcnow()
    summary = QueueRunSummary()

    summary.reclaimed = await reclaim_stale_items(db, now)
    claimed, summary.cancelled = await claim_due_items(db, now, limit or settings.scan_queue_batch_size)
    summary.claimed = len(claimed)

    for item_id in claimed:
        item = await db.get(ScanQueueItem, item_id)
        if item is None:
            continue
        brand_id, keyword_id = item.brand_id, item.keyword_id
        brand = await db.get(BrandProfile, brand_id)
        keyword = await db.get(KeywordTracking, keyword_id)

        error: str | None = None
        if brand is None or keyword is None or not keyword.is_active:
            error = f"Keyword {keyword_id} of brand {brand_id} is no longer active"
        else:
            try:
                await scan_keyword_tracking(db, brand, keyword, orchestrator, now=now)
            except ConfigurationError:
                raise
            except Exception as e:
                logger.error("Queue item %d failed: %s", item_id, e)
                await db.rollback()
                error = f"{type(e).__name__}: {e}"

        item = await db.get(ScanQueueItem, item_id)
        if item is None:
            continue
        if error is None:
            transition(item, QueueStatus.COMPLETED, now=utcnow())
            summary.completed += 1
        elif fail(item, error, now=utcnow()):
            summary.retried += 1
        else:
            summary.failed += 1
        await db.commit()

    if summary.claimed or summary.cancelled:
        logger.info("Scan queue run: %s", summary.to_dict())
    return summary
