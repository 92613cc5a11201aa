"""Brand & keyword tracking upserts."""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.brand_profile import BrandProfile
from app.models.keyword_tracking import KeywordTracking
from app.schemas.tracking import TrackRequest

logger = logging.getLogger(__name__)


async def upsert_brand(db: AsyncSession, user_id: uuid.UUID, body: TrackRequest) -> tuple[BrandProfile, bool]:
    """Create or update the brand identified by (user, lower-cased name).

    Returns (brand, created).
    """
    canonical = body.brand_name.lower()
    brand = (
        await db.execute(
            select(BrandProfile).where(BrandProfile.user_id == user_id, BrandProfile.brand_name == canonical)
        )
    ).scalar_one_or_none()

    created = brand is None
    if created:
        brand = BrandProfile(
            user_id=user_id,
            brand_name=canonical,
            display_name=body.brand_name,
            keywords=[],
            competitors=body.competitors or [],
            scan_interval=settings.default_scan_interval_hours,
            is_active=True,
            scanning_enabled=True,
            auto_scan_enabled=False,
        )
        db.add(brand)
    else:
        brand.display_name = body.brand_name
        brand.is_active = True
        if body.competitors is not None:
            brand.competitors = body.competitors

    merged = list(brand.keywords or [])
    known = {k.lower() for k in merged}
    for kw in body.keywords:
        if kw.lower() not in known:
            merged.append(kw)
            known.add(kw.lower())
    brand.keywords = merged  # reassign so the JSON column is flagged dirty

    await db.flush()
    return brand, created


async def upsert_keywords(db: AsyncSession, brand: BrandProfile, body: TrackRequest) -> list[KeywordTracking]:
    """Create or re-activate one KeywordTracking row per requested keyword."""
    existing = (
        (await db.execute(select(KeywordTracking).where(KeywordTracking.brand_id == brand.id))).scalars().all()
    )
    by_lower = {kw.keyword.lower(): kw for kw in existing}
    topics = body.topics or []

    rows: list[KeywordTracking] = []
    for idx, keyword in enumerate(body.keywords):
        topic = topics[idx].strip() if idx < len(topics) and topics[idx] else ""
        row = by_lower.get(keyword.lower())
        if row is None:
            row = KeywordTracking(
                user_id=brand.user_id,
                brand_id=brand.id,
                keyword=keyword,
                topic=topic or keyword,
                is_active=True,
                auto_scan_enabled=brand.auto_scan_enabled,
                scan_count=0,
            )
            db.add(row)
            by_lower[keyword.lower()] = row
        else:
            row.is_active = True
            if topic:
                row.topic = topic
        if row not in rows:
            rows.append(row)

    await db.commit()
    logger.info("Tracking %d keywords for brand %d", len(rows), brand.id)
    return rows


async def deactivate_brand(db: AsyncSession, brand: BrandProfile) -> None:
    """Soft-remove a brand: it stops scanning and leaves the automation schedule."""
    brand.is_active = False
    brand.scanning_enabled = False
    brand.auto_scan_enabled = False
    brand.next_scan_at = None
    await db.commit()


async def deactivate_keyword(db: AsyncSession, keyword: KeywordTracking) -> None:
    keyword.is_active = False
    keyword.auto_scan_enabled = False
    await db.commit()
