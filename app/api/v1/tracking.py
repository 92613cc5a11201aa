"""Brand & keyword tracking endpoints."""

import uuid

from fastapi import APIRouter, Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user_id
from app.core.exceptions import NotFoundError
from app.core.rate_limit import limiter
from app.db.postgres import get_db
from app.models.brand_profile import BrandProfile
from app.models.keyword_tracking import KeywordTracking
from app.schemas.common import MessageResponse
from app.schemas.tracking import BrandResponse, KeywordResponse, TrackRequest, TrackResponse
from app.services.scan_queue import cancel_pending
from app.services.scan_service import get_user_brand
from app.services.tracking_service import deactivate_brand, deactivate_keyword, upsert_brand, upsert_keywords

router = APIRouter(prefix="/mentions", tags=["mentions"])


@router.post("/track", response_model=TrackResponse)
@limiter.limit("30/minute")
async def track_brand(
    request: Request,
    body: TrackRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Start (or update) tracking a brand and its keywords."""
    brand, created = await upsert_brand(db, user_id, body)
    keywords = await upsert_keywords(db, brand, body)
    verb = "Started tracking" if created else "Updated tracking for"
    return TrackResponse(
        message=f"{verb} {brand.display_name} ({len(keywords)} keywords)",
        brand=BrandResponse.model_validate(brand),
        keywords=[KeywordResponse.model_validate(kw) for kw in keywords],
    )


@router.get("/brands", response_model=list[BrandResponse])
async def list_brands(
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(BrandProfile)
        .where(BrandProfile.user_id == user_id, BrandProfile.is_active == True)  # noqa: E712
        .order_by(BrandProfile.id)
    )
    return result.scalars().all()


@router.get("/brands/{brand_id}/keywords", response_model=list[KeywordResponse])
async def list_keywords(
    brand_id: int,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    if not await get_user_brand(db, user_id, brand_id):
        raise NotFoundError("Brand tracking not found")
    result = await db.execute(
        select(KeywordTracking)
        .where(KeywordTracking.brand_id == brand_id, KeywordTracking.is_active == True)  # noqa: E712
        .order_by(KeywordTracking.id)
    )
    return result.scalars().all()


@router.delete("/brands/{brand_id}", response_model=MessageResponse)
async def remove_brand(
    brand_id: int,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Deactivate a brand. Its history is kept; pending scans are cancelled."""
    brand = await get_user_brand(db, user_id, brand_id)
    if not brand:
        raise NotFoundError("Brand tracking not found")
    name = brand.display_name
    await deactivate_brand(db, brand)
    cancelled = await cancel_pending(db, user_id, brand_id)
    return MessageResponse(message=f"Stopped tracking {name} ({cancelled} queued scans cancelled)")


@router.delete("/keywords/{keyword_id}", response_model=MessageResponse)
async def remove_keyword(
    keyword_id: int,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    keyword = (
        await db.execute(
            select(KeywordTracking).where(KeywordTracking.id == keyword_id, KeywordTracking.user_id == user_id)
        )
    ).scalar_one_or_none()
    if not keyword:
        raise NotFoundError("Keyword not found")
    text = keyword.keyword
    await deactivate_keyword(db, keyword)
    return MessageResponse(message=f"Stopped tracking keyword {text!r}")
