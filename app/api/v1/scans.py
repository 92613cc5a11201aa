"""Scan endpoints."""

import uuid

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user_id, get_orchestrator
from app.core.exceptions import BadRequestError, NotFoundError
from app.core.rate_limit import limiter
from app.db.base import utcnow
from app.db.postgres import get_db
from app.models.brand_profile import BrandProfile
from app.models.scan_queue_item import ScanType
from app.models.scan_result import ScanResult
from app.schemas.scan import (
    KeywordScanOut,
    ScanningStatusResponse,
    ScanOverviewResponse,
    ScanTriggerRequest,
    ScanTriggerResponse,
    SourcesResponse,
    StopRequest,
    StopResponse,
)
from app.services.scan_orchestrator import ScanOrchestrator
from app.services.scan_queue import cancel_pending, enqueue_keyword_scans, queue_status
from app.services.scan_service import get_user_brand, run_immediate_scan, select_keywords
from app.services.source_report import summarize_sources

router = APIRouter(prefix="/mentions", tags=["mentions"])

RECENT_SCANS = 50


@router.post("/scan", response_model=ScanTriggerResponse)
@limiter.limit("10/minute")
async def trigger_scan(
    request: Request,
    body: ScanTriggerRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    orchestrator: ScanOrchestrator = Depends(get_orchestrator),
):
    """Scan a brand's keywords now, or queue them for the worker."""
    brand = await get_user_brand(db, user_id, body.brand_id)
    if not brand or not brand.is_active:
        raise NotFoundError("Brand tracking not found")
    brand_label = brand.display_name
    orchestrator.ensure_configured()

    if body.immediate:
        outcomes = await run_immediate_scan(db, brand, orchestrator, keyword_id=body.keyword_id)
        if not outcomes:
            raise BadRequestError("No active keywords to scan")
        return ScanTriggerResponse(
            message=f"Scanned {len(outcomes)} keywords for {brand_label}",
            results=[
                KeywordScanOut(
                    keyword_id=o.keyword_id,
                    keyword=o.keyword,
                    mentions_found=o.mentions_found,
                    results=[r.to_dict() for r in o.results],
                    error=o.error,
                )
                for o in outcomes
            ],
        )

    keywords = await select_keywords(db, brand, body.keyword_id)
    if not keywords:
        raise BadRequestError("No active keywords to scan")
    brand = await db.get(BrandProfile, body.brand_id)
    brand.scanning_enabled = True
    scheduled_at = utcnow()
    items = await enqueue_keyword_scans(db, brand, keywords, ScanType.MANUAL, scheduled_at)
    return ScanTriggerResponse(
        message=f"Queued {len(items)} scans for {brand_label}",
        queue_items=len(items),
        scheduled_at=scheduled_at,
    )


@router.get("/scan", response_model=ScanOverviewResponse)
async def scan_overview(
    brand_id: int | None = Query(None),
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Recent scan results, queue counts and a mention summary."""
    stmt = select(ScanResult).where(ScanResult.user_id == user_id)
    if brand_id is not None:
        stmt = stmt.where(ScanResult.brand_id == brand_id)
    rows = (
        (await db.execute(stmt.order_by(ScanResult.created_at.desc(), ScanResult.id.desc()).limit(RECENT_SCANS)))
        .scalars()
        .all()
    )

    mentions = sum(1 for r in rows if r.brand_mentioned)
    genuine = [r.confidence for r in rows if r.error is None]
    return ScanOverviewResponse(
        scans=rows,
        queue=await queue_status(db, user_id, brand_id),
        summary={
            "total_scans": len(rows),
            "mentions": mentions,
            "mention_rate": round(mentions / len(rows), 3) if rows else 0.0,
            "avg_confidence": round(sum(genuine) / len(genuine), 3) if genuine else None,
        },
    )


@router.post("/stop", response_model=StopResponse)
async def stop_scanning(
    body: StopRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Stop scanning for one brand (or all) and cancel its pending queue items."""
    stmt = select(BrandProfile).where(BrandProfile.user_id == user_id)
    if not body.stop_all:
        stmt = stmt.where(BrandProfile.id == body.brand_id)
    brands = (await db.execute(stmt)).scalars().all()
    if not body.stop_all and not brands:
        raise NotFoundError("Brand tracking not found")

    for brand in brands:
        brand.scanning_enabled = False
    label = "all brands" if body.stop_all else brands[0].display_name
    await db.commit()

    cancelled = await cancel_pending(db, user_id, None if body.stop_all else body.brand_id)
    return StopResponse(
        message=f"Scanning stopped for {label}",
        brands_stopped=len(brands),
        queue_items_cancelled=cancelled,
    )


@router.get("/stop", response_model=ScanningStatusResponse)
async def scanning_status(
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    brands = (
        (await db.execute(select(BrandProfile).where(BrandProfile.user_id == user_id).order_by(BrandProfile.id)))
        .scalars()
        .all()
    )
    return ScanningStatusResponse(brands=brands, queue=await queue_status(db, user_id))


@router.get("/sources", response_model=SourcesResponse)
async def list_sources(
    brand_id: int | None = Query(None),
    keyword_id: int | None = Query(None),
    platform: str | None = Query(None),
    limit: int = Query(100, ge=1, le=500),
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Sources cited in answers that mentioned the brand."""
    stmt = select(ScanResult).where(
        ScanResult.user_id == user_id,
        ScanResult.brand_mentioned == True,  # noqa: E712
    )
    if brand_id is not None:
        stmt = stmt.where(ScanResult.brand_id == brand_id)
    if keyword_id is not None:
        stmt = stmt.where(ScanResult.keyword_id == keyword_id)
    if platform:
        stmt = stmt.where(ScanResult.platform == platform)
    rows = (
        (await db.execute(stmt.order_by(ScanResult.created_at.desc(), ScanResult.id.desc()).limit(limit)))
        .scalars()
        .all()
    )
    return summarize_sources(rows)
