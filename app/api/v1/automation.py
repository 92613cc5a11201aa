"""Automation endpoints: toggles, status and the scheduler trigger."""

import logging
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user_id, get_orchestrator, verify_cron_secret
from app.core.exceptions import NotFoundError
from app.db.postgres import get_db
from app.models.keyword_tracking import KeywordTracking
from app.schemas.automation import (
    AutomationRunResponse,
    AutomationStatusResponse,
    AutomationToggleRequest,
    AutomationToggleResponse,
    SchedulerStatusResponse,
)
from app.services.automation import (
    AutomationScheduler,
    automation_status,
    scheduler_status,
    set_brand_automation,
    set_keyword_automation,
)
from app.services.scan_orchestrator import ScanOrchestrator
from app.services.scan_service import get_user_brand

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/mentions", tags=["automation"])


@router.post("/automation", response_model=AutomationToggleResponse)
async def toggle_automation(
    body: AutomationToggleRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Enable or disable automated scanning for a brand (cascades) or one keyword."""
    enabled = body.action == "enable"

    if body.brand_id is not None:
        brand = await get_user_brand(db, user_id, body.brand_id)
        if not brand or not brand.is_active:
            raise NotFoundError("Brand tracking not found")
        brand = await set_brand_automation(db, brand, enabled)
        return AutomationToggleResponse(
            message=f"Automated scanning {body.action}d for {brand.display_name}",
            next_scan_at=brand.next_scan_at,
        )

    keyword = (
        await db.execute(
            select(KeywordTracking).where(KeywordTracking.id == body.keyword_id, KeywordTracking.user_id == user_id)
        )
    ).scalar_one_or_none()
    if not keyword:
        raise NotFoundError("Keyword not found")
    brand_id = keyword.brand_id
    keyword = await set_keyword_automation(db, keyword, enabled)
    brand = await get_user_brand(db, user_id, brand_id)
    return AutomationToggleResponse(
        message=f"Automated scanning {body.action}d for keyword {keyword.keyword!r}",
        next_scan_at=brand.next_scan_at if brand and enabled else None,
    )


@router.get("/automation", response_model=AutomationStatusResponse)
async def get_automation_status(
    brand_id: int | None = Query(None),
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return AutomationStatusResponse(brands=await automation_status(db, user_id, brand_id))


@router.post(
    "/run-automated-scans",
    response_model=AutomationRunResponse,
    dependencies=[Depends(verify_cron_secret)],
)
async def run_automated_scans(
    db: AsyncSession = Depends(get_db),
    orchestrator: ScanOrchestrator = Depends(get_orchestrator),
):
    """Run every due automated scan now. Called by cron / Celery beat."""
    summary = await AutomationScheduler(db, orchestrator).run_due_scans()
    data = summary.to_dict()
    results = data.pop("results")
    return AutomationRunResponse(
        message=f"Automated scans completed: {summary.total_scans_run} scans, {summary.total_mentions_found} mentions",
        summary=data,
        results=results,
    )


@router.get(
    "/run-automated-scans",
    response_model=SchedulerStatusResponse,
    dependencies=[Depends(verify_cron_secret)],
)
async def get_scheduler_status(db: AsyncSession = Depends(get_db)):
    return await scheduler_status(db)
