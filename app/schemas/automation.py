from datetime import datetime
from typing import Literal

from pydantic import BaseModel, model_validator


class AutomationToggleRequest(BaseModel):
    action: Literal["enable", "disable"]
    brand_id: int | None = None
    keyword_id: int | None = None

    @model_validator(mode="after")
    def _one_target(self):
        if (self.brand_id is None) == (self.keyword_id is None):
            raise ValueError("exactly one of brand_id or keyword_id is required")
        return self


class AutomationToggleResponse(BaseModel):
    success: bool = True
    message: str
    next_scan_at: datetime | None = None


class KeywordAutomationState(BaseModel):
    keyword_id: int
    keyword: str
    topic: str
    auto_scan_enabled: bool
    auto_scan_last_run: datetime | None
    last_scan_at: datetime | None


class BrandAutomationState(BaseModel):
    brand_id: int
    brand_name: str
    auto_scan_enabled: bool
    auto_scan_started_at: datetime | None
    auto_scan_last_run: datetime | None
    scan_interval: int
    last_scan_at: datetime | None
    next_scan_at: datetime | None
    keywords: list[KeywordAutomationState]


class AutomationStatusResponse(BaseModel):
    brands: list[BrandAutomationState]


class KeywordRunOut(BaseModel):
    brand_id: int
    brand_name: str
    keyword_id: int
    keyword: str
    topic: str
    mentions_found: int
    scan_results: int
    error: str | None = None


class AutomationRunSummaryOut(BaseModel):
    total_scans_run: int
    total_mentions_found: int
    brands_processed: int
    brands_skipped: int


class AutomationRunResponse(BaseModel):
    success: bool = True
    message: str
    summary: AutomationRunSummaryOut
    results: list[KeywordRunOut]


class SchedulerStatusResponse(BaseModel):
    total_enabled_brands: int
    total_enabled_topics: int
    due_brands: int
    next_scheduled_scan: datetime | None
    checked_at: datetime
