from datetime import datetime

from pydantic import BaseModel, model_validator


class ScanTriggerRequest(BaseModel):
    brand_id: int
    keyword_id: int | None = None
    immediate: bool = True


class SourceUrlOut(BaseModel):
    url: str
    domain: str
    title: str


class ScanResultOut(BaseModel):
    platform: str
    model: str | None = None
    query: str
    brand_mentioned: bool
    position: int | None = None
    response_text: str
    brand_context: str | None = None
    sentiment: str = "neutral"
    source_urls: list[SourceUrlOut] = []
    confidence: float
    scan_duration: int
    tokens: int | None = None
    error: str | None = None


class KeywordScanOut(BaseModel):
    keyword_id: int | None
    keyword: str
    mentions_found: int
    results: list[ScanResultOut]
    error: str | None = None


class ScanTriggerResponse(BaseModel):
    success: bool = True
    message: str
    results: list[KeywordScanOut] | None = None  # immediate scans
    queue_items: int | None = None  # queued scans
    scheduled_at: datetime | None = None


class StoredScanResult(ScanResultOut):
    id: int
    brand_id: int
    keyword_id: int | None
    created_at: datetime

    model_config = {"from_attributes": True}


class ScanSummary(BaseModel):
    total_scans: int
    mentions: int
    mention_rate: float
    avg_confidence: float | None


class ScanOverviewResponse(BaseModel):
    scans: list[StoredScanResult]
    queue: dict[str, int]
    summary: ScanSummary


class StopRequest(BaseModel):
    brand_id: int | None = None
    stop_all: bool = False

    @model_validator(mode="after")
    def _target(self):
        if not self.stop_all and self.brand_id is None:
            raise ValueError("brand_id is required when stop_all is false")
        return self


class StopResponse(BaseModel):
    success: bool = True
    message: str
    brands_stopped: int
    queue_items_cancelled: int


class BrandScanningState(BaseModel):
    id: int
    display_name: str
    scanning_enabled: bool
    last_scan_at: datetime | None
    next_scan_at: datetime | None
    scan_interval: int

    model_config = {"from_attributes": True}


class ScanningStatusResponse(BaseModel):
    brands: list[BrandScanningState]
    queue: dict[str, int]


class SourceEntry(BaseModel):
    url: str
    domain: str
    title: str
    platform: str
    keyword_id: int | None
    position: int | None
    confidence: float
    created_at: datetime


class DomainCount(BaseModel):
    domain: str
    count: int


class SourceStats(BaseModel):
    total_results: int
    total_sources: int
    unique_domains: int
    avg_position: float | None
    avg_confidence: float | None


class SourcesResponse(BaseModel):
    sources: list[SourceEntry]
    top_domains: list[DomainCount]
    platform_breakdown: dict[str, int]
    stats: SourceStats

