from datetime import datetime

from pydantic import BaseModel, Field, model_validator


class TrackRequest(BaseModel):
    brand_name: str = Field(min_length=1, max_length=255)
    keywords: list[str] = Field(min_length=1, max_length=100)
    # Optional question per keyword, matched by index; blank falls back to the keyword
    topics: list[str] | None = None
    competitors: list[str] | None = Field(None, max_length=50)

    @model_validator(mode="after")
    def _clean(self):
        self.brand_name = self.brand_name.strip()
        if not self.brand_name:
            raise ValueError("brand_name must not be blank")
        self.keywords = [k.strip() for k in self.keywords if k and k.strip()]
        if not self.keywords:
            raise ValueError("at least one non-blank keyword is required")
        if self.competitors is not None:
            self.competitors = [c.strip() for c in self.competitors if c and c.strip()]
        return self


class KeywordResponse(BaseModel):
    id: int
    brand_id: int
    keyword: str
    topic: str
    is_active: bool
    auto_scan_enabled: bool
    chatgpt_position: int | None
    perplexity_position: int | None
    gemini_position: int | None
    avg_position: float | None
    previous_avg_position: float | None
    position_change: float | None
    last_scan_at: datetime | None
    scan_count: int

    model_config = {"from_attributes": True}


class BrandResponse(BaseModel):
    id: int
    brand_name: str
    display_name: str
    keywords: list[str] | None
    competitors: list[str] | None
    is_active: bool
    scanning_enabled: bool
    auto_scan_enabled: bool
    scan_interval: int
    last_scan_at: datetime | None
    next_scan_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class TrackResponse(BaseModel):
    success: bool = True
    message: str
    brand: BrandResponse
    keywords: list[KeywordResponse]
