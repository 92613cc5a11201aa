import uuid
from datetime import datetime

from sqlalchemy import Boolean, Float, ForeignKey, Integer, String, UniqueConstraint, Uuid, event
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, UtcDateTime, utcnow


class KeywordTracking(Base):
    """A keyword/topic tracked for a brand, with the latest scan aggregates."""

    __tablename__ = "keyword_tracking"
    __table_args__ = (UniqueConstraint("brand_id", "keyword", name="uq_brand_keyword"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    brand_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("brand_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    keyword: Mapped[str] = mapped_column(String(500), nullable=False)
    topic: Mapped[str] = mapped_column(String(2000), nullable=False)  # prompt sent to providers

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    auto_scan_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    auto_scan_started_at: Mapped[datetime | None] = mapped_column(UtcDateTime, nullable=True)
    auto_scan_last_run: Mapped[datetime | None] = mapped_column(UtcDateTime, nullable=True)

    # Aggregates from the most recent scan
    chatgpt_position: Mapped[int | None] = mapped_column(Integer, nullable=True)
    perplexity_position: Mapped[int | None] = mapped_column(Integer, nullable=True)
    gemini_position: Mapped[int | None] = mapped_column(Integer, nullable=True)
    avg_position: Mapped[float | None] = mapped_column(Float, nullable=True)
    previous_avg_position: Mapped[float | None] = mapped_column(Float, nullable=True)
    position_change: Mapped[float | None] = mapped_column(Float, nullable=True)  # positive = moved up
    last_scan_at: Mapped[datetime | None] = mapped_column(UtcDateTime, nullable=True)
    scan_count: Mapped[int] = mapped_column(Integer, default=0)

    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(UtcDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UtcDateTime, default=utcnow, onupdate=utcnow)

    __mapper_args__ = {"version_id_col": version_id}

    # Relationships
    brand: Mapped["BrandProfile"] = relationship("BrandProfile", back_populates="tracked_keywords")  # noqa: F821

    @property
    def prompt(self) -> str:
        return (self.topic or "").strip() or self.keyword


@event.listens_for(KeywordTracking, "before_insert")
def _default_topic(mapper, connection, target: KeywordTracking) -> None:
    if not (target.topic or "").strip():
        target.topic = target.keyword
