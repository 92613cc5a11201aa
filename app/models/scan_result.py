import uuid
from datetime import datetime

from sqlalchemy import Boolean, Float, ForeignKey, Integer, String, Text, Uuid, event, inspect
from sqlalchemy.orm import Mapped, mapped_column

from app.core.exceptions import PersistenceError
from app.db.base import Base, JsonType, UtcDateTime, utcnow


class ScanResult(Base):
    """One provider's answer for one keyword scan. Written once, never updated."""

    __tablename__ = "scan_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    brand_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("brand_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    keyword_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("keyword_tracking.id", ondelete="CASCADE"), nullable=True, index=True
    )
    platform: Mapped[str] = mapped_column(String(20), nullable=False)  # chatgpt | perplexity | gemini
    model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    query: Mapped[str] = mapped_column(String(2000), nullable=False)

    brand_mentioned: Mapped[bool] = mapped_column(Boolean, default=False)
    position: Mapped[int | None] = mapped_column(Integer, nullable=True)
    response_text: Mapped[str] = mapped_column(Text, default="")
    brand_context: Mapped[str | None] = mapped_column(Text, nullable=True)
    sentiment: Mapped[str] = mapped_column(String(20), default="neutral")  # positive | neutral | negative
    source_urls: Mapped[list | None] = mapped_column(JsonType, nullable=True)  # [{"url", "domain", "title"}]
    confidence: Mapped[float] = mapped_column(Float, default=0.0)
    scan_duration: Mapped[int] = mapped_column(Integer, default=0)  # milliseconds
    tokens: Mapped[int | None] = mapped_column(Integer, nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UtcDateTime, default=utcnow, index=True)


@event.listens_for(ScanResult, "before_update")
def _reject_update(mapper, connection, target: ScanResult) -> None:
    changed = [attr.key for attr in inspect(target).attrs if attr.history.has_changes()]
    if changed:
        raise PersistenceError(f"ScanResult {target.id} is immutable (attempted change: {', '.join(changed)})")
