import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, JsonType, UtcDateTime, utcnow


class QueueStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ScanType(str, Enum):
    MANUAL = "manual"
    AUTOMATED = "automated"


class QueuePriority(int, Enum):
    """Lower value = runs first."""

    MANUAL = 0  # user pressed "scan" in the UI
    AUTOMATED = 1


class ScanQueueItem(Base):
    """A deferred keyword scan."""

    __tablename__ = "scan_queue"
    # Worker claim order
    __table_args__ = (Index("ix_scan_queue_due", "status", "priority", "scheduled_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    brand_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("brand_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    keyword_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("keyword_tracking.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(20), default=QueueStatus.PENDING.value, index=True)
    priority: Mapped[int] = mapped_column(Integer, default=QueuePriority.AUTOMATED.value)
    scheduled_at: Mapped[datetime] = mapped_column(UtcDateTime, default=utcnow, index=True)
    started_at: Mapped[datetime | None] = mapped_column(UtcDateTime, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(UtcDateTime, nullable=True)
    attempts: Mapped[int] = mapped_column(Integer, default=0)
    max_attempts: Mapped[int] = mapped_column(Integer, default=3)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    scan_type: Mapped[str] = mapped_column(String(20), default=ScanType.MANUAL.value)
    # "metadata" is reserved on declarative classes
    meta: Mapped[dict | None] = mapped_column("metadata", JsonType, nullable=True)  # {"brand_name", "keyword", "topic"}

    created_at: Mapped[datetime] = mapped_column(UtcDateTime, default=utcnow)
