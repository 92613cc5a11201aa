import uuid
from datetime import datetime

from sqlalchemy import Boolean, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, JsonType, UtcDateTime, utcnow


class BrandProfile(Base):
    """A brand a user tracks across AI providers."""

    __tablename__ = "brand_profiles"
    __table_args__ = (UniqueConstraint("user_id", "brand_name", name="uq_user_brand"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    brand_name: Mapped[str] = mapped_column(String(255), nullable=False)  # canonical, lower-cased
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    keywords: Mapped[list | None] = mapped_column(JsonType, nullable=True)  # ["crm", "sales software"]
    competitors: Mapped[list | None] = mapped_column(JsonType, nullable=True)  # ["HubSpot", "Pipedrive"]

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    scanning_enabled: Mapped[bool] = mapped_column(Boolean, default=True)

    # Automation
    auto_scan_enabled: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    auto_scan_started_at: Mapped[datetime | None] = mapped_column(UtcDateTime, nullable=True)
    auto_scan_last_run: Mapped[datetime | None] = mapped_column(UtcDateTime, nullable=True)
    scan_interval: Mapped[int] = mapped_column(Integer, default=24)  # hours between automated scans
    last_scan_at: Mapped[datetime | None] = mapped_column(UtcDateTime, nullable=True)
    next_scan_at: Mapped[datetime | None] = mapped_column(UtcDateTime, nullable=True)  # NULL while automation is off

    created_at: Mapped[datetime] = mapped_column(UtcDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UtcDateTime, default=utcnow, onupdate=utcnow)

    # Relationships (load explicitly with selectinload; async sessions cannot lazy-load)
    tracked_keywords: Mapped[list["KeywordTracking"]] = relationship(  # noqa: F821
        "KeywordTracking", back_populates="brand", cascade="all, delete-orphan"
    )

    @property
    def competitor_names(self) -> list[str]:
        return [c for c in (self.competitors or []) if isinstance(c, str) and c.strip()]
