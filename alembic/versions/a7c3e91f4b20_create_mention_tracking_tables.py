"""create mention tracking tables

Revision ID: a7c3e91f4b20
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "a7c3e91f4b20"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

JSON_TYPE = sa.JSON().with_variant(JSONB(), "postgresql")
TS = sa.DateTime(timezone=True)


def upgrade() -> None:
    # =========================================================
    # 1. brand_profiles
    # =========================================================
    op.create_table(
        "brand_profiles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Uuid(), nullable=False, index=True),
        sa.Column("brand_name", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("keywords", JSON_TYPE, nullable=True),
        sa.Column("competitors", JSON_TYPE, nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column("scanning_enabled", sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column("auto_scan_enabled", sa.Boolean(), nullable=True, server_default=sa.false(), index=True),
        sa.Column("auto_scan_started_at", TS, nullable=True),
        sa.Column("auto_scan_last_run", TS, nullable=True),
        sa.Column("scan_interval", sa.Integer(), nullable=True, server_default="24"),
        sa.Column("last_scan_at", TS, nullable=True),
        sa.Column("next_scan_at", TS, nullable=True),
        sa.Column("created_at", TS, nullable=True, server_default=sa.func.now()),
        sa.Column("updated_at", TS, nullable=True, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "brand_name", name="uq_user_brand"),
    )

    # =========================================================
    # 2. keyword_tracking
    # =========================================================
    op.create_table(
        "keyword_tracking",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Uuid(), nullable=False, index=True),
        sa.Column(
            "brand_id",
            sa.Integer(),
            sa.ForeignKey("brand_profiles.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("keyword", sa.String(500), nullable=False),
        sa.Column("topic", sa.String(2000), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column("auto_scan_enabled", sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column("auto_scan_started_at", TS, nullable=True),
        sa.Column("auto_scan_last_run", TS, nullable=True),
        sa.Column("chatgpt_position", sa.Integer(), nullable=True),
        sa.Column("perplexity_position", sa.Integer(), nullable=True),
        sa.Column("gemini_position", sa.Integer(), nullable=True),
        sa.Column("avg_position", sa.Float(), nullable=True),
        sa.Column("previous_avg_position", sa.Float(), nullable=True),
        sa.Column("position_change", sa.Float(), nullable=True),
        sa.Column("last_scan_at", TS, nullable=True),
        sa.Column("scan_count", sa.Integer(), nullable=True, server_default="0"),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", TS, nullable=True, server_default=sa.func.now()),
        sa.Column("updated_at", TS, nullable=True, server_default=sa.func.now()),
        sa.UniqueConstraint("brand_id", "keyword", name="uq_brand_keyword"),
    )

    # =========================================================
    # 3. scan_results (append-only)
    # =========================================================
    op.create_table(
        "scan_results",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Uuid(), nullable=False, index=True),
        sa.Column(
            "brand_id",
            sa.Integer(),
            sa.ForeignKey("brand_profiles.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "keyword_id",
            sa.Integer(),
            sa.ForeignKey("keyword_tracking.id", ondelete="CASCADE"),
            nullable=True,
            index=True,
        ),
        sa.Column("platform", sa.String(20), nullable=False),
        sa.Column("model", sa.String(100), nullable=True),
        sa.Column("query", sa.String(2000), nullable=False),
        sa.Column("brand_mentioned", sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column("position", sa.Integer(), nullable=True),
        sa.Column("response_text", sa.Text(), nullable=True),
        sa.Column("brand_context", sa.Text(), nullable=True),
        sa.Column("sentiment", sa.String(20), nullable=True, server_default="neutral"),
        sa.Column("source_urls", JSON_TYPE, nullable=True),
        sa.Column("confidence", sa.Float(), nullable=True, server_default="0"),
        sa.Column("scan_duration", sa.Integer(), nullable=True, server_default="0"),
        sa.Column("tokens", sa.Integer(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("created_at", TS, nullable=True, server_default=sa.func.now(), index=True),
    )

    # =========================================================
    # 4. scan_queue
    # =========================================================
    op.create_table(
        "scan_queue",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Uuid(), nullable=False, index=True),
        sa.Column(
            "brand_id",
            sa.Integer(),
            sa.ForeignKey("brand_profiles.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "keyword_id",
            sa.Integer(),
            sa.ForeignKey("keyword_tracking.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("status", sa.String(20), nullable=True, server_default="pending", index=True),
        sa.Column("priority", sa.Integer(), nullable=True, server_default="1"),
        sa.Column("scheduled_at", TS, nullable=True, server_default=sa.func.now(), index=True),
        sa.Column("started_at", TS, nullable=True),
        sa.Column("completed_at", TS, nullable=True),
        sa.Column("attempts", sa.Integer(), nullable=True, server_default="0"),
        sa.Column("max_attempts", sa.Integer(), nullable=True, server_default="3"),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("scan_type", sa.String(20), nullable=True, server_default="manual"),
        sa.Column("metadata", JSON_TYPE, nullable=True),
        sa.Column("created_at", TS, nullable=True, server_default=sa.func.now()),
    )
    # Worker claim order
    op.create_index("ix_scan_queue_due", "scan_queue", ["status", "priority", "scheduled_at"])


def downgrade() -> None:
    op.drop_index("ix_scan_queue_due", table_name="scan_queue")
    op.drop_table("scan_queue")
    op.drop_table("scan_results")
    op.drop_table("keyword_tracking")
    op.drop_table("brand_profiles")
