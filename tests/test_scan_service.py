"""Tests for the shared scan path and immediate scans."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select

from app.core.exceptions import ConfigurationError
from app.models.brand_profile import BrandProfile
from app.models.keyword_tracking import KeywordTracking
from app.models.scan_result import ScanResult
from app.services.automation import set_brand_automation
from app.services.scan_orchestrator import ScanOrchestrator
from app.services.scan_service import (
    backfill_keywords,
    run_immediate_scan,
    scan_keyword_tracking,
    select_keywords,
)

NOW = datetime(2026, 5, 4, 9, 30, tzinfo=timezone.utc)


async def _results(db) -> list[ScanResult]:
    return list((await db.execute(select(ScanResult).order_by(ScanResult.id))).scalars().all())


class TestScanKeywordTracking:
    @pytest.mark.asyncio
    async def test_stores_rows_and_aggregates(self, db, brand, keyword, orchestrator):
        results = await scan_keyword_tracking(db, brand, keyword, orchestrator, now=NOW)

        assert len(results) == 3
        rows = await _results(db)
        assert [r.platform for r in rows] == ["chatgpt", "perplexity", "gemini"]
        assert all(r.brand_id == brand.id and r.keyword_id == keyword.id for r in rows)

        kw = await db.get(KeywordTracking, keyword.id)
        assert kw.chatgpt_position == 2
        assert kw.avg_position == 2.0
        assert kw.scan_count == 1
        assert kw.last_scan_at == NOW

    @pytest.mark.asyncio
    async def test_uses_display_name_and_competitors(self, db, brand, keyword, fake_providers, orchestrator):
        brand.display_name = "ACME"
        await db.commit()

        results = await scan_keyword_tracking(db, brand, keyword, orchestrator, now=NOW)

        assert results[0].position == 2
        assert fake_providers["chatgpt"].prompts == ["best project management tools"]

    @pytest.mark.asyncio
    async def test_aggregates_build_on_writes_committed_elsewhere(
        self, db, session_factory, brand, keyword, orchestrator
    ):
        keyword_id = keyword.id
        async with session_factory() as other:
            row = await other.get(KeywordTracking, keyword_id)
            row.scan_count = 1
            row.avg_position = 5.0
            await other.commit()

        await scan_keyword_tracking(db, brand, keyword, orchestrator, now=NOW)

        async with session_factory() as fresh:
            row = await fresh.get(KeywordTracking, keyword_id)
            assert row.scan_count == 2
            assert row.previous_avg_position == 5.0
            assert row.avg_position == 2.0
            assert row.position_change == 3.0


class TestBackfill:
    @pytest.mark.asyncio
    async def test_creates_rows_from_brand_keywords(self, db, user_id):
        brand = BrandProfile(
            user_id=user_id,
            brand_name="globex",
            display_name="Globex",
            keywords=["crm", "CRM", " sales software ", ""],
        )
        db.add(brand)
        await db.commit()

        created = await backfill_keywords(db, brand)

        assert [kw.keyword for kw in created] == ["crm", "sales software"]
        assert all(kw.topic == kw.keyword for kw in created)

    @pytest.mark.asyncio
    async def test_noop_when_rows_exist(self, db, brand, keyword):
        assert await backfill_keywords(db, brand) == []

    @pytest.mark.asyncio
    async def test_select_keywords_skips_inactive(self, db, brand, keyword):
        db.add(KeywordTracking(user_id=brand.user_id, brand_id=brand.id, keyword="old", topic="old", is_active=False))
        await db.commit()

        keywords = await select_keywords(db, brand)

        assert [kw.keyword for kw in keywords] == ["project tools"]


class TestRunImmediateScan:
    @pytest.mark.asyncio
    async def test_scans_every_active_keyword(self, db, brand, keyword, orchestrator):
        db.add(KeywordTracking(user_id=brand.user_id, brand_id=brand.id, keyword="kanban", topic="best kanban apps"))
        await db.commit()

        outcomes = await run_immediate_scan(db, brand, orchestrator, now=NOW)

        assert [o.keyword for o in outcomes] == ["project tools", "kanban"]
        assert outcomes[0].mentions_found == 2
        assert len(await _results(db)) == 6

        refreshed = await db.get(BrandProfile, brand.id)
        assert refreshed.last_scan_at == NOW

    @pytest.mark.asyncio
    async def test_single_keyword(self, db, brand, keyword, orchestrator):
        db.add(KeywordTracking(user_id=brand.user_id, brand_id=brand.id, keyword="kanban", topic="best kanban apps"))
        await db.commit()

        outcomes = await run_immediate_scan(db, brand, orchestrator, keyword_id=keyword.id, now=NOW)

        assert [o.keyword_id for o in outcomes] == [keyword.id]

    @pytest.mark.asyncio
    async def test_reenables_stopped_brand(self, db, brand, keyword, orchestrator):
        brand.scanning_enabled = False
        await db.commit()

        await run_immediate_scan(db, brand, orchestrator, now=NOW)

        refreshed = await db.get(BrandProfile, brand.id)
        assert refreshed.scanning_enabled is True

    @pytest.mark.asyncio
    async def test_overdue_automation_is_rescheduled(self, db, brand, keyword, orchestrator):
        await set_brand_automation(db, brand, True, now=NOW - timedelta(days=2))
        assert brand.next_scan_at == NOW - timedelta(days=1)

        await run_immediate_scan(db, brand, orchestrator, now=NOW)

        refreshed = await db.get(BrandProfile, brand.id)
        assert refreshed.last_scan_at == NOW
        assert refreshed.next_scan_at == NOW + timedelta(hours=24)

    @pytest.mark.asyncio
    async def test_future_automation_slot_is_kept(self, db, brand, keyword, orchestrator):
        await set_brand_automation(db, brand, True, now=NOW - timedelta(hours=1))

        await run_immediate_scan(db, brand, orchestrator, now=NOW)

        refreshed = await db.get(BrandProfile, brand.id)
        assert refreshed.next_scan_at == NOW + timedelta(hours=23)
        assert refreshed.next_scan_at >= refreshed.last_scan_at

    @pytest.mark.asyncio
    async def test_keyword_failure_is_reported(self, db, brand, keyword, orchestrator):
        with patch(
            "app.services.scan_service.scan_keyword_tracking",
            AsyncMock(side_effect=RuntimeError("database went away")),
        ):
            outcomes = await run_immediate_scan(db, brand, orchestrator, now=NOW)

        assert outcomes[0].error == "database went away"
        assert outcomes[0].results[0].platform == "error"
        assert outcomes[0].results[0].response_text == "Scan failed: database went away"
        assert await _results(db) == []

    @pytest.mark.asyncio
    async def test_no_providers(self, db, brand, keyword):
        with pytest.raises(ConfigurationError):
            await run_immediate_scan(db, brand, ScanOrchestrator(providers={}), now=NOW)
        assert await _results(db) == []
