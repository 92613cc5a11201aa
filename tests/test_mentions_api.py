"""Tests for the tracking and scan endpoints."""

import uuid

import pytest
from httpx import AsyncClient

from app.core.dependencies import get_orchestrator
from app.core.security import create_access_token
from app.main import app
from app.services.scan_orchestrator import ScanOrchestrator

BASE = "/api/v1/mentions"


async def _scan(client: AsyncClient, auth_headers, brand_id: int, **extra):
    return await client.post(f"{BASE}/scan", json={"brand_id": brand_id, **extra}, headers=auth_headers)


class TestTrack:
    @pytest.mark.asyncio
    async def test_track_new_brand(self, client: AsyncClient, auth_headers):
        resp = await client.post(
            f"{BASE}/track",
            json={
                "brand_name": " Acme ",
                "keywords": ["project tools", "kanban", " "],
                "topics": ["best project management tools"],
                "competitors": ["Asana", "Trello"],
            },
            headers=auth_headers,
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["message"].startswith("Started tracking Acme")
        assert data["brand"]["brand_name"] == "acme"
        assert data["brand"]["display_name"] == "Acme"
        assert data["brand"]["competitors"] == ["Asana", "Trello"]
        assert [(k["keyword"], k["topic"]) for k in data["keywords"]] == [
            ("project tools", "best project management tools"),
            ("kanban", "kanban"),
        ]

    @pytest.mark.asyncio
    async def test_track_existing_brand_updates(self, client: AsyncClient, auth_headers, brand):
        resp = await client.post(
            f"{BASE}/track",
            json={"brand_name": "ACME", "keywords": ["project tools", "gantt"]},
            headers=auth_headers,
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["message"].startswith("Updated tracking for ACME")
        assert data["brand"]["id"] == brand.id
        assert data["brand"]["keywords"] == ["project tools", "gantt"]
        # Competitors are kept when the request omits them
        assert data["brand"]["competitors"] == ["Asana", "Trello"]
        # Existing topic is kept
        assert data["keywords"][0]["topic"] == "best project management tools"

    @pytest.mark.asyncio
    async def test_track_requires_keywords(self, client: AsyncClient, auth_headers):
        resp = await client.post(f"{BASE}/track", json={"brand_name": "Acme", "keywords": ["  "]}, headers=auth_headers)
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_invalid_token(self, client: AsyncClient):
        resp = await client.get(f"{BASE}/brands", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401
        assert resp.json() == {"error": "Invalid or expired token"}


class TestBrandsAndKeywords:
    @pytest.mark.asyncio
    async def test_list(self, client: AsyncClient, auth_headers, brand):
        resp = await client.get(f"{BASE}/brands", headers=auth_headers)
        assert resp.status_code == 200
        assert [b["display_name"] for b in resp.json()] == ["Acme"]

        resp = await client.get(f"{BASE}/brands/{brand.id}/keywords", headers=auth_headers)
        assert resp.status_code == 200
        assert [k["keyword"] for k in resp.json()] == ["project tools"]

    @pytest.mark.asyncio
    async def test_keywords_of_unknown_brand(self, client: AsyncClient, auth_headers):
        resp = await client.get(f"{BASE}/brands/999/keywords", headers=auth_headers)
        assert resp.status_code == 404
        assert resp.json()["error"] == "Brand tracking not found"

    @pytest.mark.asyncio
    async def test_delete_brand(self, client: AsyncClient, auth_headers, brand):
        resp = await client.delete(f"{BASE}/brands/{brand.id}", headers=auth_headers)
        assert resp.status_code == 200

        resp = await client.get(f"{BASE}/brands", headers=auth_headers)
        assert resp.json() == []

        resp = await _scan(client, auth_headers, brand.id)
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_keyword(self, client: AsyncClient, auth_headers, brand, keyword):
        resp = await client.delete(f"{BASE}/keywords/{keyword.id}", headers=auth_headers)
        assert resp.status_code == 200

        resp = await client.get(f"{BASE}/brands/{brand.id}/keywords", headers=auth_headers)
        assert resp.json() == []

        resp = await _scan(client, auth_headers, brand.id)
        assert resp.status_code == 400
        assert resp.json()["error"] == "No active keywords to scan"


class TestScan:
    @pytest.mark.asyncio
    async def test_immediate_scan(self, client: AsyncClient, auth_headers, brand, keyword):
        resp = await _scan(client, auth_headers, brand.id)
        assert resp.status_code == 200
        data = resp.json()
        assert len(data["results"]) == 1
        kw = data["results"][0]
        assert kw["keyword_id"] == keyword.id
        assert kw["mentions_found"] == 2
        by_platform = {r["platform"]: r for r in kw["results"]}
        assert set(by_platform) == {"chatgpt", "perplexity", "gemini"}
        assert by_platform["chatgpt"]["position"] == 2
        assert by_platform["perplexity"]["source_urls"][0]["domain"] == "acme.com"

        resp = await client.get(f"{BASE}/brands/{brand.id}/keywords", headers=auth_headers)
        aggregates = resp.json()[0]
        assert aggregates["scan_count"] == 1
        assert aggregates["chatgpt_position"] == 2
        assert aggregates["avg_position"] == 2.0

    @pytest.mark.asyncio
    async def test_queued_scan(self, client: AsyncClient, auth_headers, brand, keyword, fake_providers):
        resp = await _scan(client, auth_headers, brand.id, immediate=False)
        assert resp.status_code == 200
        data = resp.json()
        assert data["queue_items"] == 1
        assert data["results"] is None
        assert all(p.prompts == [] for p in fake_providers.values())

        resp = await client.get(f"{BASE}/scan", params={"brand_id": brand.id}, headers=auth_headers)
        assert resp.json()["queue"]["pending"] == 1

    @pytest.mark.asyncio
    async def test_unknown_brand(self, client: AsyncClient, auth_headers):
        resp = await _scan(client, auth_headers, 12345)
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_no_providers_configured(self, client: AsyncClient, auth_headers, brand, keyword):
        app.dependency_overrides[get_orchestrator] = lambda: ScanOrchestrator(providers={})

        resp = await _scan(client, auth_headers, brand.id)

        assert resp.status_code == 503
        body = resp.json()
        assert body["error"] == "Scanning is not configured"
        assert "OPENAI_API_KEY" in body["details"]

    @pytest.mark.asyncio
    async def test_scan_overview(self, client: AsyncClient, auth_headers, brand, keyword):
        await _scan(client, auth_headers, brand.id)

        resp = await client.get(f"{BASE}/scan", headers=auth_headers)
        assert resp.status_code == 200
        data = resp.json()
        assert len(data["scans"]) == 3
        assert data["summary"]["total_scans"] == 3
        assert data["summary"]["mentions"] == 2
        assert data["summary"]["mention_rate"] == 0.667
        assert data["queue"]["pending"] == 0

    @pytest.mark.asyncio
    async def test_other_users_see_nothing(self, client: AsyncClient, auth_headers, brand, keyword):
        await _scan(client, auth_headers, brand.id)
        other = {"Authorization": f"Bearer {create_access_token(uuid.uuid4())}"}

        resp = await client.get(f"{BASE}/scan", headers=other)
        assert resp.json()["scans"] == []
        resp = await _scan(client, other, brand.id)
        assert resp.status_code == 404


class TestStop:
    @pytest.mark.asyncio
    async def test_stop_brand_cancels_queue(self, client: AsyncClient, auth_headers, brand, keyword):
        await _scan(client, auth_headers, brand.id, immediate=False)

        resp = await client.post(f"{BASE}/stop", json={"brand_id": brand.id}, headers=auth_headers)
        assert resp.status_code == 200
        data = resp.json()
        assert data["brands_stopped"] == 1
        assert data["queue_items_cancelled"] == 1

        resp = await client.get(f"{BASE}/stop", headers=auth_headers)
        status = resp.json()
        assert status["brands"][0]["scanning_enabled"] is False
        assert status["queue"]["cancelled"] == 1

    @pytest.mark.asyncio
    async def test_manual_scan_restarts_scanning(self, client: AsyncClient, auth_headers, brand, keyword):
        await client.post(f"{BASE}/stop", json={"stop_all": True}, headers=auth_headers)

        await _scan(client, auth_headers, brand.id)

        resp = await client.get(f"{BASE}/stop", headers=auth_headers)
        assert resp.json()["brands"][0]["scanning_enabled"] is True

    @pytest.mark.asyncio
    async def test_stop_requires_target(self, client: AsyncClient, auth_headers):
        resp = await client.post(f"{BASE}/stop", json={}, headers=auth_headers)
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_stop_unknown_brand(self, client: AsyncClient, auth_headers):
        resp = await client.post(f"{BASE}/stop", json={"brand_id": 404}, headers=auth_headers)
        assert resp.status_code == 404


class TestSources:
    @pytest.mark.asyncio
    async def test_sources_from_mentioned_answers(self, client: AsyncClient, auth_headers, brand, keyword):
        await _scan(client, auth_headers, brand.id)

        resp = await client.get(f"{BASE}/sources", params={"brand_id": brand.id}, headers=auth_headers)
        assert resp.status_code == 200
        data = resp.json()
        assert sorted(s["domain"] for s in data["sources"]) == ["acme.com", "g2.com"]
        assert data["stats"]["total_results"] == 2
        assert data["stats"]["unique_domains"] == 2
        assert data["platform_breakdown"] == {"chatgpt": 1, "perplexity": 1}

    @pytest.mark.asyncio
    async def test_platform_filter(self, client: AsyncClient, auth_headers, brand, keyword):
        await _scan(client, auth_headers, brand.id)

        resp = await client.get(f"{BASE}/sources", params={"platform": "perplexity"}, headers=auth_headers)
        data = resp.json()
        assert [s["url"] for s in data["sources"]] == ["https://acme.com/about"]


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "providers": []}
