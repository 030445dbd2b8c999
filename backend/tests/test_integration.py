import pytest
from httpx import AsyncClient, ASGITransport

import main
from main import app
from models import AIVerdict, RiskLevel
from report_generator import build_export
from risk_aggregator import classify_all_videos


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def api_store(store, monkeypatch):
    monkeypatch.setattr(main, "store", store)
    return store


@pytest.fixture
async def client(api_store):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def analyzed_store(api_store, make_video, sample_rules):
    videos = [make_video("dQw4w9WgXcQ", title="gore clip"), make_video("abcdefghijk", title="Lego")]
    api_store.add_videos(videos)
    batch = classify_all_videos(videos, {}, sample_rules)
    api_store.save_classifications(batch.results)
    api_store.save_export(build_export(batch.results, batch.summary, [], generated_at="2025-01-01T00:00:00Z"))
    api_store.save_ai_verdict(AIVerdict(video_id="dQw4w9WgXcQ", risk_level=RiskLevel.HIGH, tags=["gore", "horror"]))
    api_store.save_ai_verdict(AIVerdict(video_id="abcdefghijk", risk_level=RiskLevel.LOW, tags=["lego"]))
    return api_store


class TestHealthEndpoint:
    @pytest.mark.asyncio
    async def test_health_on_empty_store(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["videos"] == 0
        assert data["last_report"] is None

    @pytest.mark.asyncio
    async def test_health_counts(self, client, analyzed_store):
        data = (await client.get("/health")).json()
        assert (data["videos"], data["classified"], data["ai_analyzed"]) == (2, 2, 2)
        assert data["last_report"] == "2025-01-01T00:00:00Z"

    @pytest.mark.asyncio
    async def test_health_has_security_headers(self, client):
        response = await client.get("/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"


class TestReportEndpoints:
    @pytest.mark.asyncio
    async def test_no_report_yet(self, client):
        assert (await client.get("/report")).status_code == 404

    @pytest.mark.asyncio
    async def test_report_json(self, client, analyzed_store):
        data = (await client.get("/report")).json()
        assert data["summary"] == {"total": 2, "highRisk": 1, "mediumRisk": 0, "lowRisk": 1}
        assert [v["videoId"] for v in data["concerningVideos"]] == ["dQw4w9WgXcQ"]

    @pytest.mark.asyncio
    async def test_report_served_as_json_only(self, client, analyzed_store):
        assert (await client.get("/report/html")).status_code == 404


class TestVideoEndpoint:
    @pytest.mark.asyncio
    async def test_video_verdicts(self, client, analyzed_store):
        data = (await client.get("/videos/dQw4w9WgXcQ")).json()
        assert data["video"]["title"] == "gore clip"
        assert data["classification"]["riskLevel"] == "HIGH"
        assert data["ai_verdict"]["riskLevel"] == "HIGH"
        assert data["tags"] == ["gore", "horror"]

    @pytest.mark.asyncio
    async def test_unknown_video(self, client, analyzed_store):
        assert (await client.get("/videos/zzzzzzzzzzz")).status_code == 404

    @pytest.mark.asyncio
    @pytest.mark.parametrize("video_id", ["short", "' OR 1=1 --", "<script>xx</script>"])
    async def test_invalid_video_id(self, client, video_id):
        response = await client.get(f"/videos/{video_id}")
        assert response.status_code in (400, 404)
        assert response.status_code != 200


@pytest.mark.asyncio
async def test_tags_most_used_first(client, analyzed_store, store):
    store.save_ai_verdict(AIVerdict(video_id="abcdefghijk", risk_level=RiskLevel.LOW, tags=["horror"]))
    tags = (await client.get("/tags")).json()
    assert tags[0] == {"tag": "horror", "video_count": 2, "video_ids": ["dQw4w9WgXcQ", "abcdefghijk"]}
    assert {t["tag"] for t in tags} == {"gore", "horror", "lego"}


class TestApiKey:
    @pytest.mark.asyncio
    async def test_protected_endpoint_requires_key(self, client, analyzed_store, monkeypatch):
        monkeypatch.setattr(main, "_api_secret", "s3cret")
        assert (await client.get("/report")).status_code == 401
        ok = await client.get("/report", headers={"X-API-Key": "s3cret"})
        assert ok.status_code == 200

    @pytest.mark.asyncio
    async def test_health_is_public(self, client, monkeypatch):
        monkeypatch.setattr(main, "_api_secret", "s3cret")
        assert (await client.get("/health")).status_code == 200
