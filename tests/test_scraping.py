"""Tests for scraping, job and profile endpoints."""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from httpx import AsyncClient
from pydantic import SecretStr

from socialsignals.config import settings
from socialsignals.errors import JobOutcome, ScrapeError
from socialsignals.models.database import build_engine, ping
from socialsignals.models.job import JobStatus, JobType
from socialsignals.repositories.job_repo import JobRepository


@pytest.fixture
def apify_token(monkeypatch):
    monkeypatch.setattr(settings, "apify_api_token", SecretStr("test-token"))


@pytest.fixture
def no_apify_token(monkeypatch):
    monkeypatch.setattr(settings, "apify_api_token", None)


@pytest.mark.asyncio
async def test_sync_reactions_requires_post_ids(client: AsyncClient, apify_token):
    """Empty post list is rejected before anything is queued."""
    response = await client.post("/api/v1/scraping/reactions", json={"post_ids": []})
    assert response.status_code == 400
    assert "post_ids is required" in response.json()["detail"]


@pytest.mark.asyncio
async def test_sync_comments_missing_api_token(client: AsyncClient, no_apify_token):
    """Test comment sync fails without provider credentials."""
    response = await client.post("/api/v1/scraping/comments", json={"post_ids": [str(uuid4())]})
    assert response.status_code == 503
    assert "Apify API token not configured" in response.json()["detail"]


@pytest.mark.asyncio
async def test_sync_reactions_success(client: AsyncClient, apify_token):
    """Test reaction sync creates and queues a job."""
    post_ids = [str(uuid4()), str(uuid4())]

    with patch("socialsignals.workers.tasks.scraping.sync_post_engagement") as task:
        response = await client.post("/api/v1/scraping/reactions", json={"post_ids": post_ids + post_ids[:1]})

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "queued"
    assert data["total_items"] == 2
    task.delay.assert_called_once_with(data["job_id"])

    job = (await client.get(f"/api/v1/jobs/{data['job_id']}")).json()
    assert job["status"] == "queued"
    assert job["job_type"] == "sync_reactions"
    assert job["config"] == {"kind": "reactions", "post_ids": post_ids}


@pytest.mark.asyncio
async def test_enrich_success(client: AsyncClient, apify_token):
    with patch("socialsignals.workers.tasks.enrichment.enrich_profiles_job") as task:
        response = await client.post("/api/v1/scraping/enrich", json={"profile_ids": [str(uuid4())]})

    assert response.status_code == 200
    assert response.json()["total_items"] == 1
    task.delay.assert_called_once()


@pytest.mark.asyncio
async def test_enrich_requires_profile_ids(client: AsyncClient, apify_token):
    response = await client.post("/api/v1/scraping/enrich", json={"profile_ids": []})
    assert response.status_code == 400
    assert "profile_ids is required" in response.json()["detail"]


@pytest.mark.asyncio
async def test_cancel_job(client: AsyncClient, session):
    jobs = JobRepository(session)
    job = await jobs.create(JobType.SYNC_COMMENTS, config={"kind": "comments", "post_ids": []})
    await session.commit()

    response = await client.post(f"/api/v1/jobs/{job.id}/cancel")
    assert response.status_code == 200
    assert response.json() == {"job_id": str(job.id), "success": True, "status": "cancelled"}

    again = await client.post(f"/api/v1/jobs/{job.id}/cancel")
    assert again.json()["success"] is False


@pytest.mark.asyncio
async def test_job_failures_export(client: AsyncClient, session):
    jobs = JobRepository(session)
    job = await jobs.create(JobType.SYNC_REACTIONS, config={"kind": "reactions", "post_ids": []})
    await session.commit()

    not_done = await client.get(f"/api/v1/jobs/{job.id}/failures")
    assert not_done.status_code == 400

    outcome = JobOutcome()
    outcome.add_failure("post-1", ScrapeError("actor run failed"))
    await jobs.update_status(job.id, JobStatus.COMPLETED, result=outcome.to_dict())
    await session.commit()

    as_json = await client.get(f"/api/v1/jobs/{job.id}/failures")
    assert as_json.json()["total"] == 1
    assert as_json.json()["failures"][0]["kind"] == "scrape_error"

    as_csv = await client.get(f"/api/v1/jobs/{job.id}/failures", params={"format": "csv"})
    assert as_csv.status_code == 200
    lines = as_csv.text.strip().splitlines()
    assert lines[0] == "item,kind,reason"
    assert lines[1] == "post-1,scrape_error,actor run failed"


@pytest.mark.asyncio
async def test_unknown_job_is_404(client: AsyncClient):
    response = await client.get(f"/api/v1/jobs/{uuid4()}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_profiles_endpoints(client: AsyncClient, make_profile):
    jane = await make_profile("jane-doe", secondary_identifier="jane-doe", name="Jane Doe", first_name="Jane", city="Berlin")
    await make_profile("john", secondary_identifier="john", name="John Roe")

    listed = await client.get("/api/v1/profiles", params={"needs_enrichment": "true"})
    assert listed.status_code == 200
    assert [p["name"] for p in listed.json()["items"]] == ["John Roe"]

    found = await client.get("/api/v1/profiles", params={"search": "jane"})
    assert found.json()["total"] == 1

    detail = await client.get(f"/api/v1/profiles/{jane.id}")
    assert detail.status_code == 200
    assert detail.json()["location"] == "Berlin"
    assert detail.json()["needs_enrichment"] is False

    missing = await client.get(f"/api/v1/profiles/{uuid4()}")
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_health_reports_database_state(client: AsyncClient):
    with patch("socialsignals.main.ping", AsyncMock()):
        ok = await client.get("/health")
    assert ok.status_code == 200
    assert ok.json()["status"] == "healthy"

    with patch("socialsignals.main.ping", AsyncMock(side_effect=OSError("connection refused"))):
        down = await client.get("/health")
    assert down.status_code == 503
    assert down.json()["database"] == "unavailable"


@pytest.mark.asyncio
async def test_sqlite_engine_skips_pool_sizing():
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    try:
        await ping(engine)
    finally:
        await engine.dispose()
