"""Tests for the engagement sync and profile enrichment pipelines."""

from uuid import uuid4

import pytest

from conftest import FakeEnricher, ListSink, reaction_item
from socialsignals.errors import ValidationError
from socialsignals.models.engagement import EngagementKind
from socialsignals.models.job import ProgressStatus
from socialsignals.repositories.engagement_repo import EngagementRepository
from socialsignals.repositories.profile_repo import ProfileRepository
from socialsignals.schemas.scrape import EnrichedProfile
from socialsignals.services.engagement import EngagementSyncPipeline
from socialsignals.services.enrichment import OrchestratorConfig, ProfileEnrichmentPipeline, ScrapeResult

FAST = OrchestratorConfig(batch_size=10, max_concurrent=2, batch_timeout=5, heartbeat_seconds=5, fetch_chunk_size=10)


class FakeScraper:
    """Serves canned reactions per post URL; listed URLs fail."""

    def __init__(self, items: dict[str, list[dict]], errors: dict[str, str] | None = None):
        self.items = items
        self.errors = errors or {}

    async def scrape_reactions(self, post_urls: list[str]) -> ScrapeResult:
        result = ScrapeResult()
        for url in post_urls:
            if url in self.errors:
                result.errors[url] = self.errors[url]
            else:
                result.items[url] = self.items.get(url, [])
        return result

    async def scrape_comments(self, post_urls: list[str]) -> ScrapeResult:
        return ScrapeResult(items={url: [] for url in post_urls})


@pytest.mark.asyncio
async def test_sync_reports_partial_success(session, make_post):
    good = await make_post("https://www.linkedin.com/posts/good")
    bad = await make_post("https://www.linkedin.com/posts/bad")
    missing_id = uuid4()
    scraper = FakeScraper(
        {good.post_url: [reaction_item("alice", name="Alice"), reaction_item("bob", name="Bob"), reaction_item(None)]},
        errors={bad.post_url: "actor run failed"},
    )
    enricher = FakeEnricher({"alice": EnrichedProfile(public_identifier="alice", urn="ACoAalice", first_name="Alice")})
    sink = ListSink()

    outcome = await EngagementSyncPipeline(
        session, scraper, enricher, sink=sink, enrichment_config=FAST
    ).run(EngagementKind.REACTIONS, [good.id, bad.id, missing_id])

    assert outcome.status == "completed"
    assert outcome.is_partial
    kinds = {f.item: f.kind for f in outcome.failures}
    assert kinds[str(missing_id)] == "not_found"
    assert kinds[str(bad.id)] == "scrape_error"
    assert outcome.counts["posts_synced"] == 1
    assert outcome.counts["engagement_rows"] == 2
    assert outcome.counts["records_dropped"] == 1
    assert outcome.counts["profiles_created"] == 2
    assert outcome.counts["enrichment_enriched"] == 1
    assert outcome.counts["enrichment_not_found"] == 1

    rows = await EngagementRepository(session).list_for_post(EngagementKind.REACTIONS, good.id)
    assert len(rows) == 2

    percents = [e.percent for e in sink.events]
    assert percents == sorted(percents)
    assert sink.events[0].status == ProgressStatus.STARTING
    assert sink.events[-1].status == ProgressStatus.COMPLETED
    assert sink.events[-1].percent == 100
    assert any(e.status == ProgressStatus.UNIFYING for e in sink.events)


@pytest.mark.asyncio
async def test_sync_rejects_empty_and_unknown_posts(session):
    pipeline = EngagementSyncPipeline(session, FakeScraper({}), FakeEnricher(), enrichment_config=FAST)

    with pytest.raises(ValidationError):
        await pipeline.run(EngagementKind.REACTIONS, [])
    with pytest.raises(ValidationError):
        await pipeline.run(EngagementKind.REACTIONS, [uuid4()])


@pytest.mark.asyncio
async def test_enrichment_merges_duplicates_it_reveals(session, make_profile):
    by_handle = await make_profile(
        "jane-doe",
        secondary_identifier="jane-doe",
        profile_url="https://www.linkedin.com/in/jane-doe",
    )
    by_internal = await make_profile(
        "ACoAjane",
        primary_identifier="ACoAjane",
        profile_url="https://www.linkedin.com/in/ACoAjane",
    )
    enricher = FakeEnricher({
        "jane-doe": EnrichedProfile(public_identifier="jane-doe", urn="ACoAjane", first_name="Jane"),
        "ACoAjane": EnrichedProfile(public_identifier="jane-doe", urn="ACoAjane", first_name="Jane"),
    })
    sink = ListSink()

    outcome = await ProfileEnrichmentPipeline(session, enricher, sink=sink, config=FAST).run(
        [by_handle.id, by_internal.id]
    )

    assert outcome.counts["profiles_merged"] == 1
    assert outcome.counts["merge_groups"] == 1
    assert outcome.failures == []
    profiles = ProfileRepository(session)
    remaining = [p for p in (await profiles.get(by_handle.id), await profiles.get(by_internal.id)) if p]
    assert len(remaining) == 1
    assert remaining[0].primary_identifier == "ACoAjane"
    assert remaining[0].public_identifier == "jane-doe"
    assert sink.events[-1].status == ProgressStatus.COMPLETED


@pytest.mark.asyncio
async def test_enrichment_requires_profile_ids(session):
    with pytest.raises(ValidationError):
        await ProfileEnrichmentPipeline(session, FakeEnricher(), config=FAST).run([])
