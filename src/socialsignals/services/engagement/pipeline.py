"""Engagement sync pipeline: scrape, import, enrich, unify."""

from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from socialsignals.errors import JobOutcome, NotFoundError, ScrapeError, SocialSignalsError, ValidationError
from socialsignals.models.engagement import EngagementKind
from socialsignals.models.job import ProgressStatus
from socialsignals.repositories.post_repo import PostRepository
from socialsignals.services.engagement.importer import EngagementImporter
from socialsignals.services.enrichment.orchestrator import OrchestratorConfig
from socialsignals.services.enrichment.pipeline import enrich_and_unify
from socialsignals.services.enrichment.progress import NullProgressSink, ProgressEvent, ProgressSink
from socialsignals.services.enrichment.provider import EngagementScraperProtocol, ProfileEnricherProtocol

logger = structlog.get_logger()


class EngagementSyncPipeline:
    """
    Sync reactions or comments for a set of tracked posts.

    Flow:
    1. Validate input and load the posts
    2. Scrape every post through the provider
    3. Import each post (resolve actors, replace engagement rows)
    4. Enrich new and incomplete profiles
    5. Unify duplicates revealed by enrichment

    Per-post failures are recorded on the outcome and never stop the job.
    """

    def __init__(
        self,
        db: AsyncSession,
        scraper: EngagementScraperProtocol,
        enricher: ProfileEnricherProtocol,
        sink: ProgressSink | None = None,
        importer: EngagementImporter | None = None,
        enrichment_config: OrchestratorConfig | None = None,
    ):
        self.db = db
        self.scraper = scraper
        self.enricher = enricher
        self.sink = sink or NullProgressSink()
        self.importer = importer or EngagementImporter(db)
        self.enrichment_config = enrichment_config
        self.posts = PostRepository(db)

    async def _emit(self, status: ProgressStatus, percent: float, message: str, outcome: JobOutcome) -> None:
        await self.sink.emit(ProgressEvent(status, percent, message, dict(outcome.counts)))

    async def run(self, kind: EngagementKind, post_ids: list[UUID]) -> JobOutcome:
        if not post_ids:
            raise ValidationError("No post ids provided")

        outcome = JobOutcome()
        post_ids = list(dict.fromkeys(post_ids))
        await self._emit(ProgressStatus.STARTING, 0, f"Loading {len(post_ids)} posts", outcome)

        posts = await self.posts.get_many(post_ids)
        found = {post.id: post.post_url for post in posts}
        for post_id in post_ids:
            if post_id not in found:
                outcome.add_failure(str(post_id), NotFoundError("Post not found", post_id=str(post_id)))
        if not found:
            raise ValidationError("None of the requested posts exist", post_ids=[str(p) for p in post_ids])
        outcome.bump("posts_requested", len(post_ids))

        await self._emit(ProgressStatus.SCRAPING, 5, f"Scraping {kind.value} for {len(found)} posts", outcome)
        urls = list(dict.fromkeys(found.values()))
        if kind == EngagementKind.REACTIONS:
            scraped = await self.scraper.scrape_reactions(urls)
        else:
            scraped = await self.scraper.scrape_comments(urls)

        enrichment_candidates: list[UUID] = []
        for done, (post_id, post_url) in enumerate(found.items(), start=1):
            if post_url in scraped.errors:
                outcome.add_failure(str(post_id), ScrapeError(scraped.errors[post_url], post_url=post_url))
            else:
                await self._import_one(kind, post_id, scraped.items.get(post_url, []), outcome, enrichment_candidates)

            await self._emit(
                ProgressStatus.PROCESSING,
                round(10 + 50 * done / len(found), 1),
                f"Processed {done} of {len(found)} posts",
                outcome,
            )

        await enrich_and_unify(
            self.db,
            self.enricher,
            enrichment_candidates,
            outcome,
            self.sink,
            60,
            95,
            self.enrichment_config,
        )

        synced = outcome.counts.get("posts_synced", 0)
        await self._emit(ProgressStatus.COMPLETED, 100, f"Synced {kind.value} for {synced} posts", outcome)
        logger.info(
            "Engagement sync finished",
            kind=kind.value,
            failures=len(outcome.failures),
            **outcome.counts,
        )
        return outcome

    async def _import_one(
        self,
        kind: EngagementKind,
        post_id: UUID,
        items: list[dict],
        outcome: JobOutcome,
        enrichment_candidates: list[UUID],
    ) -> None:
        # Reload: a rollback in an earlier post expires loaded instances
        post = await self.posts.get(post_id)
        if post is None:
            outcome.add_failure(str(post_id), NotFoundError("Post not found", post_id=str(post_id)))
            return

        try:
            result = await self.importer.import_post(kind, post, items)
        except (SocialSignalsError, SQLAlchemyError) as e:
            await self.db.rollback()
            logger.error("Post import failed", post_id=str(post_id), kind=kind.value, error=str(e))
            outcome.add_failure(str(post_id), e)
            return

        outcome.bump("posts_synced")
        outcome.bump("engagement_rows", result.rows_written)
        outcome.bump("profiles_touched", result.profiles_touched)
        outcome.bump("profiles_created", len(result.created_profile_ids))
        outcome.bump("records_dropped", result.dropped)
        outcome.bump("records_unresolved", result.unresolved)
        outcome.failures.extend(result.failures)
        for profile_id in (*result.created_profile_ids, *result.needs_enrichment_ids):
            if profile_id not in enrichment_candidates:
                enrichment_candidates.append(profile_id)
