"""Engagement sync tasks for Celery."""

from uuid import UUID

from celery import shared_task
import structlog

from socialsignals.workers.celery_app import celery_app  # noqa: F401
from socialsignals.workers.runner import execute_job, run_async

logger = structlog.get_logger()


@shared_task(bind=True)
def sync_post_engagement(self, job_id: str):
    """
    Sync reactions or comments for the posts stored on a job.

    This task:
    1. Loads the job config (kind and post ids)
    2. Scrapes and imports every post
    3. Enriches new profiles and merges duplicates
    4. Stores the outcome, including per-item failures, on the job
    """
    from socialsignals.models.database import async_session_maker
    from socialsignals.models.engagement import EngagementKind
    from socialsignals.services.engagement import EngagementSyncPipeline
    from socialsignals.services.enrichment import OrchestratorConfig

    async def _body(session, client, sink, config):
        kind = EngagementKind(config.get("kind", EngagementKind.REACTIONS.value))
        post_ids = [UUID(p) for p in config.get("post_ids", [])]
        pipeline = EngagementSyncPipeline(
            session,
            scraper=client,
            enricher=client,
            sink=sink,
            enrichment_config=OrchestratorConfig.from_settings(),
        )
        return await pipeline.run(kind, post_ids)

    async def _process_job():
        async with async_session_maker() as session:
            return await execute_job(session, job_id, _body, processed_key="posts_synced")

    logger.info("Engagement sync task started", job_id=job_id, task_id=self.request.id)
    return run_async(_process_job())
