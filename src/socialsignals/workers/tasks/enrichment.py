"""Profile enrichment tasks for Celery."""

from uuid import UUID

from celery import shared_task
import structlog

from socialsignals.workers.celery_app import celery_app  # noqa: F401
from socialsignals.workers.runner import execute_job, run_async

logger = structlog.get_logger()


@shared_task(bind=True)
def enrich_profiles_job(self, job_id: str):
    """Enrich the profiles stored on a job, then merge duplicates."""
    from socialsignals.models.database import async_session_maker
    from socialsignals.services.enrichment import OrchestratorConfig, ProfileEnrichmentPipeline

    async def _body(session, client, sink, config):
        profile_ids = [UUID(p) for p in config.get("profile_ids", [])]
        pipeline = ProfileEnrichmentPipeline(
            session,
            enricher=client,
            sink=sink,
            config=OrchestratorConfig.from_settings(),
        )
        return await pipeline.run(profile_ids)

    async def _process_job():
        async with async_session_maker() as session:
            return await execute_job(session, job_id, _body, processed_key="enrichment_enriched")

    logger.info("Enrichment task started", job_id=job_id, task_id=self.request.id)
    return run_async(_process_job())
