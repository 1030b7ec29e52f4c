"""Scraping endpoints: queue engagement sync and profile enrichment jobs."""

from fastapi import APIRouter, HTTPException, status

from socialsignals.api.deps import DbSession, require_apify_token
from socialsignals.models.engagement import EngagementKind
from socialsignals.models.job import AsyncJob, JobStatus, JobType
from socialsignals.repositories.job_repo import JobRepository
from socialsignals.schemas.scrape import EnrichRequest, JobQueuedResponse, PostScrapeRequest

router = APIRouter()

_SYNC_JOB_TYPES = {
    EngagementKind.REACTIONS: JobType.SYNC_REACTIONS,
    EngagementKind.COMMENTS: JobType.SYNC_COMMENTS,
}


async def _queue_sync(request: PostScrapeRequest, kind: EngagementKind, db) -> JobQueuedResponse:
    if not request.post_ids:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="post_ids is required and must not be empty",
        )
    require_apify_token()

    post_ids = [str(p) for p in dict.fromkeys(request.post_ids)]
    job_repo = JobRepository(db)
    job = await job_repo.create(
        job_type=_SYNC_JOB_TYPES[kind],
        config={"kind": kind.value, "post_ids": post_ids},
        total_items=len(post_ids),
    )
    await _dispatch(job_repo, job)

    # Queue Celery task
    from socialsignals.workers.tasks.scraping import sync_post_engagement
    sync_post_engagement.delay(str(job.id))

    return JobQueuedResponse(
        job_id=job.id,
        message=f"Job created. Syncing {kind.value} for {len(post_ids)} posts.",
        total_items=len(post_ids),
    )


async def _dispatch(job_repo: JobRepository, job: AsyncJob) -> None:
    """Mark queued and commit so the worker can see the job."""
    await job_repo.update_status(job.id, JobStatus.QUEUED)
    await job_repo.db.commit()


@router.post("/reactions", response_model=JobQueuedResponse)
async def sync_reactions(request: PostScrapeRequest, db: DbSession) -> JobQueuedResponse:
    """
    Scrape reactions for tracked posts.

    ## Workflow

    1. Reactions are scraped page by page for every post
    2. Each reactor is resolved to a canonical profile
    3. The post's reaction rows are replaced with the new snapshot
    4. New and incomplete profiles are enriched, then duplicates are merged

    Use GET /jobs/{job_id} and /jobs/{job_id}/events to follow progress.
    """
    return await _queue_sync(request, EngagementKind.REACTIONS, db)


@router.post("/comments", response_model=JobQueuedResponse)
async def sync_comments(request: PostScrapeRequest, db: DbSession) -> JobQueuedResponse:
    """Scrape comments for tracked posts. Same flow as /reactions."""
    return await _queue_sync(request, EngagementKind.COMMENTS, db)


@router.post("/enrich", response_model=JobQueuedResponse)
async def enrich_profiles(request: EnrichRequest, db: DbSession) -> JobQueuedResponse:
    """Enrich specific profiles, then merge any duplicates enrichment reveals."""
    if not request.profile_ids:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="profile_ids is required and must not be empty",
        )
    require_apify_token()

    profile_ids = [str(p) for p in dict.fromkeys(request.profile_ids)]
    job_repo = JobRepository(db)
    job = await job_repo.create(
        job_type=JobType.ENRICH_PROFILES,
        config={"profile_ids": profile_ids},
        total_items=len(profile_ids),
    )
    await _dispatch(job_repo, job)

    # Queue Celery task
    from socialsignals.workers.tasks.enrichment import enrich_profiles_job
    enrich_profiles_job.delay(str(job.id))

    return JobQueuedResponse(
        job_id=job.id,
        message=f"Job created. Enriching {len(profile_ids)} profiles.",
        total_items=len(profile_ids),
    )
