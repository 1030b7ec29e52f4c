"""Async job status endpoints."""

import csv
import io
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse

from socialsignals.api.deps import get_db
from socialsignals.schemas.job import JobCancelResponse, JobEventResponse, JobResponse, JobListResponse
from socialsignals.repositories.job_repo import JobRepository

router = APIRouter()


async def _get_job_or_404(repo: JobRepository, job_id: UUID):
    job = await repo.get(job_id)
    if not job:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Job {job_id} not found",
        )
    return job


@router.get("", response_model=JobListResponse)
async def list_jobs(
    page: int = 1,
    per_page: int = 20,
    status: str | None = None,
    job_type: str | None = None,
    db=Depends(get_db),
) -> JobListResponse:
    """List all async jobs with pagination and filtering."""
    repo = JobRepository(db)
    jobs, total = await repo.list_jobs(
        page=page,
        per_page=per_page,
        status=status,
        job_type=job_type,
    )
    return JobListResponse(
        items=jobs,
        total=total,
        page=page,
        per_page=per_page,
        pages=(total + per_page - 1) // per_page,
    )


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: UUID,
    db=Depends(get_db),
) -> JobResponse:
    """Get job status and details.

    A ``completed`` job may still carry per-item failures in
    ``result.failures``; ``result.partial`` is true in that case.
    """
    repo = JobRepository(db)
    return await _get_job_or_404(repo, job_id)


@router.get("/{job_id}/events", response_model=list[JobEventResponse])
async def list_job_events(
    job_id: UUID,
    after: int = 0,
    db=Depends(get_db),
) -> list[JobEventResponse]:
    """Progress events in emission order. Pass ``after`` to poll for new ones."""
    repo = JobRepository(db)
    await _get_job_or_404(repo, job_id)
    return await repo.list_events(job_id, after=after)


@router.post("/{job_id}/cancel", response_model=JobCancelResponse)
async def cancel_job(
    job_id: UUID,
    db=Depends(get_db),
) -> JobCancelResponse:
    """Cancel a queued or running job.

    The worker stops at its next progress update; work already committed
    is kept.
    """
    repo = JobRepository(db)
    job = await _get_job_or_404(repo, job_id)

    cancelled = await repo.cancel(job_id)
    return JobCancelResponse(job_id=job_id, success=cancelled, status=job.status)


@router.get("/{job_id}/failures")
async def export_job_failures(
    job_id: UUID,
    format: Literal["csv", "json"] = "json",
    db=Depends(get_db),
):
    """
    Export the per-item failures of a finished job.

    ## Columns

    - item: post id, actor key, enrichment batch or merge group
    - kind: error kind (not_found, delete_timeout, conflict, ...)
    - reason: error message
    """
    repo = JobRepository(db)
    job = await _get_job_or_404(repo, job_id)

    if not job.is_terminal:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Job is not finished. Current status: {job.status.value}",
        )

    failures = (job.result or {}).get("failures", [])

    if format == "json":
        return {
            "job_id": str(job_id),
            "total": len(failures),
            "failures": failures,
        }

    csv_columns = ["item", "kind", "reason"]

    def generate_csv():
        output = io.StringIO()
        writer = csv.DictWriter(output, fieldnames=csv_columns, extrasaction="ignore")
        writer.writeheader()
        yield output.getvalue()
        output.seek(0)
        output.truncate(0)

        for failure in failures:
            writer.writerow(failure)
            yield output.getvalue()
            output.seek(0)
            output.truncate(0)

    filename = f"job_failures_{job_id}.csv"

    return StreamingResponse(
        generate_csv(),
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
        },
    )
