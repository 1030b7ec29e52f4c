"""Enrichment pipeline: enrich profiles, then fold duplicates together."""

from collections.abc import Iterable
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from socialsignals.errors import JobOutcome, ValidationError
from socialsignals.models.job import ProgressStatus
from socialsignals.services.enrichment.orchestrator import EnrichmentOrchestrator, OrchestratorConfig
from socialsignals.services.enrichment.progress import (
    NullProgressSink,
    ProgressEvent,
    ProgressSink,
    ScaledProgressSink,
)
from socialsignals.services.enrichment.provider import ProfileEnricherProtocol
from socialsignals.services.identity.unifier import DuplicateUnifier

logger = structlog.get_logger()


async def enrich_and_unify(
    db: AsyncSession,
    enricher: ProfileEnricherProtocol,
    profile_ids: Iterable[UUID],
    outcome: JobOutcome,
    sink: ProgressSink,
    start: float,
    end: float,
    config: OrchestratorConfig | None = None,
) -> None:
    """Enrich ``profile_ids`` then unify what enrichment revealed.

    Progress is reported inside ``[start, end]``; counts and failures are
    added to ``outcome``.
    """
    ids = list(dict.fromkeys(profile_ids))
    unify_at = start + (end - start) * 0.9

    orchestrator = EnrichmentOrchestrator(db, enricher, config)
    enrichment = await orchestrator.run(ids, ScaledProgressSink(sink, start, unify_at))
    for key, value in enrichment.counts().items():
        outcome.bump(f"enrichment_{key}", value)
    outcome.failures.extend(enrichment.failures)

    await sink.emit(
        ProgressEvent(
            ProgressStatus.UNIFYING,
            unify_at,
            f"Checking {len(enrichment.identities)} enriched identities for duplicates",
            dict(outcome.counts),
        )
    )
    unified = await DuplicateUnifier(db).unify(enrichment.identities)
    outcome.bump("profiles_merged", unified.merged)
    outcome.bump("merge_groups", unified.groups)
    outcome.failures.extend(unified.failures)


class ProfileEnrichmentPipeline:
    """
    Enrichment-only job.

    Flow:
    1. Validate the requested profile ids
    2. Enrich them under the orchestrator's concurrency cap
    3. Unify duplicates revealed by enrichment
    """

    def __init__(
        self,
        db: AsyncSession,
        enricher: ProfileEnricherProtocol,
        sink: ProgressSink | None = None,
        config: OrchestratorConfig | None = None,
    ):
        self.db = db
        self.enricher = enricher
        self.sink = sink or NullProgressSink()
        self.config = config

    async def run(self, profile_ids: list[UUID]) -> JobOutcome:
        if not profile_ids:
            raise ValidationError("No profile ids provided")

        outcome = JobOutcome()
        outcome.bump("profiles_requested", len(set(profile_ids)))

        await enrich_and_unify(self.db, self.enricher, profile_ids, outcome, self.sink, 0, 95, self.config)

        await self.sink.emit(
            ProgressEvent(ProgressStatus.COMPLETED, 100, "Enrichment complete", dict(outcome.counts))
        )
        logger.info("Profile enrichment job finished", **outcome.counts, failures=len(outcome.failures))
        return outcome
