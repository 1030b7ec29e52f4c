"""Bounded-concurrency profile enrichment."""

import asyncio
from collections.abc import AsyncIterator, Iterable
from contextlib import aclosing
from dataclasses import dataclass, field
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from socialsignals.config import settings
from socialsignals.errors import BatchTimeout, ItemFailure
from socialsignals.models.base import utcnow
from socialsignals.models.job import ProgressStatus
from socialsignals.models.profile import Profile
from socialsignals.repositories.profile_repo import ProfileRepository
from socialsignals.schemas.scrape import EnrichedProfile
from socialsignals.services.enrichment.progress import NullProgressSink, ProgressEvent, ProgressSink
from socialsignals.services.enrichment.provider import (
    EnrichmentOutcome,
    OutcomeStatus,
    ProfileEnricherProtocol,
)
from socialsignals.services.identity.identifiers import (
    is_internal_id,
    is_organisation_url,
    lookup_key,
    normalize_raw_id,
)
from socialsignals.services.identity.matcher import ProfileMatcher
from socialsignals.services.identity.unifier import EnrichedIdentity

logger = structlog.get_logger()

_ENRICHMENT_FIELDS = (
    "first_name",
    "last_name",
    "city",
    "country",
    "current_title",
    "current_company",
    "is_current_position",
    "company_linkedin_url",
    "profile_picture_url",
)


@dataclass
class OrchestratorConfig:
    """Configuration for the enrichment orchestrator."""

    batch_size: int = 50
    max_concurrent: int = 32
    batch_timeout: float = 300.0
    heartbeat_seconds: float = 15.0
    fetch_chunk_size: int = 50

    @classmethod
    def from_settings(cls) -> "OrchestratorConfig":
        return cls(
            batch_size=settings.enrichment_batch_size,
            max_concurrent=settings.enrichment_max_concurrent,
            batch_timeout=settings.enrichment_batch_timeout,
            heartbeat_seconds=settings.enrichment_heartbeat_seconds,
            fetch_chunk_size=settings.enrichment_fetch_chunk_size,
        )


@dataclass
class EnrichmentResult:
    """Totals for one enrichment run."""

    requested: int = 0
    candidates: int = 0
    skipped: int = 0
    enriched: int = 0
    not_found: int = 0
    failed: int = 0
    profiles_updated: int = 0
    batches: int = 0
    identities: list[EnrichedIdentity] = field(default_factory=list)
    failures: list[ItemFailure] = field(default_factory=list)

    def counts(self) -> dict[str, int]:
        return {
            "requested": self.requested,
            "candidates": self.candidates,
            "skipped": self.skipped,
            "enriched": self.enriched,
            "not_found": self.not_found,
            "failed": self.failed,
            "profiles_updated": self.profiles_updated,
        }


def _chunks(items: list, size: int) -> list[list]:
    return [items[i:i + size] for i in range(0, len(items), size)]


class EnrichmentOrchestrator:
    """
    Enrich profiles that lack identity detail.

    Flow:
    1. Load candidates and drop organisation pages and rows with no lookup key
    2. Batch lookup keys and dispatch batches under a concurrency cap
    3. Apply each finished batch to every matching row and commit it; a
       failing key is rolled back to its savepoint and counted as failed
    4. Emit progress before dispatch, while waiting and after each batch

    Batches commit independently, so abandoning the event stream leaves the
    store consistent and the remaining candidates simply un-enriched.
    """

    def __init__(
        self,
        db: AsyncSession,
        enricher: ProfileEnricherProtocol,
        config: OrchestratorConfig | None = None,
    ):
        self.db = db
        self.enricher = enricher
        self.config = config or OrchestratorConfig.from_settings()
        self.profiles = ProfileRepository(db)
        self.matcher = ProfileMatcher(self.profiles)
        self.result = EnrichmentResult()

    async def run(self, profile_ids: Iterable[UUID], sink: ProgressSink | None = None) -> EnrichmentResult:
        """Drive :meth:`stream` to completion, forwarding events to ``sink``."""
        sink = sink or NullProgressSink()
        async with aclosing(self.stream(profile_ids)) as events:
            async for event in events:
                await sink.emit(event)
        return self.result

    async def stream(self, profile_ids: Iterable[UUID]) -> AsyncIterator[ProgressEvent]:
        """Run enrichment, yielding progress events. Totals land on ``self.result``."""
        result = self.result = EnrichmentResult()
        ids = list(dict.fromkeys(profile_ids))
        result.requested = len(ids)

        yield self._event(ProgressStatus.STARTING, 0, f"Loading {len(ids)} profiles")

        key_map = await self._lookup_keys(ids)
        if not key_map:
            yield self._event(ProgressStatus.COMPLETED, 100, "No profiles to enrich")
            return

        batches = _chunks(list(key_map), self.config.batch_size)
        result.batches = len(batches)
        concurrent = min(len(batches), self.config.max_concurrent)
        yield self._event(
            ProgressStatus.ENRICHING,
            10,
            f"Enriching {len(key_map)} profiles in {len(batches)} batches ({concurrent} concurrent)",
        )

        semaphore = asyncio.Semaphore(self.config.max_concurrent)
        tasks = {
            asyncio.create_task(self._run_batch(batch, semaphore)): (index, batch)
            for index, batch in enumerate(batches)
        }
        pending = set(tasks)
        finished = 0
        percent = 10.0

        try:
            while pending:
                done, pending = await asyncio.wait(
                    pending,
                    timeout=self.config.heartbeat_seconds,
                    return_when=asyncio.FIRST_COMPLETED,
                )
                if not done:
                    yield self._event(
                        ProgressStatus.ENRICHING,
                        percent,
                        f"Waiting on {len(pending)} of {len(batches)} batches",
                    )
                    continue

                for task in done:
                    index, batch = tasks[task]
                    await self._handle_batch(index, batch, task, key_map)
                    finished += 1
                    percent = round(10 + 80 * finished / len(batches), 1)
                    yield self._event(
                        ProgressStatus.ENRICHING,
                        percent,
                        f"Completed {finished} of {len(batches)} batches",
                    )
        finally:
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
                logger.info("Enrichment abandoned", pending_batches=len(pending))

        logger.info("Enrichment finished", **result.counts())
        yield self._event(
            ProgressStatus.COMPLETED,
            100,
            f"Enriched {result.enriched} of {result.candidates} profiles",
        )

    def _event(self, status: ProgressStatus, percent: float, message: str) -> ProgressEvent:
        return ProgressEvent(status=status, percent=percent, message=message, counts=self.result.counts())

    async def _lookup_keys(self, ids: list[UUID]) -> dict[str, list[UUID]]:
        """Lookup key -> profile ids sharing it, in candidate order."""
        key_map: dict[str, list[UUID]] = {}
        profiles = await self.profiles.get_many(ids, chunk_size=self.config.fetch_chunk_size)
        self.result.skipped += len(ids) - len(profiles)
        for profile in profiles:
            if is_organisation_url(profile.profile_url):
                self.result.skipped += 1
                continue
            key = lookup_key(profile.profile_url, profile.primary_identifier, profile.urn)
            if not key:
                self.result.skipped += 1
                continue
            key_map.setdefault(key, []).append(profile.id)
            self.result.candidates += 1
        return key_map

    async def _run_batch(self, batch: list[str], semaphore: asyncio.Semaphore) -> dict[str, EnrichmentOutcome]:
        async with semaphore:
            return await asyncio.wait_for(
                self.enricher.enrich_profiles(batch),
                timeout=self.config.batch_timeout,
            )

    async def _handle_batch(
        self,
        index: int,
        batch: list[str],
        task: asyncio.Task,
        key_map: dict[str, list[UUID]],
    ) -> None:
        batch_profiles = sum(len(key_map[k]) for k in batch)
        try:
            outcomes = task.result()
        except asyncio.TimeoutError:
            error = BatchTimeout(f"Enrichment batch {index} timed out", batch=index)
            self._fail_batch(index, batch_profiles, error)
            return
        except Exception as e:
            self._fail_batch(index, batch_profiles, e)
            return

        counts = self.result.counts()
        identities, failures = len(self.result.identities), len(self.result.failures)
        try:
            await self._apply_batch(batch, outcomes, key_map)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            # Nothing from this batch was stored
            for name, value in counts.items():
                setattr(self.result, name, value)
            del self.result.identities[identities:]
            del self.result.failures[failures:]
            self._fail_batch(index, batch_profiles, e)

    def _fail_batch(self, index: int, profiles: int, error: Exception) -> None:
        logger.error("Enrichment batch failed", batch=index, profiles=profiles, error=str(error))
        self.result.failed += profiles
        self.result.failures.append(ItemFailure.from_error(f"batch:{index}", error))

    async def _apply_batch(
        self,
        batch: list[str],
        outcomes: dict[str, EnrichmentOutcome],
        key_map: dict[str, list[UUID]],
    ) -> None:
        now = utcnow()
        for key in batch:
            requested_ids = key_map[key]
            outcome = outcomes.get(key)
            if outcome is None or outcome.status == OutcomeStatus.NOT_FOUND:
                self.result.not_found += len(requested_ids)
                continue
            if outcome.status == OutcomeStatus.ERROR or outcome.profile is None:
                logger.warning("Profile enrichment failed", key=key, reason=outcome.reason)
                self.result.failed += len(requested_ids)
                self.result.failures.append(ItemFailure(item=key, kind="enrichment_error", reason=outcome.reason or "error"))
                continue

            try:
                async with self.db.begin_nested():
                    target_ids = await self._apply_key(outcome.profile, requested_ids, now)
            except SQLAlchemyError as e:
                logger.warning("Applying enrichment failed", key=key, profiles=len(requested_ids), error=str(e))
                self.result.failed += len(requested_ids)
                self.result.failures.append(ItemFailure.from_error(key, e))
                continue

            identities = [normalize_raw_id(v) for v in outcome.profile.identifiers]
            self.result.enriched += len(requested_ids)
            self.result.profiles_updated += len(target_ids)
            self.result.identities.append(EnrichedIdentity.of([*identities, key], target_ids))

    async def _apply_key(self, detail: EnrichedProfile, requested_ids: list[UUID], now) -> list[UUID]:
        targets = {p.id: p for p in await self.matcher.find_enrichment_targets(detail.urn, detail.public_identifier)}
        for profile in await self.profiles.get_many(requested_ids):
            targets.setdefault(profile.id, profile)
        for profile in targets.values():
            self.apply_detail(profile, detail, now)
        await self.db.flush()
        return list(targets)

    def apply_detail(self, profile: Profile, detail: EnrichedProfile, now=None) -> None:
        """Write enrichment fields. Identifier slots are only filled, never replaced."""
        now = now or utcnow()
        for attr in _ENRICHMENT_FIELDS:
            value = getattr(detail, attr)
            if value is not None:
                setattr(profile, attr, value)

        conflicts = []
        if detail.public_identifier:
            if not profile.public_identifier:
                profile.public_identifier = detail.public_identifier
            elif profile.public_identifier != detail.public_identifier:
                conflicts.append(detail.public_identifier)
        urn = normalize_raw_id(detail.urn)
        if is_internal_id(urn):
            if not profile.primary_identifier:
                profile.primary_identifier = urn
            elif profile.primary_identifier != urn:
                conflicts.append(urn)
        self.profiles.append_alternatives(profile, conflicts)

        if profile.enriched_at is None:
            profile.enriched_at = now
        profile.last_enriched_at = now
        profile.last_updated = now
