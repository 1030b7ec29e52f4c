"""Enrichment services module."""

from socialsignals.services.enrichment.apify import ApifyClient
from socialsignals.services.enrichment.orchestrator import (
    EnrichmentOrchestrator,
    EnrichmentResult,
    OrchestratorConfig,
)
from socialsignals.services.enrichment.pipeline import ProfileEnrichmentPipeline, enrich_and_unify
from socialsignals.services.enrichment.progress import (
    JobProgressSink,
    NullProgressSink,
    ProgressEvent,
    ProgressSink,
    ScaledProgressSink,
)
from socialsignals.services.enrichment.provider import (
    EngagementScraperProtocol,
    EnrichmentOutcome,
    OutcomeStatus,
    ProfileEnricherProtocol,
    ScrapeResult,
)

__all__ = [
    "ApifyClient",
    "EnrichmentOrchestrator",
    "EnrichmentResult",
    "OrchestratorConfig",
    "ProfileEnrichmentPipeline",
    "enrich_and_unify",
    "JobProgressSink",
    "NullProgressSink",
    "ProgressEvent",
    "ProgressSink",
    "ScaledProgressSink",
    "EngagementScraperProtocol",
    "EnrichmentOutcome",
    "OutcomeStatus",
    "ProfileEnricherProtocol",
    "ScrapeResult",
]
