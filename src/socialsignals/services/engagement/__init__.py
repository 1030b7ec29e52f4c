"""Engagement import services."""

from socialsignals.services.engagement.importer import EngagementImporter, ImportResult
from socialsignals.services.engagement.pipeline import EngagementSyncPipeline

__all__ = ["EngagementImporter", "ImportResult", "EngagementSyncPipeline"]
