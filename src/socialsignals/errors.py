"""Error kinds and structured partial-failure results."""

from dataclasses import dataclass, field
from typing import Any


class SocialSignalsError(Exception):
    """Base class for domain errors."""

    kind: str = "error"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(SocialSignalsError):
    """Malformed or missing top-level input. The job is never started."""

    kind = "validation_error"


class ConfigurationError(SocialSignalsError):
    """Store access or provider credentials are missing."""

    kind = "configuration_error"


class NotFoundError(SocialSignalsError):
    """A referenced post or profile does not exist."""

    kind = "not_found"


class UpstreamTimeout(SocialSignalsError):
    """A provider call or store operation exceeded its bound. Retryable."""

    kind = "upstream_timeout"


class BatchTimeout(UpstreamTimeout):
    """An enrichment batch call exceeded its bound."""

    kind = "batch_timeout"


class DeleteTimeout(UpstreamTimeout):
    """Clearing old engagement rows timed out. Re-delete before re-inserting."""

    kind = "delete_timeout"


class InsertTimeout(UpstreamTimeout):
    """Writing new engagement rows timed out after the delete step ran."""

    kind = "insert_timeout"


class ScrapeError(SocialSignalsError):
    """The scrape provider failed for one post."""

    kind = "scrape_error"


class EngagementWriteError(SocialSignalsError):
    """Inserting engagement rows failed; the post's rows are indeterminate."""

    kind = "engagement_write_error"


class ConflictError(SocialSignalsError):
    """A merge group could not be repointed or deleted; left in pre-merge state."""

    kind = "conflict"


class JobCancelled(SocialSignalsError):
    """The job was cancelled while running."""

    kind = "cancelled"


@dataclass
class ItemFailure:
    """One failed unit (post, actor, batch, merge group) inside a job."""

    item: str
    kind: str
    reason: str

    @classmethod
    def from_error(cls, item: str, error: Exception) -> "ItemFailure":
        kind = getattr(error, "kind", None) or type(error).__name__
        return cls(item=item, kind=kind, reason=str(error) or type(error).__name__)

    def to_dict(self) -> dict[str, str]:
        return {"item": self.item, "kind": self.kind, "reason": self.reason}


@dataclass
class JobOutcome:
    """Terminal result of a job.

    ``status`` is ``completed`` even when ``failures`` is not empty; consumers
    must inspect the failure list to tell full from partial success.
    """

    status: str = "completed"
    counts: dict[str, int] = field(default_factory=dict)
    failures: list[ItemFailure] = field(default_factory=list)
    error: str | None = None

    @property
    def is_partial(self) -> bool:
        return self.status == "completed" and bool(self.failures)

    def add_failure(self, item: str, error: Exception) -> None:
        self.failures.append(ItemFailure.from_error(item, error))

    def bump(self, key: str, amount: int = 1) -> None:
        self.counts[key] = self.counts.get(key, 0) + amount

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "partial": self.is_partial,
            "counts": dict(self.counts),
            "failures": [f.to_dict() for f in self.failures],
            "error": self.error,
        }
