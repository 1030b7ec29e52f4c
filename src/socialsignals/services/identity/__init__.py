"""Profile identity resolution: extraction, matching, upsert and unification."""

from socialsignals.services.identity.identifiers import (
    ExtractedIdentifiers,
    extract_handle,
    extract_identifiers,
    is_organisation_url,
    lookup_key,
)
from socialsignals.services.identity.matcher import MatchResult, ProfileMatcher
from socialsignals.services.identity.upserter import ProfileUpserter, UpsertResult
from socialsignals.services.identity.unifier import (
    DisjointSet,
    DuplicateUnifier,
    EnrichedIdentity,
    UnifyResult,
    group_profiles,
)

__all__ = [
    "ExtractedIdentifiers",
    "extract_handle",
    "extract_identifiers",
    "is_organisation_url",
    "lookup_key",
    "MatchResult",
    "ProfileMatcher",
    "ProfileUpserter",
    "UpsertResult",
    "DisjointSet",
    "DuplicateUnifier",
    "EnrichedIdentity",
    "UnifyResult",
    "group_profiles",
]
