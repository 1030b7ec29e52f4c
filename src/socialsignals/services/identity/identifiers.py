"""Identifier extraction from raw actor references.

A scraped actor carries a profile URL and sometimes a raw id. The URL path
segment after ``/in/`` is either an opaque platform id (``ACoA...``) or a
vanity handle chosen by the person. Nothing here touches the store and
nothing raises: missing identifiers are a normal outcome.
"""

import re
from dataclasses import dataclass

PERSON_PATH_MARKER = "/in/"
INTERNAL_ID_PREFIX = "ACoA"
PERSON_URN_PREFIX = "urn:li:person:"
ORGANISATION_URL_MARKERS = ("/company/", "/school/", "/showcase/")

_HANDLE_RE = re.compile(re.escape(PERSON_PATH_MARKER) + r"([^/?#]+)")


@dataclass(frozen=True)
class ExtractedIdentifiers:
    """Result of classifying a raw actor reference."""

    primary: str | None = None
    secondary: str | None = None
    handle: str | None = None

    @property
    def dedup_key(self) -> str | None:
        return self.primary or self.secondary

    @property
    def values(self) -> list[str]:
        """Distinct non-empty identifiers, primary first."""
        seen: list[str] = []
        for value in (self.primary, self.secondary, self.handle):
            if value and value not in seen:
                seen.append(value)
        return seen


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def is_internal_id(value: str | None) -> bool:
    """True when the value has the opaque platform id shape."""
    return bool(value) and value.startswith(INTERNAL_ID_PREFIX)


def looks_like_url(value: str | None) -> bool:
    if not value:
        return False
    lowered = value.lower()
    return lowered.startswith(("http://", "https://")) or "linkedin.com/" in lowered


def normalize_raw_id(raw_id: str | None) -> str | None:
    """Strip whitespace and the ``urn:li:person:`` prefix from a raw id."""
    raw_id = _clean(raw_id)
    if raw_id and raw_id.startswith(PERSON_URN_PREFIX):
        raw_id = _clean(raw_id[len(PERSON_URN_PREFIX):])
    return raw_id


def extract_handle(profile_url: str | None) -> str | None:
    """Path segment following ``/in/`` up to the next ``/`` or ``?``."""
    profile_url = _clean(profile_url)
    if not profile_url:
        return None
    match = _HANDLE_RE.search(profile_url)
    if not match:
        return None
    return _clean(match.group(1))


def extract_identifiers(profile_url: str | None, raw_id: str | None = None) -> ExtractedIdentifiers:
    """Classify a profile URL and optional raw id into primary/secondary identifiers."""
    handle = extract_handle(profile_url)
    raw_id = normalize_raw_id(raw_id)

    primary: str | None = None
    secondary: str | None = None

    if handle:
        if is_internal_id(handle):
            primary = handle
        else:
            secondary = handle

    if primary is None and is_internal_id(raw_id):
        primary = raw_id

    if primary is None and secondary is None and raw_id and not looks_like_url(raw_id):
        secondary = raw_id

    return ExtractedIdentifiers(primary=primary, secondary=secondary, handle=handle)


def is_organisation_url(profile_url: str | None) -> bool:
    """Company, school and showcase pages cannot be enriched as people."""
    if not profile_url:
        return False
    lowered = profile_url.lower()
    return any(marker in lowered for marker in ORGANISATION_URL_MARKERS)


def lookup_key(
    profile_url: str | None,
    primary_identifier: str | None = None,
    urn: str | None = None,
) -> str | None:
    """Best external lookup key for a stored profile.

    Prefers the URL handle, then a stored primary identifier, then a legacy
    urn that looks like a platform id.
    """
    handle = extract_handle(profile_url)
    if handle:
        return handle
    primary_identifier = _clean(primary_identifier)
    if primary_identifier:
        return primary_identifier
    urn = normalize_raw_id(urn)
    if is_internal_id(urn):
        return urn
    return None
