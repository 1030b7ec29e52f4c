"""Tests for identifier extraction."""

from socialsignals.services.identity.identifiers import (
    extract_handle,
    extract_identifiers,
    is_organisation_url,
    lookup_key,
    normalize_raw_id,
)


def test_internal_id_in_url_is_primary():
    ids = extract_identifiers("https://www.linkedin.com/in/ACoAABcDeFg123/")
    assert ids.primary == "ACoAABcDeFg123"
    assert ids.secondary is None
    assert ids.dedup_key == "ACoAABcDeFg123"


def test_vanity_handle_is_secondary():
    ids = extract_identifiers("https://www.linkedin.com/in/jane-doe-eng?miniProfileUrn=abc")
    assert ids.primary is None
    assert ids.secondary == "jane-doe-eng"
    assert ids.handle == "jane-doe-eng"


def test_raw_id_fills_primary_next_to_vanity_handle():
    ids = extract_identifiers("https://www.linkedin.com/in/jane-doe-eng", "urn:li:person:ACoAxyz")
    assert ids.primary == "ACoAxyz"
    assert ids.secondary == "jane-doe-eng"
    assert ids.values == ["ACoAxyz", "jane-doe-eng"]


def test_raw_id_without_url_becomes_secondary():
    ids = extract_identifiers(None, "  some-handle ")
    assert ids.primary is None
    assert ids.secondary == "some-handle"


def test_raw_id_that_is_a_url_is_ignored():
    ids = extract_identifiers("https://www.linkedin.com/company/acme", "https://www.linkedin.com/company/acme")
    assert ids.primary is None
    assert ids.secondary is None
    assert ids.dedup_key is None


def test_missing_everything_yields_empty():
    ids = extract_identifiers(None, None)
    assert ids.values == []


def test_extract_handle_stops_at_separators():
    assert extract_handle("https://linkedin.com/in/abc/details/experience") == "abc"
    assert extract_handle("https://linkedin.com/in/abc#top") == "abc"
    assert extract_handle("https://linkedin.com/company/abc") is None
    assert extract_handle("   ") is None


def test_normalize_raw_id():
    assert normalize_raw_id(" urn:li:person:ACoA1 ") == "ACoA1"
    assert normalize_raw_id("") is None
    assert normalize_raw_id(None) is None


def test_organisation_urls():
    assert is_organisation_url("https://www.linkedin.com/company/acme/")
    assert is_organisation_url("https://www.linkedin.com/school/mit")
    assert not is_organisation_url("https://www.linkedin.com/in/jane")
    assert not is_organisation_url(None)


def test_lookup_key_precedence():
    assert lookup_key("https://www.linkedin.com/in/jane", "ACoA1", "ACoA2") == "jane"
    assert lookup_key(None, "ACoA1", "ACoA2") == "ACoA1"
    assert lookup_key(None, None, "urn:li:person:ACoA2") == "ACoA2"
    assert lookup_key(None, None, "jane") is None
