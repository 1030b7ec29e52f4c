"""Tests for profile matching and upserting."""

import pytest

from socialsignals.repositories.profile_repo import ProfileRepository
from socialsignals.schemas.scrape import RawActor
from socialsignals.services.identity import ProfileMatcher, ProfileUpserter, extract_identifiers


def actor(handle: str, name: str = "Jane Doe", headline: str = "Engineer", urn: str | None = None) -> RawActor:
    return RawActor(
        name=name,
        headline=headline,
        profile_url=f"https://www.linkedin.com/in/{handle}",
        urn=urn,
    )


@pytest.mark.asyncio
async def test_new_actor_creates_profile(session):
    upserter = ProfileUpserter(ProfileRepository(session))

    result = await upserter.upsert(actor("ACoAjanedoe123"))
    await session.commit()

    assert result.created is True
    assert result.needs_enrichment is True
    profile = await ProfileRepository(session).get(result.profile_id)
    assert profile.primary_identifier == "ACoAjanedoe123"
    assert profile.secondary_identifier is None
    assert profile.urn == "ACoAjanedoe123"
    assert profile.first_seen is not None


@pytest.mark.asyncio
async def test_upsert_is_idempotent(session):
    upserter = ProfileUpserter(ProfileRepository(session))

    first = await upserter.upsert(actor("jane-doe-eng"))
    await session.commit()
    second = await upserter.upsert(actor("jane-doe-eng"))
    await session.commit()

    assert second.profile_id == first.profile_id
    assert second.created is False
    assert second.strategy == "secondary_identifier"
    profile = await ProfileRepository(session).get(first.profile_id)
    assert not profile.alternative_urns


@pytest.mark.asyncio
async def test_vanity_rescrape_matches_by_name_and_headline(session):
    """Same person seen first by internal id, then by vanity URL."""
    upserter = ProfileUpserter(ProfileRepository(session))

    first = await upserter.upsert(actor("ACoAjanedoe123"))
    await session.commit()
    second = await upserter.upsert(actor("jane-doe-eng"))
    await session.commit()

    assert second.created is False
    assert second.profile_id == first.profile_id
    assert second.strategy == "name_headline"

    profile = await ProfileRepository(session).get(first.profile_id)
    assert profile.primary_identifier == "ACoAjanedoe123"
    assert profile.secondary_identifier == "jane-doe-eng"
    assert profile.profile_url == "https://www.linkedin.com/in/jane-doe-eng"


@pytest.mark.asyncio
async def test_occupied_slot_is_never_overwritten(session, make_profile):
    stored = await make_profile(
        "ACoAjane",
        primary_identifier="ACoAjane",
        secondary_identifier="jane-old",
        name="Jane Doe",
    )
    upserter = ProfileUpserter(ProfileRepository(session))

    result = await upserter.upsert(actor("jane-new", urn="urn:li:person:ACoAjane"))
    await session.commit()

    assert result.profile_id == stored.id
    assert result.strategy == "primary_identifier"
    profile = await ProfileRepository(session).get(stored.id)
    assert profile.secondary_identifier == "jane-old"
    assert "jane-new" in profile.alternative_urns


@pytest.mark.asyncio
async def test_conflicting_primary_goes_to_alternatives(session, make_profile):
    stored = await make_profile("jane", primary_identifier="ACoAold", secondary_identifier="jane")
    upserter = ProfileUpserter(ProfileRepository(session))

    result = await upserter.upsert(actor("jane", urn="urn:li:person:ACoAnew"))
    await session.commit()

    assert result.profile_id == stored.id
    assert result.strategy == "secondary_identifier"
    profile = await ProfileRepository(session).get(stored.id)
    assert profile.primary_identifier == "ACoAold"
    assert profile.alternative_urns.count("ACoAnew") == 1


@pytest.mark.asyncio
async def test_alternative_identifier_is_matched_later(session, make_profile):
    stored = await make_profile("legacy", secondary_identifier="jane-old", alternative_urns=["jane-new"])
    upserter = ProfileUpserter(ProfileRepository(session))

    result = await upserter.upsert(actor("jane-new", name="Different", headline="Other"))

    assert result.profile_id == stored.id
    assert result.strategy == "alternative_urn"


@pytest.mark.asyncio
async def test_descriptive_fields_keep_values_when_incoming_blank(session, make_profile):
    stored = await make_profile("jane", secondary_identifier="jane", name="Jane Doe", headline="Engineer")
    upserter = ProfileUpserter(ProfileRepository(session))

    await upserter.upsert(RawActor(name="  ", headline="Staff Engineer", profile_url="https://www.linkedin.com/in/jane"))
    await session.commit()

    profile = await ProfileRepository(session).get(stored.id)
    assert profile.name == "Jane Doe"
    assert profile.headline == "Staff Engineer"


@pytest.mark.asyncio
async def test_primary_match_beats_name_and_headline(session, make_profile):
    by_name = await make_profile("someone", secondary_identifier="someone", name="Jane Doe", headline="Engineer")
    by_primary = await make_profile("ACoAjane", primary_identifier="ACoAjane", name="J. Doe", headline="Eng")
    matcher = ProfileMatcher(ProfileRepository(session))

    match = await matcher.match(
        extract_identifiers("https://www.linkedin.com/in/ACoAjane"),
        name="Jane Doe",
        headline="Engineer",
    )

    assert match.profile.id == by_primary.id
    assert match.profile.id != by_name.id
    assert match.strategy == "primary_identifier"


@pytest.mark.asyncio
async def test_name_headline_requires_both(session, make_profile):
    await make_profile("x", name="Jane Doe", headline=None)
    matcher = ProfileMatcher(ProfileRepository(session))

    match = await matcher.match(extract_identifiers(None, None), name="Jane Doe", headline="")

    assert match is None
