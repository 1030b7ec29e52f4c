"""Tests for the enrichment orchestrator."""

import pytest
from sqlalchemy.exc import OperationalError

from conftest import FakeEnricher, ListSink
from socialsignals.models.job import ProgressStatus
from socialsignals.repositories.profile_repo import ProfileRepository
from socialsignals.schemas.scrape import EnrichedProfile
from socialsignals.services.enrichment import EnrichmentOrchestrator, OrchestratorConfig
from socialsignals.services.identity import ProfileMatcher


def config(**overrides) -> OrchestratorConfig:
    values = {
        "batch_size": 50,
        "max_concurrent": 4,
        "batch_timeout": 5,
        "heartbeat_seconds": 5,
        "fetch_chunk_size": 50,
    }
    values.update(overrides)
    return OrchestratorConfig(**values)


JANE = EnrichedProfile(
    public_identifier="jane-doe",
    urn="urn:li:person:ACoAjane",
    first_name="Jane",
    last_name="Doe",
    city="Berlin",
    country="Germany",
    current_title="Engineer",
    current_company="Acme",
    is_current_position=True,
)


@pytest.mark.asyncio
async def test_enriches_profile_and_fills_identifier_slots(session, make_profile):
    profile = await make_profile(
        "jane-doe",
        secondary_identifier="jane-doe",
        profile_url="https://www.linkedin.com/in/jane-doe",
    )
    enricher = FakeEnricher({"jane-doe": JANE})
    sink = ListSink()

    result = await EnrichmentOrchestrator(session, enricher, config()).run([profile.id], sink)

    assert enricher.calls == [["jane-doe"]]
    assert result.enriched == 1
    assert result.candidates == 1
    stored = await ProfileRepository(session).get(profile.id)
    assert stored.first_name == "Jane"
    assert stored.public_identifier == "jane-doe"
    assert stored.primary_identifier == "ACoAjane"
    assert stored.location == "Berlin, Germany"
    assert stored.enriched_at is not None
    assert stored.needs_enrichment is False
    assert sink.events[0].status == ProgressStatus.STARTING
    assert sink.events[-1].status == ProgressStatus.COMPLETED
    assert sink.events[-1].percent == 100
    assert [e.percent for e in sink.events] == sorted(e.percent for e in sink.events)
    assert result.identities[0].values >= {"ACoAjane", "jane-doe"}


@pytest.mark.asyncio
async def test_result_is_applied_to_every_matching_row(session, make_profile):
    requested = await make_profile(
        "jane-doe",
        secondary_identifier="jane-doe",
        profile_url="https://www.linkedin.com/in/jane-doe",
    )
    duplicate = await make_profile(
        "ACoAjane",
        primary_identifier="ACoAjane",
        profile_url="https://www.linkedin.com/in/ACoAjane",
    )

    result = await EnrichmentOrchestrator(session, FakeEnricher({"jane-doe": JANE}), config()).run([requested.id])

    assert result.enriched == 1
    assert result.profiles_updated == 2
    assert (await ProfileRepository(session).get(duplicate.id)).first_name == "Jane"
    assert result.identities[0].profile_ids == {requested.id, duplicate.id}


@pytest.mark.asyncio
async def test_organisations_and_keyless_profiles_are_skipped(session, make_profile):
    company = await make_profile("acme", profile_url="https://www.linkedin.com/company/acme")
    keyless = await make_profile("", name="No Key")
    enricher = FakeEnricher()
    sink = ListSink()

    result = await EnrichmentOrchestrator(session, enricher, config()).run([company.id, keyless.id], sink)

    assert enricher.calls == []
    assert result.skipped == 2
    assert result.candidates == 0
    assert sink.events[-1].status == ProgressStatus.COMPLETED
    assert sink.events[-1].message == "No profiles to enrich"


@pytest.mark.asyncio
async def test_not_found_leaves_profile_unenriched(session, make_profile):
    profile = await make_profile("ghost", secondary_identifier="ghost", profile_url="https://www.linkedin.com/in/ghost")

    result = await EnrichmentOrchestrator(session, FakeEnricher(), config()).run([profile.id])

    assert result.not_found == 1
    assert result.enriched == 0
    assert result.failures == []
    assert (await ProfileRepository(session).get(profile.id)).needs_enrichment is True


@pytest.mark.asyncio
async def test_batch_timeout_fails_only_that_batch(session, make_profile):
    fast = await make_profile("jane-doe", secondary_identifier="jane-doe", profile_url="https://www.linkedin.com/in/jane-doe")
    slow = await make_profile("slow-one", secondary_identifier="slow-one", profile_url="https://www.linkedin.com/in/slow-one")
    enricher = FakeEnricher({"jane-doe": JANE}, delays={"slow-one": 2})

    result = await EnrichmentOrchestrator(
        session, enricher, config(batch_size=1, batch_timeout=0.1)
    ).run([fast.id, slow.id])

    assert result.batches == 2
    assert result.enriched == 1
    assert result.failed == 1
    assert [f.kind for f in result.failures] == ["batch_timeout"]
    assert (await ProfileRepository(session).get(fast.id)).first_name == "Jane"


@pytest.mark.asyncio
async def test_heartbeat_while_batches_are_outstanding(session, make_profile):
    profile = await make_profile("slow-one", secondary_identifier="slow-one", profile_url="https://www.linkedin.com/in/slow-one")
    enricher = FakeEnricher(delays={"slow-one": 0.3})
    sink = ListSink()

    await EnrichmentOrchestrator(session, enricher, config(heartbeat_seconds=0.05)).run([profile.id], sink)

    assert any(e.message.startswith("Waiting on") for e in sink.events)


@pytest.mark.asyncio
async def test_closing_the_stream_cancels_pending_batches(session, make_profile):
    profile = await make_profile("slow-one", secondary_identifier="slow-one", profile_url="https://www.linkedin.com/in/slow-one")
    enricher = FakeEnricher(delays={"slow-one": 30})
    orchestrator = EnrichmentOrchestrator(session, enricher, config(heartbeat_seconds=0.05))

    stream = orchestrator.stream([profile.id])
    async for event in stream:
        if event.message.startswith("Waiting on"):
            break
    await stream.aclose()

    assert enricher.cancelled is True
    assert orchestrator.result.enriched == 0


class LockedMatcher(ProfileMatcher):
    """Fails target lookup for one provider urn."""

    def __init__(self, profiles, locked_urn: str):
        super().__init__(profiles)
        self.locked_urn = locked_urn

    async def find_enrichment_targets(self, urn, public_identifier):
        if urn == self.locked_urn:
            raise OperationalError("SELECT profiles", {}, Exception("database is locked"))
        return await super().find_enrichment_targets(urn, public_identifier)


@pytest.mark.asyncio
async def test_store_error_on_one_key_does_not_abort_the_batch(session, make_profile):
    jane = await make_profile("jane-doe", secondary_identifier="jane-doe", profile_url="https://www.linkedin.com/in/jane-doe")
    bob = await make_profile("bob", secondary_identifier="bob", profile_url="https://www.linkedin.com/in/bob")
    bob_detail = EnrichedProfile(public_identifier="bob", urn="urn:li:person:ACoAbob", first_name="Bob")
    orchestrator = EnrichmentOrchestrator(session, FakeEnricher({"jane-doe": JANE, "bob": bob_detail}), config())
    orchestrator.matcher = LockedMatcher(orchestrator.profiles, JANE.urn)

    result = await orchestrator.run([jane.id, bob.id])

    assert result.batches == 1
    assert result.enriched == 1
    assert result.failed == 1
    assert [f.item for f in result.failures] == ["jane-doe"]
    profiles = ProfileRepository(session)
    assert (await profiles.get(bob.id)).first_name == "Bob"
    assert (await profiles.get(jane.id)).first_name is None
    assert [i.profile_ids for i in result.identities] == [frozenset({bob.id})]
