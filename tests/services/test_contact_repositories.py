from __future__ import annotations

import logging
from uuid import uuid4

import pytest
import pytest_asyncio

from app.models.contact import Contact, Outlet
from app.models.intelligence import Categorization, ContactIntelligence
from app.models.verification import (
    ContentVerification,
    EmailVerification,
    InfluenceMetrics,
    OverallVerification,
    SocialVerification,
    VerificationResult,
)
from app.services.errors import ContactNotFoundError
from app.services.repositories import (
    InMemoryContactRepository,
    SqlContactRepository,
    build_contact_repository,
    merge_contact,
)

TENANT = "tenant-a"


@pytest_asyncio.fixture(params=["memory", "sqlite"])
async def store(request):
    if request.param == "memory":
        yield InMemoryContactRepository()
        return
    repository = SqlContactRepository("sqlite+aiosqlite:///:memory:", auto_create_schema=True)
    try:
        yield repository
    finally:
        await repository.dispose()


def _contact(**overrides) -> Contact:
    payload = {"tenant_id": TENANT, "first_name": "Jane", "last_name": "Doe"}
    payload.update(overrides)
    return Contact(**payload)


def _verification(contact_id: str, score: float, status: str) -> VerificationResult:
    return VerificationResult(
        contact_id=contact_id,
        email_verification=EmailVerification(confidence_score=70),
        social_verification=SocialVerification(),
        content_verification=ContentVerification(),
        influence_metrics=InfluenceMetrics(),
        overall_verification=OverallVerification(
            confidence_score=score,
            verification_status=status,
            verification_notes=["No verified social media presence"],
        ),
    )


def test_merge_contact_keeps_best_confidence_and_fills_gaps():
    existing = _contact(email="jane@outlet.com", confidence_score=80, title="Reporter")
    incoming = _contact(email="jane@outlet.com", confidence_score=50, title="Editor", bio="Covers chips.")

    merged = merge_contact(existing, incoming)

    assert merged.id == existing.id
    assert merged.confidence_score == 80
    assert merged.title == "Reporter"
    assert merged.bio == "Covers chips."


def test_merge_contact_leaves_verified_score_alone():
    existing = _contact(
        email="jane@outlet.com", confidence_score=31.0, verification_status="questionable"
    )
    incoming = _contact(email="jane@outlet.com", confidence_score=80, title="Reporter")

    merged = merge_contact(existing, incoming)

    assert merged.confidence_score == 31.0
    assert merged.verification_status == "questionable"
    assert merged.title == "Reporter"


@pytest.mark.asyncio
async def test_upsert_logs_at_info(store, caplog):
    caplog.set_level(logging.INFO, logger="app.services.repositories")

    first = await store.upsert_contact(_contact(email="jane@outlet.com"))
    await store.upsert_contact(_contact(email="jane@outlet.com", bio="Covers chips."))

    events = [r for r in caplog.records if r.getMessage() == "repository.contact_upserted"]
    assert [r.is_new for r in events] == [True, False]
    assert all(r.contact_id == str(first.id) for r in events)


@pytest.mark.asyncio
async def test_outlet_round_trip(store):
    outlet = await store.save_outlet(Outlet(tenant_id=TENANT, name="outlet.com", website="https://outlet.com"))

    renamed = await store.save_outlet(outlet.model_copy(update={"name": "Outlet Daily"}))
    fetched = await store.get_outlet(TENANT, "https://outlet.com")

    assert renamed.id == outlet.id
    assert fetched.name == "Outlet Daily"
    assert (await store.get_outlet_by_id(TENANT, outlet.id)).website == "https://outlet.com"
    assert await store.get_outlet("other", "https://outlet.com") is None


@pytest.mark.asyncio
async def test_upsert_by_email_is_idempotent(store):
    first = await store.upsert_contact(_contact(email="jane@outlet.com", confidence_score=80))
    second = await store.upsert_contact(
        _contact(email="jane@outlet.com", confidence_score=40, twitter_handle="janedoe")
    )

    contacts = await store.list_contacts(TENANT)
    assert len(contacts) == 1
    assert second.id == first.id
    assert contacts[0].confidence_score == 80
    assert contacts[0].twitter_handle == "janedoe"


@pytest.mark.asyncio
async def test_upsert_without_email_matches_on_name_and_outlet(store):
    outlet_id = uuid4()
    await store.upsert_contact(_contact(outlet_id=outlet_id, confidence_score=40))
    await store.upsert_contact(_contact(outlet_id=outlet_id, confidence_score=60))
    await store.upsert_contact(_contact(outlet_id=outlet_id, first_name="John", confidence_score=40))

    contacts = await store.list_contacts(TENANT)

    assert sorted((c.first_name, c.confidence_score) for c in contacts) == [("Jane", 60), ("John", 40)]


@pytest.mark.asyncio
async def test_tenants_are_isolated(store):
    contact = await store.upsert_contact(_contact(email="jane@outlet.com"))
    await store.upsert_contact(_contact(tenant_id="tenant-b", email="jane@outlet.com"))

    assert await store.get_contact("tenant-b", str(contact.id)) is None
    assert len(await store.list_contacts(TENANT)) == 1
    assert len(await store.list_contacts("tenant-b")) == 1


@pytest.mark.asyncio
async def test_update_verification_writes_verdict(store):
    contact = await store.upsert_contact(_contact(email="jane@outlet.com", confidence_score=80))

    updated = await store.update_verification(
        TENANT, str(contact.id), _verification(str(contact.id), 45.5, "questionable")
    )
    fetched = await store.get_contact(TENANT, str(contact.id))

    assert updated.verification_status == "questionable"
    assert fetched.confidence_score == 45.5
    assert fetched.verification_status == "questionable"
    assert fetched.last_verified_at is not None
    assert fetched.verification_metadata["email_verification"]["confidence_score"] == 70
    assert fetched.verification_metadata["verification_notes"] == ["No verified social media presence"]


@pytest.mark.asyncio
async def test_update_intelligence_writes_profile(store):
    contact = await store.upsert_contact(_contact(email="jane@outlet.com"))
    intelligence = ContactIntelligence(
        contact_id=str(contact.id),
        categorization=Categorization(
            primary_beat="technology", secondary_beats=["business"], confidence_score=100
        ),
    )

    await store.update_intelligence(TENANT, str(contact.id), intelligence)
    fetched = await store.get_contact(TENANT, str(contact.id))

    assert fetched.beat == "technology"
    assert fetched.secondary_beats == ["business"]
    assert fetched.expertise_score == 100
    assert fetched.timezone == "America/New_York"
    assert fetched.relationship_score == 50.0
    assert fetched.ai_intelligence["categorization"]["primary_beat"] == "technology"


@pytest.mark.asyncio
async def test_update_unknown_contact_raises(store):
    with pytest.raises(ContactNotFoundError):
        await store.update_verification(TENANT, str(uuid4()), _verification("x", 10, "invalid"))

    assert await store.get_contact(TENANT, "not-a-uuid") is None


@pytest.mark.asyncio
async def test_ping(store):
    assert await store.ping() is True


def test_build_repository_without_url_is_in_memory(monkeypatch):
    from app.services import repositories as repositories_module

    monkeypatch.setattr(repositories_module.settings, "database_url", None)

    assert isinstance(build_contact_repository(), InMemoryContactRepository)
