from __future__ import annotations

import pytest

from app.models.contact import ContactCandidate, SocialLinks
from app.services.discovery.scraper import (
    OutletScraper,
    candidate_to_contact,
    dedupe_candidates,
    twitter_handle_from_url,
)
from app.services.verification.pipeline import status_for_score
from tests.helpers.stubs import build_service, make_fetcher, site_handler

ORIGIN = "https://outlet.com"

LANDING = "<html><head><title>Outlet Daily News</title></head><body>Welcome</body></html>"
STAFF_PAGE = """
<html><body>
  <div class="staff-member">
    <h3 class="name">Jane Doe</h3>
    <p class="title">Senior Technology Reporter</p>
    <a href="mailto:jane@outlet.com">Email</a>
    <a href="https://twitter.com/janedoe">Twitter</a>
  </div>
  <div class="staff-member">
    <h3 class="name">John Roe</h3>
    <p class="title">Business Editor</p>
  </div>
</body></html>
"""
TEAM_PAGE = """
<html><body>
  <div class="team-member">
    <h3 class="name">Jane Doe</h3>
    <p class="title">Senior Technology Reporter</p>
    <a href="mailto:jane@outlet.com">Email</a>
  </div>
</body></html>
"""


def _scraper(repository, pages, sleep_recorder) -> OutletScraper:
    return OutletScraper(
        fetcher=make_fetcher(site_handler(pages)),
        repository=repository,
        page_delay_seconds=1.0,
        page_delay_jitter_seconds=0,
        sleep=sleep_recorder,
    )


def test_dedupe_candidates_keeps_first_occurrence():
    first = ContactCandidate(name="Jane Doe", email="jane@outlet.com", confidence_score=80)
    duplicate = ContactCandidate(name="jane doe", email="JANE@outlet.com", confidence_score=50)
    no_email = ContactCandidate(name="Jane Doe", confidence_score=20)

    unique = dedupe_candidates([first, duplicate, no_email])

    assert unique == [first, no_email]


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://twitter.com/janedoe", "janedoe"),
        ("https://x.com/janedoe/", "janedoe"),
        (None, None),
        ("https://twitter.com/", None),
    ],
)
def test_twitter_handle_from_url(url, expected):
    assert twitter_handle_from_url(url) == expected


def test_candidate_to_contact_maps_profile_fields(outlet):
    candidate = ContactCandidate(
        name="Mary Anne Smith",
        title="Reporter",
        email="mary@outlet.com",
        social_links=SocialLinks(
            twitter="https://twitter.com/marysmith",
            linkedin="https://linkedin.com/in/marysmith",
            personal_site="https://marysmith.dev",
        ),
        confidence_score=70,
    )

    contact = candidate_to_contact(candidate, tenant_id="tenant-a", outlet_id=outlet.id)

    assert contact.first_name == "Mary"
    assert contact.last_name == "Anne Smith"
    assert contact.twitter_handle == "marysmith"
    assert contact.linkedin_url == "https://linkedin.com/in/marysmith"
    assert contact.personal_website == "https://marysmith.dev"
    assert contact.confidence_score == 70.0
    assert contact.verification_status == "pending"
    assert contact.data_source == "automated_scraping"


@pytest.mark.asyncio
async def test_scrape_outlet_persists_deduplicated_contacts(repository, tenant_id, sleep_recorder):
    pages = {
        ORIGIN: LANDING,
        f"{ORIGIN}/staff": STAFF_PAGE,
        f"{ORIGIN}/team": TEAM_PAGE,
    }
    scraper = _scraper(repository, pages, sleep_recorder)

    result = await scraper.scrape_outlet("https://outlet.com/news/today", tenant_id)

    assert result.outlet_name == "Outlet Daily News"
    assert result.outlet_url == ORIGIN
    assert sorted(c.name for c in result.contacts_found) == ["Jane Doe", "John Roe"]
    metadata = result.scraping_metadata
    assert metadata.pages_discovered == 2
    assert metadata.pages_processed == 2
    assert metadata.total_contacts == 2
    assert metadata.success_rate == 1.0
    assert metadata.scraping_method == "staff_page_discovery"
    # One courtesy delay between two pages, none before the first.
    assert sleep_recorder.calls == [1.0]

    stored = await repository.list_contacts(tenant_id)
    assert len(stored) == 2
    saved_outlet = await repository.get_outlet(tenant_id, ORIGIN)
    assert saved_outlet is not None
    assert saved_outlet.outlet_type == "digital_native"
    assert saved_outlet.verification_status == "pending"
    assert all(contact.outlet_id == saved_outlet.id for contact in stored)


@pytest.mark.asyncio
async def test_rescrape_never_grows_count_or_lowers_confidence(repository, tenant_id, sleep_recorder):
    rich = {ORIGIN: LANDING, f"{ORIGIN}/staff": STAFF_PAGE}
    await _scraper(repository, rich, sleep_recorder).scrape_outlet(ORIGIN, tenant_id)
    before = {c.email or c.full_name: c.confidence_score for c in await repository.list_contacts(tenant_id)}

    poorer = {ORIGIN: LANDING, f"{ORIGIN}/staff": TEAM_PAGE}
    await _scraper(repository, poorer, sleep_recorder).scrape_outlet(ORIGIN, tenant_id)
    await _scraper(repository, rich, sleep_recorder).scrape_outlet(ORIGIN, tenant_id)

    after = {c.email or c.full_name: c.confidence_score for c in await repository.list_contacts(tenant_id)}
    assert set(after) == set(before)
    for key, score in before.items():
        assert after[key] >= score


@pytest.mark.asyncio
async def test_rescrape_after_verification_keeps_verified_score(repository, tenant_id, sleep_recorder):
    rich = {ORIGIN: LANDING, f"{ORIGIN}/staff": STAFF_PAGE}
    await _scraper(repository, rich, sleep_recorder).scrape_outlet(ORIGIN, tenant_id)
    jane = next(c for c in await repository.list_contacts(tenant_id) if c.email == "jane@outlet.com")
    assert jane.confidence_score == 80

    service = build_service(repository, handler=site_handler(rich), sleep=sleep_recorder)
    await service.verify_contacts([str(jane.id)], tenant_id)
    verified = await repository.get_contact(tenant_id, str(jane.id))

    await _scraper(repository, rich, sleep_recorder).scrape_outlet(ORIGIN, tenant_id)
    after = await repository.get_contact(tenant_id, str(jane.id))

    assert after.confidence_score == verified.confidence_score
    assert after.verification_status == verified.verification_status
    assert status_for_score(after.confidence_score) == after.verification_status


@pytest.mark.asyncio
async def test_unreachable_outlet_returns_empty_summary(repository, tenant_id, sleep_recorder):
    result = await _scraper(repository, {}, sleep_recorder).scrape_outlet("outlet.com", tenant_id)

    assert result.outlet_name == "outlet.com"
    assert result.contacts_found == []
    assert result.scraping_metadata.pages_discovered == 1
    assert result.scraping_metadata.pages_processed == 0
    assert result.scraping_metadata.success_rate == 0.0


@pytest.mark.asyncio
async def test_hostname_name_upgraded_once_title_resolves(repository, tenant_id, sleep_recorder):
    await _scraper(repository, {}, sleep_recorder).scrape_outlet(ORIGIN, tenant_id)
    first = await repository.get_outlet(tenant_id, ORIGIN)

    await _scraper(repository, {ORIGIN: LANDING}, sleep_recorder).scrape_outlet(ORIGIN, tenant_id)
    second = await repository.get_outlet(tenant_id, ORIGIN)

    assert first.name == "outlet.com"
    assert second.name == "Outlet Daily News"
    assert second.id == first.id
