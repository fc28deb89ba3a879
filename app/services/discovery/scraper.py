"""Outlet scraping: locate staff pages, extract, dedupe and persist contacts."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime, timezone
from random import SystemRandom
from urllib.parse import urlsplit
from uuid import UUID

from app.clients.fetcher import DocumentFetcher
from app.config import settings
from app.models.contact import (
    Contact,
    ContactCandidate,
    Outlet,
    ScrapeResult,
    ScrapingMetadata,
)
from app.observability.metrics import metrics
from app.services.discovery.document import parse_document
from app.services.discovery.extractor import ContactExtractor
from app.services.discovery.locator import StaffPageLocator, normalize_origin
from app.services.repositories import ContactRepository

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]


def dedupe_candidates(candidates: Iterable[ContactCandidate]) -> list[ContactCandidate]:
    """Collapse candidates sharing a name+email identity; first occurrence wins."""
    seen: set[str] = set()
    unique: list[ContactCandidate] = []
    for candidate in candidates:
        key = candidate.dedup_key()
        if key in seen:
            continue
        seen.add(key)
        unique.append(candidate)
    return unique


def twitter_handle_from_url(url: str | None) -> str | None:
    if not url:
        return None
    segments = [segment for segment in urlsplit(url).path.split("/") if segment]
    return segments[-1].lstrip("@") if segments else None


def candidate_to_contact(candidate: ContactCandidate, *, tenant_id: str, outlet_id: UUID) -> Contact:
    first_name, _, last_name = candidate.name.strip().partition(" ")
    links = candidate.social_links
    return Contact(
        tenant_id=tenant_id,
        outlet_id=outlet_id,
        first_name=first_name,
        last_name=last_name.strip(),
        email=candidate.email,
        title=candidate.title,
        bio=candidate.bio,
        image_url=candidate.image_url,
        profile_url=candidate.profile_url,
        twitter_handle=twitter_handle_from_url(links.twitter),
        linkedin_url=links.linkedin,
        personal_website=links.personal_site,
        beat=candidate.beat,
        confidence_score=float(candidate.confidence_score),
        verification_status="pending",
        data_source="automated_scraping",
    )


class OutletScraper:
    """Runs the full scrape for a single outlet origin."""

    def __init__(
        self,
        *,
        fetcher: DocumentFetcher,
        repository: ContactRepository,
        locator: StaffPageLocator | None = None,
        extractor: ContactExtractor | None = None,
        page_delay_seconds: float | None = None,
        page_delay_jitter_seconds: float | None = None,
        sleep: Sleeper | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._repository = repository
        self._locator = locator or StaffPageLocator(fetcher)
        self._extractor = extractor or ContactExtractor()
        self._page_delay = (
            settings.scrape_page_delay_seconds if page_delay_seconds is None else page_delay_seconds
        )
        self._page_jitter = (
            settings.scrape_page_delay_jitter_seconds
            if page_delay_jitter_seconds is None
            else page_delay_jitter_seconds
        )
        self._sleep = sleep or asyncio.sleep
        self._rng = SystemRandom()

    async def scrape_outlet(self, outlet_url: str, tenant_id: str) -> ScrapeResult:
        origin = normalize_origin(outlet_url)
        start = time.perf_counter()
        pages = await self._locator.locate(origin)

        candidates: list[ContactCandidate] = []
        pages_processed = 0
        for index, page_url in enumerate(pages):
            if index:
                await self._sleep(self._page_delay + self._rng.uniform(0, self._page_jitter))
            result = await self._fetcher.fetch(page_url)
            if not result.ok:
                logger.info("discovery.page_skipped", extra={"url": page_url})
                continue
            pages_processed += 1
            page_candidates = self._extractor.extract(result.body, page_url)
            candidates.extend(page_candidates)
            logger.info(
                "discovery.page_scraped",
                extra={"url": page_url, "contacts": len(page_candidates)},
            )

        unique = dedupe_candidates(candidates)
        outlet = await self._resolve_outlet(origin, tenant_id)
        for candidate in unique:
            await self._repository.upsert_contact(
                candidate_to_contact(candidate, tenant_id=tenant_id, outlet_id=outlet.id)
            )

        metadata = ScrapingMetadata(
            scraped_at=datetime.now(timezone.utc),
            pages_discovered=len(pages),
            pages_processed=pages_processed,
            total_contacts=len(unique),
            success_rate=round(len(unique) / pages_processed, 2) if pages_processed else 0.0,
        )
        metrics.increment("discovery.contacts_found", len(unique))
        metrics.timing("discovery.scrape_ms", (time.perf_counter() - start) * 1000)
        logger.info(
            "discovery.scrape_complete",
            extra={
                "tenant_id": tenant_id,
                "origin": origin,
                "pages": pages_processed,
                "contacts": len(unique),
            },
        )
        return ScrapeResult(
            outlet_name=outlet.name,
            outlet_url=origin,
            contacts_found=unique,
            scraping_metadata=metadata,
        )

    async def _resolve_outlet(self, origin: str, tenant_id: str) -> Outlet:
        """Insert the outlet on first scrape; later scrapes only upgrade a hostname placeholder name."""
        hostname = urlsplit(origin).hostname or origin
        existing = await self._repository.get_outlet(tenant_id, origin)
        if existing and existing.name != hostname:
            return existing

        name = await self._fetch_display_name(origin) or hostname
        if existing and name == existing.name:
            return existing
        if existing:
            return await self._repository.save_outlet(existing.model_copy(update={"name": name}))
        return await self._repository.save_outlet(
            Outlet(tenant_id=tenant_id, name=name, website=origin)
        )

    async def _fetch_display_name(self, origin: str) -> str | None:
        result = await self._fetcher.fetch(origin)
        if not result.ok:
            return None
        return parse_document(result.body).title()
