"""Staff-page discovery for a media outlet origin."""

from __future__ import annotations

import asyncio
import logging
from typing import Final
from urllib.parse import urljoin, urlsplit

from app.clients.fetcher import DocumentFetcher
from app.config import settings
from app.observability.metrics import metrics
from app.services.discovery.document import parse_document
from app.services.errors import DiscoveryRequestError

logger = logging.getLogger(__name__)

STAFF_PAGE_PATHS: Final[tuple[str, ...]] = (
    "/staff",
    "/team",
    "/about/staff",
    "/newsroom/staff",
    "/editorial-team",
    "/reporters",
    "/journalists",
    "/editors",
    "/writers",
    "/contributors",
    "/masthead",
    "/about-us",
    "/our-team",
    "/people",
    "/directory",
    "/bios",
    "/profiles",
    "/news-team",
    "/editorial-staff",
)

STAFF_PAGE_KEYWORDS: Final[tuple[str, ...]] = (
    "staff",
    "team",
    "reporter",
    "editor",
    "journalist",
    "writer",
)


def normalize_origin(url: str) -> str:
    """Reduce ``url`` to ``scheme://host``; bare hosts default to https."""
    candidate = (url or "").strip()
    if not candidate:
        raise DiscoveryRequestError("outlet_url is required.", code="422_MISSING_OUTLET_URL")
    if "://" not in candidate:
        candidate = f"https://{candidate}"
    parts = urlsplit(candidate)
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise DiscoveryRequestError(
            f"Invalid outlet_url: {url}", code="422_INVALID_OUTLET_URL"
        )
    host = parts.hostname.lower()
    if parts.port:
        host = f"{host}:{parts.port}"
    return f"{parts.scheme}://{host}"


def _looks_like_staff_page(body: str) -> bool:
    lowered = body.lower()
    return any(keyword in lowered for keyword in STAFF_PAGE_KEYWORDS)


def _is_staff_link(text: str, href: str) -> bool:
    lowered_text = text.lower()
    lowered_href = href.lower()
    return any(
        path.lstrip("/") in lowered_text or path in lowered_href for path in STAFF_PAGE_PATHS
    )


class StaffPageLocator:
    """Finds candidate staff pages, always returning at least the origin itself."""

    def __init__(
        self,
        fetcher: DocumentFetcher,
        *,
        concurrency: int | None = None,
        probe_timeout: float | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._concurrency = max(concurrency or settings.locator_probe_concurrency, 1)
        self._probe_timeout = probe_timeout or settings.probe_timeout_seconds

    async def locate(self, origin: str) -> list[str]:
        pages = await self._probe_known_paths(origin)
        tier = "known_paths"
        if not pages:
            pages = await self._scan_landing_links(origin)
            tier = "landing_links"
        if not pages:
            pages = [origin]
            tier = "origin_fallback"
        metrics.increment("discovery.locator_tier", tags={"tier": tier})
        logger.info(
            "discovery.pages_located",
            extra={"origin": origin, "tier": tier, "pages": len(pages)},
        )
        return pages

    async def _probe_known_paths(self, origin: str) -> list[str]:
        semaphore = asyncio.Semaphore(self._concurrency)
        candidates = [f"{origin}{path}" for path in STAFF_PAGE_PATHS]

        async def _probe(url: str) -> bool:
            async with semaphore:
                result = await self._fetcher.fetch(url, timeout=self._probe_timeout)
            return result.ok and _looks_like_staff_page(result.body)

        accepted = await asyncio.gather(*(_probe(url) for url in candidates))
        return [url for url, ok in zip(candidates, accepted) if ok]

    async def _scan_landing_links(self, origin: str) -> list[str]:
        result = await self._fetcher.fetch(origin)
        if not result.ok:
            return []
        document = parse_document(result.body)
        pages: list[str] = []
        for anchor in document.root.select("a[href]"):
            href = (anchor.attr("href") or "").strip()
            if not href or href.startswith(("mailto:", "javascript:", "#")):
                continue
            if not _is_staff_link(anchor.text(), href):
                continue
            resolved = urljoin(f"{origin}/", href).split("#", 1)[0]
            if resolved not in pages:
                pages.append(resolved)
        return pages
