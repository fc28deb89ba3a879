"""Action-dispatched facade over scraping, verification and intelligence."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import Any, Final

from app.clients.categorizer import OpenAICategorizationClient
from app.clients.fetcher import DocumentFetcher
from app.clients.tavily import TavilyClient
from app.config import settings
from app.observability.metrics import metrics
from app.services.discovery.locator import StaffPageLocator
from app.services.discovery.scraper import OutletScraper
from app.services.errors import DiscoveryRequestError
from app.services.intelligence.categorization import Categorizer
from app.services.intelligence.processor import IntelligenceProcessor
from app.services.repositories import ContactRepository, build_contact_repository
from app.services.verification.content import ContentAnalyzer
from app.services.verification.email_verifier import DnsMxResolver, EmailVerifier
from app.services.verification.pipeline import VerificationPipeline
from app.services.verification.social import SocialVerifier

logger = logging.getLogger(__name__)

ACTIONS: Final[tuple[str, ...]] = (
    "scrape_outlet",
    "verify_contacts",
    "categorize_contacts",
    "monitor_updates",
)


class MediaDiscoveryService:
    """Owns the collaborators for one process and routes requests to them by action name."""

    def __init__(
        self,
        *,
        repository: ContactRepository,
        scraper: OutletScraper,
        verification: VerificationPipeline,
        intelligence: IntelligenceProcessor,
        fetcher: DocumentFetcher | None = None,
        search_client: TavilyClient | None = None,
    ) -> None:
        self.repository = repository
        self._scraper = scraper
        self._verification = verification
        self._intelligence = intelligence
        self._fetcher = fetcher
        self._search_client = search_client

    @classmethod
    def from_settings(cls, repository: ContactRepository | None = None) -> "MediaDiscoveryService":
        repository = repository or build_contact_repository()
        fetcher = DocumentFetcher()
        search_client = TavilyClient.from_settings()
        return cls(
            repository=repository,
            scraper=OutletScraper(
                fetcher=fetcher,
                repository=repository,
                locator=StaffPageLocator(
                    fetcher,
                    concurrency=settings.locator_probe_concurrency,
                    probe_timeout=settings.probe_timeout_seconds,
                ),
            ),
            verification=VerificationPipeline(
                repository=repository,
                email_verifier=EmailVerifier(
                    fetcher, resolver=DnsMxResolver(lifetime=settings.dns_timeout_seconds)
                ),
                social_verifier=SocialVerifier(fetcher),
                content_analyzer=ContentAnalyzer(search_client),
            ),
            intelligence=IntelligenceProcessor(
                repository=repository,
                categorizer=Categorizer(OpenAICategorizationClient.from_settings()),
            ),
            fetcher=fetcher,
            search_client=search_client,
        )

    async def aclose(self) -> None:
        if self._fetcher is not None:
            await self._fetcher.aclose()
        if self._search_client is not None:
            await self._search_client.aclose()
        dispose = getattr(self.repository, "dispose", None)
        if dispose is not None:
            await dispose()

    async def dispatch(self, request: Mapping[str, Any]) -> dict[str, Any]:
        """Run ``request['action']`` and return a JSON-ready payload."""
        action = request.get("action")
        tenant_id = request.get("tenant_id")
        if not tenant_id:
            raise DiscoveryRequestError("tenant_id is required", code="422_MISSING_TENANT")
        if action not in ACTIONS:
            raise DiscoveryRequestError(f"Unknown action: {action}", code="400_UNKNOWN_ACTION")

        metrics.increment("media_discovery.requests", tags={"action": action})
        logger.info("media_discovery.dispatch", extra={"action": action, "tenant_id": tenant_id})
        if action == "scrape_outlet":
            return await self.scrape_outlet(request.get("outlet_url"), tenant_id)
        if action == "verify_contacts":
            return await self.verify_contacts(request.get("contact_ids"), tenant_id)
        if action == "categorize_contacts":
            return await self.categorize_contacts(request.get("contact_ids"), tenant_id)
        return await self.monitor_updates(tenant_id)

    async def scrape_outlet(self, outlet_url: str | None, tenant_id: str) -> dict[str, Any]:
        if not outlet_url:
            raise DiscoveryRequestError("outlet_url is required", code="422_MISSING_OUTLET_URL")
        result = await self._scraper.scrape_outlet(outlet_url, tenant_id)
        return result.model_dump(mode="json")

    async def verify_contacts(
        self, contact_ids: Sequence[str] | None, tenant_id: str
    ) -> dict[str, Any]:
        ids = _require_contact_ids(contact_ids)
        results, summary = await self._verification.verify_contacts(ids, tenant_id)
        return {
            "verified_contacts": [result.model_dump(mode="json") for result in results],
            "summary": summary.model_dump(mode="json"),
        }

    async def categorize_contacts(
        self, contact_ids: Sequence[str] | None, tenant_id: str
    ) -> dict[str, Any]:
        ids = _require_contact_ids(contact_ids)
        results, summary = await self._intelligence.categorize_contacts(ids, tenant_id)
        return {
            "processed_contacts": [result.model_dump(mode="json") for result in results],
            "summary": summary.model_dump(mode="json"),
        }

    async def monitor_updates(self, tenant_id: str) -> dict[str, Any]:
        return {
            "monitoring_enabled": True,
            "last_check": datetime.now(timezone.utc).isoformat(),
            "updates_found": 0,
        }


def _require_contact_ids(contact_ids: Sequence[str] | None) -> list[str]:
    if contact_ids is None or isinstance(contact_ids, str):
        raise DiscoveryRequestError("contact_ids must be a list", code="422_MISSING_CONTACT_IDS")
    return [str(contact_id) for contact_id in contact_ids]
