"""Contact intelligence: categorization plus five rule-based analyses, merged and persisted."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import Counter
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime, timezone
from typing import TypeVar

from app.config import settings
from app.models.contact import Contact, Outlet
from app.models.intelligence import (
    Categorization,
    CommunicationIntelligence,
    ContactIntelligence,
    ContentFormatAnalysis,
    GeographicAnalysis,
    InfluenceAnalysis,
    IntelligenceSummary,
    RelationshipInsights,
)
from app.observability.metrics import metrics
from app.services.batching import BatchOrchestrator
from app.services.errors import ContactNotFoundError
from app.services.intelligence.analyzers import (
    analyze_communication,
    analyze_content_formats,
    analyze_geography,
    analyze_influence_tier,
    analyze_relationship,
)
from app.services.intelligence.categorization import DEFAULT_BEAT, Categorizer
from app.services.repositories import ContactRepository

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


def summarize_intelligence(
    total: int, results: Sequence[ContactIntelligence]
) -> IntelligenceSummary:
    beats = Counter(result.categorization.primary_beat for result in results)
    tiers = Counter(result.influence_analysis.influence_tier for result in results)
    return IntelligenceSummary(
        total_processed=total,
        successful_categorizations=len(results),
        failed_categorizations=total - len(results),
        beat_distribution=dict(beats),
        influence_distribution=dict(tiers),
        processing_completed_at=datetime.now(timezone.utc),
    )


class IntelligenceProcessor:
    """Categorizes contacts in cooldown-separated batches and writes the merged record back."""

    def __init__(
        self,
        *,
        repository: ContactRepository,
        categorizer: Categorizer,
        orchestrator: BatchOrchestrator | None = None,
    ) -> None:
        self._repository = repository
        self._categorizer = categorizer
        self._orchestrator = orchestrator or BatchOrchestrator(
            batch_size=settings.intelligence_batch_size,
            cooldown_seconds=settings.intelligence_batch_delay_seconds,
            name="intelligence",
        )

    async def categorize_contacts(
        self, contact_ids: Sequence[str], tenant_id: str
    ) -> tuple[list[ContactIntelligence], IntelligenceSummary]:
        run = await self._orchestrator.run(
            list(contact_ids), lambda contact_id: self.process_contact(contact_id, tenant_id)
        )
        results = run.values
        summary = summarize_intelligence(len(contact_ids), results)
        logger.info(
            "intelligence.run_complete",
            extra={
                "tenant_id": tenant_id,
                "total": summary.total_processed,
                "succeeded": summary.successful_categorizations,
                "failed": summary.failed_categorizations,
            },
        )
        return results, summary

    async def process_contact(self, contact_id: str, tenant_id: str) -> ContactIntelligence:
        contact = await self._repository.get_contact(tenant_id, contact_id)
        if contact is None:
            raise ContactNotFoundError(contact_id)
        outlet = None
        if contact.outlet_id is not None:
            outlet = await self._repository.get_outlet_by_id(tenant_id, contact.outlet_id)

        start = time.perf_counter()
        (
            (categorization, categorization_ok),
            (influence, influence_ok),
            (geography, geography_ok),
            (communication, communication_ok),
            (formats, formats_ok),
            (relationship, relationship_ok),
        ) = await asyncio.gather(
            self._guard(
                "categorization",
                lambda: self._categorizer.categorize(contact, outlet),
                Categorization(primary_beat=contact.beat or DEFAULT_BEAT, confidence_score=0.0),
            ),
            self._guard("influence", _deferred(analyze_influence_tier, contact, outlet), InfluenceAnalysis()),
            self._guard("geography", _deferred(analyze_geography, contact, outlet), GeographicAnalysis()),
            self._guard(
                "communication",
                _deferred(analyze_communication, contact, outlet),
                CommunicationIntelligence(),
            ),
            self._guard(
                "content_formats", _deferred(analyze_content_formats, contact, outlet), ContentFormatAnalysis()
            ),
            self._guard(
                "relationship", _deferred(analyze_relationship, contact, outlet), RelationshipInsights()
            ),
        )
        degraded = [
            name
            for name, ok in (
                ("categorization", categorization_ok),
                ("influence", influence_ok),
                ("geography", geography_ok),
                ("communication", communication_ok),
                ("content_formats", formats_ok),
                ("relationship", relationship_ok),
            )
            if not ok
        ]
        intelligence = ContactIntelligence(
            contact_id=str(contact.id),
            categorization=categorization,
            influence_analysis=influence,
            geographic_analysis=geography,
            communication_intelligence=communication,
            content_format_analysis=formats,
            relationship_insights=relationship,
            degraded_analyses=degraded,
            last_processed_at=datetime.now(timezone.utc),
        )
        await self._repository.update_intelligence(tenant_id, str(contact.id), intelligence)
        metrics.increment("intelligence.beat", tags={"beat": categorization.primary_beat})
        metrics.timing("intelligence.contact_ms", (time.perf_counter() - start) * 1000)
        return intelligence

    async def _guard(
        self, analysis: str, factory: Callable[[], Awaitable[_T]], fallback: _T
    ) -> tuple[_T, bool]:
        try:
            return await factory(), True
        except Exception as exc:
            metrics.increment("intelligence.analysis_failed", tags={"analysis": analysis})
            logger.warning(
                "intelligence.analysis_failed",
                extra={"analysis": analysis, "error": type(exc).__name__},
            )
            return fallback, False


def _deferred(
    analysis: Callable[[Contact, Outlet | None], _T], contact: Contact, outlet: Outlet | None
) -> Callable[[], Awaitable[_T]]:
    async def run() -> _T:
        return analysis(contact, outlet)

    return run
