"""Contact verification: four concurrent signals fused into one confidence score."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import Counter
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Final, TypeVar

from app.config import settings
from app.models.contact import Contact, Outlet
from app.models.verification import (
    ContentVerification,
    EmailVerification,
    InfluenceMetrics,
    OverallVerification,
    SocialVerification,
    VerificationResult,
    VerificationStatus,
    VerificationSummary,
)
from app.observability.metrics import metrics
from app.services.batching import BatchOrchestrator
from app.services.errors import ContactNotFoundError
from app.services.repositories import ContactRepository
from app.services.verification.content import ContentAnalyzer
from app.services.verification.email_verifier import EmailVerifier
from app.services.verification.influence import analyze_influence
from app.services.verification.social import SocialVerifier

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

FUSION_WEIGHTS: Final[dict[str, float]] = {
    "email": 0.30,
    "social": 0.25,
    "content": 0.25,
    "influence": 0.20,
}
EMAIL_CONCERN_THRESHOLD: Final = 50
CONTENT_CONCERN_THRESHOLD: Final = 30


@dataclass(frozen=True)
class VerificationThresholds:
    """Minimum fused scores for each status, highest first."""

    verified: float = 80.0
    likely_valid: float = 60.0
    questionable: float = 30.0

    @classmethod
    def from_settings(cls) -> "VerificationThresholds":
        return cls(
            verified=settings.verification_verified_threshold,
            likely_valid=settings.verification_likely_valid_threshold,
            questionable=settings.verification_questionable_threshold,
        )


def status_for_score(score: float, thresholds: VerificationThresholds | None = None) -> VerificationStatus:
    limits = thresholds or VerificationThresholds()
    if score >= limits.verified:
        return "verified"
    if score >= limits.likely_valid:
        return "likely_valid"
    if score >= limits.questionable:
        return "questionable"
    return "invalid"


def fuse_signals(
    email: EmailVerification,
    social: SocialVerification,
    content: ContentVerification,
    influence: InfluenceMetrics,
    *,
    thresholds: VerificationThresholds | None = None,
    now: datetime | None = None,
) -> OverallVerification:
    score = (
        email.confidence_score * FUSION_WEIGHTS["email"]
        + social.presence_score * FUSION_WEIGHTS["social"]
        + content.publication_frequency_score * FUSION_WEIGHTS["content"]
        + influence.social_influence_score * FUSION_WEIGHTS["influence"]
    )
    score = round(max(0.0, min(score, 100.0)), 2)

    notes: list[str] = []
    if email.confidence_score < EMAIL_CONCERN_THRESHOLD:
        notes.append("Email verification concerns detected")
    if social.presence_score == 0:
        notes.append("No verified social media presence")
    if content.publication_frequency_score < CONTENT_CONCERN_THRESHOLD:
        notes.append("Limited recent publication activity")

    return OverallVerification(
        confidence_score=score,
        verification_status=status_for_score(score, thresholds),
        last_verified_at=now or datetime.now(timezone.utc),
        verification_notes=notes,
    )


def summarize_verification(total: int, results: Sequence[VerificationResult]) -> VerificationSummary:
    scores = [result.overall_verification.confidence_score for result in results]
    distribution = Counter(result.overall_verification.verification_status for result in results)
    return VerificationSummary(
        total_processed=total,
        successful_verifications=len(results),
        failed_verifications=total - len(results),
        average_confidence_score=round(sum(scores) / len(scores), 2) if scores else 0.0,
        status_distribution=dict(distribution),
        verification_completed_at=datetime.now(timezone.utc),
    )


class VerificationPipeline:
    """Verifies contacts in cooldown-separated batches and persists the fused verdict."""

    def __init__(
        self,
        *,
        repository: ContactRepository,
        email_verifier: EmailVerifier,
        social_verifier: SocialVerifier,
        content_analyzer: ContentAnalyzer,
        orchestrator: BatchOrchestrator | None = None,
        thresholds: VerificationThresholds | None = None,
    ) -> None:
        self._repository = repository
        self._email = email_verifier
        self._social = social_verifier
        self._content = content_analyzer
        self._orchestrator = orchestrator or BatchOrchestrator(
            batch_size=settings.verification_batch_size,
            cooldown_seconds=settings.verification_batch_delay_seconds,
            name="verification",
        )
        self._thresholds = thresholds or VerificationThresholds.from_settings()

    async def verify_contacts(
        self, contact_ids: Sequence[str], tenant_id: str
    ) -> tuple[list[VerificationResult], VerificationSummary]:
        run = await self._orchestrator.run(
            list(contact_ids), lambda contact_id: self.verify_contact(contact_id, tenant_id)
        )
        results = run.values
        summary = summarize_verification(len(contact_ids), results)
        logger.info(
            "verification.run_complete",
            extra={
                "tenant_id": tenant_id,
                "total": summary.total_processed,
                "succeeded": summary.successful_verifications,
                "failed": summary.failed_verifications,
            },
        )
        return results, summary

    async def verify_contact(self, contact_id: str, tenant_id: str) -> VerificationResult:
        contact = await self._repository.get_contact(tenant_id, contact_id)
        if contact is None:
            raise ContactNotFoundError(contact_id)
        outlet = await self._load_outlet(contact)

        start = time.perf_counter()
        (email, email_ok), (social, social_ok), (content, content_ok), (influence, influence_ok) = (
            await asyncio.gather(
                self._guard("email", self._email.verify(contact.email), EmailVerification()),
                self._guard("social", self._social.verify(contact), SocialVerification()),
                self._guard("content", self._content.analyze(contact, outlet), ContentVerification()),
                self._guard("influence", self._influence(contact, outlet), InfluenceMetrics()),
            )
        )
        degraded = [
            signal
            for signal, ok in (
                ("email", email_ok),
                ("social", social_ok),
                ("content", content_ok),
                ("influence", influence_ok),
            )
            if not ok
        ]
        overall = fuse_signals(email, social, content, influence, thresholds=self._thresholds)
        result = VerificationResult(
            contact_id=str(contact.id),
            email_verification=email,
            social_verification=social,
            content_verification=content,
            influence_metrics=influence,
            overall_verification=overall,
            degraded_signals=sorted(degraded),
        )
        await self._repository.update_verification(tenant_id, str(contact.id), result)
        metrics.increment(
            "verification.status", tags={"status": overall.verification_status}
        )
        metrics.timing("verification.contact_ms", (time.perf_counter() - start) * 1000)
        return result

    async def _load_outlet(self, contact: Contact) -> Outlet | None:
        if contact.outlet_id is None:
            return None
        return await self._repository.get_outlet_by_id(contact.tenant_id, contact.outlet_id)

    async def _influence(self, contact: Contact, outlet: Outlet | None) -> InfluenceMetrics:
        return analyze_influence(contact, outlet)

    async def _guard(self, signal: str, pending: Awaitable[_T], fallback: _T) -> tuple[_T, bool]:
        """Await one signal; any failure yields the neutral fallback instead of failing the contact."""
        try:
            return await pending, True
        except Exception as exc:
            metrics.increment("verification.signal_failed", tags={"signal": signal})
            logger.warning(
                "verification.signal_failed",
                extra={"signal": signal, "error": type(exc).__name__, "code": getattr(exc, "code", None)},
            )
            return fallback, False
