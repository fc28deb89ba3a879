"""Models produced by the contact verification pipeline."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

VerificationStatus = Literal["verified", "likely_valid", "questionable", "invalid"]
DeliverabilityResult = Literal["deliverable", "likely_deliverable", "unknown", "undeliverable"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EmailVerification(BaseModel):
    is_deliverable: bool = False
    is_valid_format: bool = False
    is_disposable: bool = False
    is_role_based: bool = False
    mx_record_exists: bool = False
    smtp_check_result: DeliverabilityResult = "unknown"
    domain: str | None = None
    confidence_score: int = Field(default=0, ge=0, le=100)


class SocialVerification(BaseModel):
    twitter_active: bool = False
    linkedin_active: bool = False
    recent_activity_score: int = Field(default=0, ge=0, le=100)
    follower_count: int = 0
    engagement_rate: float = 0.0
    verification_badges: list[str] = Field(default_factory=list)

    @property
    def presence_score(self) -> int:
        """Binary presence score, 50 per active platform."""
        return min(50 * int(self.twitter_active) + 50 * int(self.linkedin_active), 100)


class ContentVerification(BaseModel):
    recent_publications_count: int = 0
    weighted_publication_count: float = 0.0
    last_publication_date: datetime | None = None
    publication_frequency_score: int = Field(default=0, ge=0, le=100)
    content_quality_score: int = Field(default=0, ge=0, le=100)
    byline_verification: bool = False


class InfluenceMetrics(BaseModel):
    domain_authority_score: int = Field(default=0, ge=0, le=100)
    social_influence_score: int = Field(default=0, ge=0, le=100)
    network_reach_estimate: int = 0
    reach_category: Literal["high", "medium", "limited"] = "limited"
    credibility_indicators: list[str] = Field(default_factory=list)


class OverallVerification(BaseModel):
    confidence_score: float = Field(ge=0, le=100)
    verification_status: VerificationStatus
    last_verified_at: datetime = Field(default_factory=_utcnow)
    verification_notes: list[str] = Field(default_factory=list)


class VerificationResult(BaseModel):
    """Signal blocks plus the fused verdict for a single contact."""

    contact_id: str
    email_verification: EmailVerification
    social_verification: SocialVerification
    content_verification: ContentVerification
    influence_metrics: InfluenceMetrics
    overall_verification: OverallVerification
    degraded_signals: list[str] = Field(default_factory=list)


class VerificationSummary(BaseModel):
    total_processed: int
    successful_verifications: int
    failed_verifications: int
    average_confidence_score: float
    status_distribution: dict[str, int] = Field(default_factory=dict)
    verification_completed_at: datetime = Field(default_factory=_utcnow)
