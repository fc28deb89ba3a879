"""Models produced by the contact intelligence processor."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

InfluenceTier = Literal["tier_1", "tier_2", "tier_3", "emerging"]
Sensitivity = Literal["high", "medium", "low"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Categorization(BaseModel):
    """Beat classification, validated from the model response or derived from keywords."""

    primary_beat: str = Field(min_length=1)
    secondary_beats: list[str] = Field(default_factory=list, max_length=3)
    confidence_score: float = Field(ge=0, le=100)
    expertise_areas: list[str] = Field(default_factory=list)
    content_preferences: list[str] = Field(default_factory=list)
    source: Literal["ai", "rules"] = "rules"


class InfluenceAnalysis(BaseModel):
    influence_tier: InfluenceTier = "tier_3"
    reach_estimate: int = 10_000
    engagement_quality: Literal["high", "medium", "low"] = "low"
    authority_indicators: list[str] = Field(default_factory=list)


class GeographicAnalysis(BaseModel):
    primary_coverage_area: str = "unknown"
    secondary_coverage_areas: list[str] = Field(default_factory=list)
    timezone: str = "America/New_York"
    local_influence_score: int = Field(default=50, ge=0, le=100)


class PitchPreferences(BaseModel):
    length: Literal["short", "medium", "long"] = "medium"
    style: Literal["data-driven", "narrative", "breaking"] = "data-driven"
    embargo_friendly: bool = True
    multimedia_preferred: bool = False


class CommunicationIntelligence(BaseModel):
    preferred_contact_method: str = "email"
    optimal_contact_times: list[str] = Field(default_factory=list)
    response_likelihood: float = Field(default=50.0, ge=0, le=100)
    pitch_style_preferences: PitchPreferences = Field(default_factory=PitchPreferences)


class ContentFormatAnalysis(BaseModel):
    article: bool = True
    video: bool = False
    podcast: bool = False
    social_media: bool = False
    newsletter: bool = False
    live_reporting: bool = False


class RelationshipInsights(BaseModel):
    networking_score: int = Field(default=50, ge=0, le=100)
    collaboration_likelihood: float = Field(default=50.0, ge=0, le=100)
    follow_up_sensitivity: Sensitivity = "medium"
    exclusivity_preference: bool = False


class ContactIntelligence(BaseModel):
    """Merged intelligence record written back to a contact."""

    contact_id: str
    categorization: Categorization
    influence_analysis: InfluenceAnalysis = Field(default_factory=InfluenceAnalysis)
    geographic_analysis: GeographicAnalysis = Field(default_factory=GeographicAnalysis)
    communication_intelligence: CommunicationIntelligence = Field(
        default_factory=CommunicationIntelligence
    )
    content_format_analysis: ContentFormatAnalysis = Field(default_factory=ContentFormatAnalysis)
    relationship_insights: RelationshipInsights = Field(default_factory=RelationshipInsights)
    degraded_analyses: list[str] = Field(default_factory=list)
    last_processed_at: datetime = Field(default_factory=_utcnow)


class IntelligenceSummary(BaseModel):
    total_processed: int
    successful_categorizations: int
    failed_categorizations: int
    beat_distribution: dict[str, int] = Field(default_factory=dict)
    influence_distribution: dict[str, int] = Field(default_factory=dict)
    processing_completed_at: datetime = Field(default_factory=_utcnow)
