"""Rule-based intelligence analyses derived from a stored contact and its outlet."""

from __future__ import annotations

from typing import Final

from app.models.contact import Contact, Outlet
from app.models.intelligence import (
    CommunicationIntelligence,
    ContentFormatAnalysis,
    GeographicAnalysis,
    InfluenceAnalysis,
    PitchPreferences,
    RelationshipInsights,
)
from app.services.verification.influence import estimate_domain_authority

TIER_1_AUTHORITY: Final = 80
TIER_2_AUTHORITY: Final = 60
TIER_1_VISITORS: Final = 10_000_000
TIER_2_VISITORS: Final = 1_000_000
SENIOR_TITLES: Final[tuple[str, ...]] = (
    "editor-in-chief",
    "senior editor",
    "chief correspondent",
    "bureau chief",
)
ESTABLISHED_INTERACTIONS: Final = 10
EXPERT_SCORE: Final = 80

REGION_TIMEZONES: Final[dict[str, str]] = {
    "northeast": "America/New_York",
    "southeast": "America/New_York",
    "midwest": "America/Chicago",
    "southwest": "America/Denver",
    "west_coast": "America/Los_Angeles",
    "international": "UTC",
}
REGION_KEYWORDS: Final[dict[str, tuple[str, ...]]] = {
    "northeast": ("new york", "boston", "philadelphia", "washington dc", "new jersey"),
    "southeast": ("atlanta", "miami", "charlotte", "orlando", "nashville"),
    "midwest": ("chicago", "detroit", "minneapolis", "cleveland", "st. louis"),
    "southwest": ("denver", "phoenix", "dallas", "houston", "austin"),
    "west_coast": ("los angeles", "san francisco", "seattle", "portland", "san diego"),
    "international": ("london", "paris", "berlin", "tokyo", "toronto", "sydney"),
}
DEFAULT_TIMEZONE: Final = "America/New_York"
MAJOR_MARKETS: Final[tuple[str, ...]] = (
    "new york",
    "los angeles",
    "chicago",
    "washington dc",
    "san francisco",
)
MAJOR_MARKET_SCORE: Final = 85
KNOWN_LOCATION_SCORE: Final = 65
UNKNOWN_LOCATION_SCORE: Final = 50
COVERAGE_TERMS: Final[tuple[tuple[str, tuple[str, ...]], ...]] = (
    ("international", ("international", "global")),
    ("national", ("national", "nationwide")),
    ("local", ("local", "regional")),
)

BUSINESS_HOURS: Final[list[str]] = ["9:00-11:00 AM", "2:00-4:00 PM"]
GENERIC_HOURS: Final[list[str]] = ["morning", "early_afternoon"]
DIGITAL_RESPONSE_BONUS: Final = 10

FAST_FOLLOW_UP_HOURS: Final = 2
SLOW_FOLLOW_UP_HOURS: Final = 48
EXCLUSIVE_BEATS: Final[frozenset[str]] = frozenset({"technology", "business"})


def analyze_influence_tier(contact: Contact, outlet: Outlet | None) -> InfluenceAnalysis:
    """Place the contact into an influence tier from outlet authority and seniority."""
    authority = estimate_domain_authority(outlet)
    visitors = (outlet.monthly_visitors if outlet else None) or 0
    indicators: list[str] = []

    if authority >= TIER_1_AUTHORITY or visitors >= TIER_1_VISITORS:
        tier, reach, engagement = "tier_1", 100_000, "high"
        indicators.append("high_authority_outlet")
    elif authority >= TIER_2_AUTHORITY or visitors >= TIER_2_VISITORS:
        tier, reach, engagement = "tier_2", 50_000, "medium"
        indicators.append("medium_authority_outlet")
    else:
        tier, reach, engagement = "tier_3", 10_000, "low"

    title = (contact.title or "").lower()
    if any(senior in title for senior in SENIOR_TITLES):
        indicators.append("senior_position")
        if tier == "tier_3":
            tier = "tier_2"

    if contact.twitter_handle or contact.linkedin_url:
        indicators.append("social_media_presence")
        reach = int(reach * 1.5)

    if contact.interaction_count >= ESTABLISHED_INTERACTIONS:
        indicators.append("established_relationships")

    if (contact.expertise_score or 0) >= EXPERT_SCORE:
        indicators.append("subject_matter_expert")
        if tier == "tier_3":
            tier = "tier_2"

    if tier == "tier_3" and not indicators:
        tier = "emerging"

    return InfluenceAnalysis(
        influence_tier=tier,
        reach_estimate=reach,
        engagement_quality=engagement,
        authority_indicators=indicators,
    )


def _region_for(location: str) -> str | None:
    for region, keywords in REGION_KEYWORDS.items():
        if any(keyword in location for keyword in keywords):
            return region
    return None


def analyze_geography(contact: Contact, outlet: Outlet | None) -> GeographicAnalysis:
    location = (contact.location or (outlet.location if outlet else None) or "").strip().lower()
    bio = (contact.bio or "").lower()

    region = _region_for(location) if location else None
    if not location:
        local_score = UNKNOWN_LOCATION_SCORE
    elif any(market in location for market in MAJOR_MARKETS):
        local_score = MAJOR_MARKET_SCORE
    else:
        local_score = KNOWN_LOCATION_SCORE

    secondary = [
        area for area, terms in COVERAGE_TERMS if any(term in bio for term in terms)
    ]
    return GeographicAnalysis(
        primary_coverage_area=location or "unknown",
        secondary_coverage_areas=secondary,
        timezone=contact.timezone or REGION_TIMEZONES.get(region or "", DEFAULT_TIMEZONE),
        local_influence_score=local_score,
    )


def analyze_communication(contact: Contact, outlet: Outlet | None) -> CommunicationIntelligence:
    if contact.email:
        method = "email"
    elif contact.twitter_handle:
        method = "twitter"
    elif contact.linkedin_url:
        method = "linkedin"
    else:
        method = "unknown"

    likelihood = contact.response_rate if contact.response_rate is not None else 50.0
    outlet_type = outlet.outlet_type if outlet else None
    if outlet_type == "digital_native":
        likelihood += DIGITAL_RESPONSE_BONUS

    return CommunicationIntelligence(
        preferred_contact_method=method,
        optimal_contact_times=list(BUSINESS_HOURS if contact.timezone else GENERIC_HOURS),
        response_likelihood=min(likelihood, 100.0),
        pitch_style_preferences=_pitch_preferences(contact.beat, outlet_type),
    )


def _pitch_preferences(beat: str | None, outlet_type: str | None) -> PitchPreferences:
    preferences = PitchPreferences()
    if beat == "technology":
        preferences.multimedia_preferred = True
    elif beat == "entertainment":
        preferences.style = "narrative"
        preferences.multimedia_preferred = True
    elif beat == "politics":
        preferences.style = "breaking"
        preferences.embargo_friendly = False
    if outlet_type == "digital_native":
        preferences.length = "short"
    return preferences


def analyze_content_formats(contact: Contact, outlet: Outlet | None) -> ContentFormatAnalysis:
    formats = ContentFormatAnalysis()
    outlet_type = outlet.outlet_type if outlet else None
    if outlet_type == "podcast":
        formats.podcast = True
    elif outlet_type == "tv":
        formats.video = True
        formats.live_reporting = True
    elif outlet_type == "digital_native":
        formats.social_media = True
        formats.video = True
    elif outlet_type == "newsletter":
        formats.newsletter = True

    title = (contact.title or "").lower()
    if "video" in title or "tv" in title:
        formats.video = True
    if "podcast" in title or "host" in title:
        formats.podcast = True
    if "social" in title or "digital" in title:
        formats.social_media = True
    if "live" in title or "breaking" in title:
        formats.live_reporting = True
    if contact.twitter_handle:
        formats.social_media = True
    return formats


def analyze_relationship(contact: Contact, outlet: Outlet | None) -> RelationshipInsights:
    networking = 50
    if contact.linkedin_url:
        networking += 20
    if contact.twitter_handle:
        networking += 15

    if contact.interaction_count > 0:
        collaboration = contact.successful_pitches / max(contact.total_pitches, 1) * 100
    else:
        collaboration = 50.0

    response_hours = contact.avg_response_time_hours
    if response_hours is None:
        sensitivity = "medium"
    elif response_hours <= FAST_FOLLOW_UP_HOURS:
        sensitivity = "high"
    elif response_hours >= SLOW_FOLLOW_UP_HOURS:
        sensitivity = "low"
    else:
        sensitivity = "medium"

    if outlet is not None and outlet.outlet_type == "wire_service":
        exclusive = False
    else:
        exclusive = contact.beat in EXCLUSIVE_BEATS

    return RelationshipInsights(
        networking_score=min(networking, 100),
        collaboration_likelihood=round(min(collaboration, 100.0), 2),
        follow_up_sensitivity=sensitivity,
        exclusivity_preference=exclusive,
    )
