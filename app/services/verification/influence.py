"""Influence estimation from outlet authority, seniority and social presence."""

from __future__ import annotations

from typing import Final
from urllib.parse import urlsplit

from app.models.contact import Contact, Outlet
from app.models.verification import InfluenceMetrics

HIGH_AUTHORITY_DOMAINS: Final[frozenset[str]] = frozenset(
    {
        "nytimes.com",
        "wsj.com",
        "washingtonpost.com",
        "reuters.com",
        "bloomberg.com",
        "cnn.com",
        "bbc.com",
        "guardian.com",
    }
)
MEDIUM_AUTHORITY_DOMAINS: Final[frozenset[str]] = frozenset(
    {
        "techcrunch.com",
        "mashable.com",
        "venturebeat.com",
        "wired.com",
        "forbes.com",
        "businessinsider.com",
    }
)
HIGH_AUTHORITY_SCORE: Final = 90
MEDIUM_AUTHORITY_SCORE: Final = 75
DEFAULT_AUTHORITY_SCORE: Final = 45

INFLUENTIAL_TITLES: Final[tuple[str, ...]] = ("editor", "chief", "senior", "director", "correspondent")
PERSONAL_PROVIDERS: Final[frozenset[str]] = frozenset({"gmail.com", "yahoo.com"})

INFLUENCE_WEIGHTS: Final[dict[str, int]] = {
    "title": 25,
    "twitter": 30,
    "linkedin": 20,
    "professional_email": 25,
    "high_authority": 10,
    "medium_authority": 5,
}
MAX_INTERACTION_BONUS: Final = 10

BASE_REACH: Final = 1_000
HIGH_REACH: Final = 30_000
MEDIUM_REACH: Final = 10_000


def _registered_domain(website: str) -> str:
    host = (urlsplit(website if "://" in website else f"https://{website}").hostname or "").lower()
    return host[4:] if host.startswith("www.") else host


def estimate_domain_authority(outlet: Outlet | None) -> int:
    """Stored authority when known, otherwise a tier estimate from the outlet's domain."""
    if outlet is None:
        return 0
    if outlet.domain_authority is not None:
        return outlet.domain_authority
    domain = _registered_domain(outlet.website)
    if domain in HIGH_AUTHORITY_DOMAINS:
        return HIGH_AUTHORITY_SCORE
    if domain in MEDIUM_AUTHORITY_DOMAINS:
        return MEDIUM_AUTHORITY_SCORE
    return DEFAULT_AUTHORITY_SCORE


def has_professional_email(contact: Contact) -> bool:
    if not contact.email or "@" not in contact.email:
        return False
    return contact.email.rsplit("@", 1)[1].lower() not in PERSONAL_PROVIDERS


def analyze_influence(contact: Contact, outlet: Outlet | None) -> InfluenceMetrics:
    authority = estimate_domain_authority(outlet)
    title = (contact.title or "").lower()

    score = 0
    if any(keyword in title for keyword in INFLUENTIAL_TITLES):
        score += INFLUENCE_WEIGHTS["title"]
    if contact.twitter_handle:
        score += INFLUENCE_WEIGHTS["twitter"]
    if contact.linkedin_url:
        score += INFLUENCE_WEIGHTS["linkedin"]
    if has_professional_email(contact):
        score += INFLUENCE_WEIGHTS["professional_email"]
    if authority >= HIGH_AUTHORITY_SCORE:
        score += INFLUENCE_WEIGHTS["high_authority"]
    elif authority >= MEDIUM_AUTHORITY_SCORE:
        score += INFLUENCE_WEIGHTS["medium_authority"]
    score += min(contact.interaction_count, MAX_INTERACTION_BONUS)

    reach = float(BASE_REACH)
    if outlet is not None:
        reach *= 10
    if contact.twitter_handle:
        reach *= 2
    if contact.linkedin_url:
        reach *= 1.5
    reach_estimate = int(reach)
    if reach_estimate >= HIGH_REACH:
        category = "high"
    elif reach_estimate >= MEDIUM_REACH:
        category = "medium"
    else:
        category = "limited"

    return InfluenceMetrics(
        domain_authority_score=authority,
        social_influence_score=min(score, 100),
        network_reach_estimate=reach_estimate,
        reach_category=category,
        credibility_indicators=_credibility_indicators(contact, outlet),
    )


def _credibility_indicators(contact: Contact, outlet: Outlet | None) -> list[str]:
    indicators: list[str] = []
    if has_professional_email(contact):
        indicators.append("professional_email")
    if outlet is not None:
        indicators.append("institutional_affiliation")
    if contact.bio and len(contact.bio) > 100:
        indicators.append("detailed_biography")
    if contact.twitter_handle:
        indicators.append("verified_social_presence")
    if contact.linkedin_url:
        indicators.append("professional_network_presence")
    return indicators
