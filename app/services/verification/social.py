"""Heuristic social presence checks against public profile pages."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Final

from app.clients.fetcher import DocumentFetcher
from app.models.contact import Contact
from app.models.verification import SocialVerification

logger = logging.getLogger(__name__)

TWITTER_PROFILE_URL = "https://twitter.com/{handle}"
TWITTER_INACTIVE_MARKERS: Final[tuple[str, ...]] = (
    "this account doesn't exist",
    "account suspended",
)
LINKEDIN_INACTIVE_MARKERS: Final[tuple[str, ...]] = (
    "this profile doesn't exist",
    "profile not found",
)
FOLLOWERS_PATTERN = re.compile(r"(\d+(?:,\d{3})*(?:\.\d+)?[KMB]?\+?)\s*followers", re.IGNORECASE)
CONNECTIONS_PATTERN = re.compile(r"(\d+(?:,\d{3})*(?:\.\d+)?[KMB]?\+?)\s*connections", re.IGNORECASE)
ENGAGEMENT_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*%\s*engagement", re.IGNORECASE)
RECENT_ACTIVITY_PATTERN = re.compile(
    r"\b\d+\s*(?:minute|hour|day|week)s?\s+ago\b|\b(?:a|one)\s+(?:day|week)\s+ago\b",
    re.IGNORECASE,
)

TWITTER_ACTIVITY_POINTS: Final = 30
LINKEDIN_ACTIVITY_POINTS: Final = 20

_MULTIPLIERS: Final[dict[str, float]] = {"K": 1_000, "M": 1_000_000, "B": 1_000_000_000}


def parse_count(raw: str | None) -> int:
    """Parse display counts such as ``1,234``, ``1.2K``, ``3M`` or ``500+``."""
    if not raw:
        return 0
    value = raw.strip().upper().replace(",", "").rstrip("+")
    multiplier = 1.0
    if value and value[-1] in _MULTIPLIERS:
        multiplier = _MULTIPLIERS[value[-1]]
        value = value[:-1]
    try:
        return int(float(value) * multiplier)
    except ValueError:
        return 0


@dataclass(frozen=True)
class PlatformProfile:
    """What a single profile page revealed."""

    active: bool = False
    audience: int = 0
    engagement_rate: float = 0.0
    verified: bool = False
    recently_active: bool = False


def _engagement(text: str) -> float:
    match = ENGAGEMENT_PATTERN.search(text)
    return float(match.group(1)) if match else 0.0


class SocialVerifier:
    """Fetches twitter/linkedin profiles and reads existence, audience and badges from the page."""

    def __init__(self, fetcher: DocumentFetcher) -> None:
        self._fetcher = fetcher

    async def verify(self, contact: Contact) -> SocialVerification:
        twitter = await self._check_twitter(contact.twitter_handle) if contact.twitter_handle else None
        linkedin = await self._check_linkedin(contact.linkedin_url) if contact.linkedin_url else None

        present = [profile for profile in (twitter, linkedin) if profile is not None]
        badges: list[str] = []
        if twitter and twitter.verified:
            badges.append("twitter_verified")
        if linkedin and linkedin.verified:
            badges.append("linkedin_verified")

        activity = 0
        if twitter and twitter.active:
            activity += TWITTER_ACTIVITY_POINTS
        if linkedin and linkedin.recently_active:
            activity += LINKEDIN_ACTIVITY_POINTS

        engagement = (
            round(sum(profile.engagement_rate for profile in present) / len(present), 2)
            if present
            else 0.0
        )
        return SocialVerification(
            twitter_active=bool(twitter and twitter.active),
            linkedin_active=bool(linkedin and linkedin.active),
            recent_activity_score=min(activity, 100),
            follower_count=sum(profile.audience for profile in present),
            engagement_rate=engagement,
            verification_badges=badges,
        )

    async def _check_twitter(self, handle: str) -> PlatformProfile:
        result = await self._fetcher.fetch(TWITTER_PROFILE_URL.format(handle=handle.lstrip("@")))
        if not result.ok:
            return PlatformProfile()
        lowered = result.body.lower()
        if any(marker in lowered for marker in TWITTER_INACTIVE_MARKERS):
            return PlatformProfile()
        followers = FOLLOWERS_PATTERN.search(result.body)
        return PlatformProfile(
            active=True,
            audience=parse_count(followers.group(1)) if followers else 0,
            engagement_rate=_engagement(result.body),
            verified="verified" in lowered,
            recently_active=bool(RECENT_ACTIVITY_PATTERN.search(result.body)),
        )

    async def _check_linkedin(self, url: str) -> PlatformProfile:
        result = await self._fetcher.fetch(url)
        if not result.ok:
            return PlatformProfile()
        lowered = result.body.lower()
        if any(marker in lowered for marker in LINKEDIN_INACTIVE_MARKERS):
            return PlatformProfile()
        connections = CONNECTIONS_PATTERN.search(result.body)
        return PlatformProfile(
            active=True,
            audience=parse_count(connections.group(1)) if connections else 0,
            engagement_rate=_engagement(result.body),
            verified="verified" in lowered or "badge" in lowered,
            recently_active=bool(RECENT_ACTIVITY_PATTERN.search(result.body)),
        )
