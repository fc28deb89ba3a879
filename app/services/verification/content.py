"""Recent-publication signal built from byline searches."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Final, Protocol

from app.clients.tavily import TavilyError, TavilyRateLimitError, TavilyTimeoutError
from app.config import settings
from app.models.contact import Contact, Outlet
from app.models.verification import ContentVerification
from scripts.backoff import retry_async

logger = logging.getLogger(__name__)

# (minimum weighted publications, score), checked top-down.
FREQUENCY_TABLE: Final[tuple[tuple[float, int], ...]] = (
    (20, 100),
    (10, 80),
    (5, 60),
    (2, 40),
    (1, 20),
)
RECENT_WINDOW: Final = timedelta(days=30)
QUARTER_WINDOW: Final = timedelta(days=90)
UNDATED_WEIGHT: Final = 0.5

Sleeper = Callable[[float], Awaitable[None]]


class PublicationSearch(Protocol):
    async def search(
        self, *, query: str, max_results: int = 6, days_limit: int | None = None
    ) -> list[dict[str, Any]]:
        ...


def frequency_score(weighted_count: float) -> int:
    for minimum, score in FREQUENCY_TABLE:
        if weighted_count >= minimum:
            return score
    return 0


def recency_weight(published: datetime | None, now: datetime) -> float:
    if published is None:
        return UNDATED_WEIGHT
    age = now - published
    if age <= RECENT_WINDOW:
        return 1.0
    if age <= QUARTER_WINDOW:
        return 0.5
    return 0.25


def parse_published_date(raw: Any) -> datetime | None:
    if not raw or not isinstance(raw, str):
        return None
    value = raw.strip()
    parsed: datetime | None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def build_byline_query(contact: Contact, outlet: Outlet | None) -> str:
    query = f'"{contact.full_name}" journalist writer reporter'
    if outlet is not None:
        query = f"{query} {outlet.name}"
    return query


class ContentAnalyzer:
    """Scores recent publication activity; returns an empty signal when search is unavailable."""

    def __init__(
        self,
        search_client: PublicationSearch | None,
        *,
        max_results: int | None = None,
        days: int | None = None,
        retry_attempts: int = 3,
        sleep: Sleeper | None = None,
    ) -> None:
        self._search = search_client
        self._max_results = max_results or settings.content_search_max_results
        self._days = days or settings.content_search_days
        self._retry_attempts = retry_attempts
        self._sleep = sleep or asyncio.sleep

    async def analyze(self, contact: Contact, outlet: Outlet | None = None) -> ContentVerification:
        if self._search is None or not contact.full_name:
            return ContentVerification()
        results = await self._search_with_retry(build_byline_query(contact, outlet))
        return summarize_publications(results, contact, now=datetime.now(timezone.utc))

    async def _search_with_retry(self, query: str) -> list[dict[str, Any]]:
        try:
            return await retry_async(
                lambda: self._search.search(
                    query=query, max_results=self._max_results, days_limit=self._days
                ),
                retry_on=(TavilyRateLimitError, TavilyTimeoutError),
                max_attempts=self._retry_attempts,
                sleep=self._sleep,
                label="verification.content_search",
            )
        except TavilyError as exc:
            logger.warning("verification.content_search_failed", extra={"code": exc.code})
            raise


def summarize_publications(
    results: list[dict[str, Any]], contact: Contact, *, now: datetime
) -> ContentVerification:
    if not results:
        return ContentVerification()
    full_name = contact.full_name.lower()
    weighted = 0.0
    dates: list[datetime] = []
    relevance: list[float] = []
    byline = False
    for item in results:
        published = parse_published_date(item.get("published_date"))
        if published is not None:
            dates.append(published)
        weighted += recency_weight(published, now)
        haystack = f"{item.get('title') or ''} {item.get('content') or ''}".lower()
        if full_name and full_name in haystack:
            byline = True
        score = item.get("score")
        if isinstance(score, (int, float)):
            relevance.append(max(0.0, min(float(score), 1.0)))

    return ContentVerification(
        recent_publications_count=len(results),
        weighted_publication_count=round(weighted, 2),
        last_publication_date=max(dates) if dates else None,
        publication_frequency_score=frequency_score(weighted),
        content_quality_score=round(sum(relevance) / len(relevance) * 100) if relevance else 0,
        byline_verification=byline,
    )
