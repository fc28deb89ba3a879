"""Beat categorization via the AI client with a deterministic keyword fallback."""

from __future__ import annotations

import json
import logging
from typing import Any, Final

from pydantic import ValidationError

from app.clients.categorizer import CategorizationClient
from app.models.contact import Contact, Outlet
from app.models.intelligence import Categorization
from app.observability.metrics import metrics
from app.services.errors import CategorizationError, CategorizationValidationError

logger = logging.getLogger(__name__)

BEAT_KEYWORDS: Final[dict[str, tuple[str, ...]]] = {
    "technology": (
        "ai", "artificial intelligence", "machine learning", "blockchain", "cryptocurrency",
        "software", "hardware", "tech", "startup", "silicon valley", "venture capital",
        "cybersecurity", "cloud computing", "data", "digital transformation", "saas",
    ),
    "business": (
        "finance", "economy", "markets", "stocks", "trading", "investment", "banking",
        "enterprise", "corporate", "m&a", "ipo", "earnings", "revenue", "profit",
        "business strategy", "management", "leadership", "entrepreneurship",
    ),
    "healthcare": (
        "medicine", "medical", "health", "pharmaceutical", "biotech", "clinical trials", "fda",
        "drug approval", "healthcare policy", "medical devices", "telemedicine", "mental health",
        "public health", "epidemic", "vaccine", "treatment",
    ),
    "politics": (
        "government", "congress", "senate", "house", "politics", "policy", "legislation",
        "election", "campaign", "voting", "democracy", "republican", "democrat", "white house",
        "supreme court", "federal", "state government", "local politics",
    ),
    "sports": (
        "football", "basketball", "baseball", "soccer", "tennis", "golf", "hockey", "olympics",
        "championship", "playoffs", "athlete", "coach", "team", "league", "sports business",
        "broadcasting", "fantasy sports", "sports betting",
    ),
    "entertainment": (
        "movies", "film", "television", "streaming", "music", "celebrity", "hollywood", "awards",
        "box office", "concert", "album", "gaming", "social media influencer", "content creator",
        "media", "broadcasting", "production",
    ),
    "science": (
        "research", "study", "experiment", "discovery", "climate", "environment", "space", "nasa",
        "physics", "chemistry", "biology", "genetics", "evolution", "renewable energy",
        "sustainability", "conservation", "scientific breakthrough",
    ),
    "education": (
        "school", "university", "college", "education policy", "student", "teacher",
        "curriculum", "online learning", "distance education", "higher education", "k-12",
        "academic", "research university", "education technology",
    ),
}
EXPERTISE_INDICATORS: Final[tuple[str, ...]] = (
    "startup", "venture capital", "IPO", "M&A", "blockchain", "AI", "machine learning",
    "cybersecurity", "cloud computing", "fintech", "biotech", "pharmaceutical",
    "medical devices", "clinical trials", "renewable energy", "climate change",
    "sustainability", "space", "elections", "policy", "regulation", "international relations",
)
CONTENT_PREFERENCE_RULES: Final[tuple[tuple[str, tuple[str, ...]], ...]] = (
    ("data-driven stories", ("data", "research", "study")),
    ("breaking news", ("breaking", "news", "urgent")),
    ("analytical pieces", ("analysis", "opinion", "commentary")),
    ("feature stories", ("feature", "profile", "in-depth")),
    ("exclusive content", ("exclusive", "scoop")),
)
DEFAULT_BEAT: Final = "general"
MAX_SECONDARY_BEATS: Final = 3
MAX_EXPERTISE_AREAS: Final = 5
MAX_CONTENT_PREFERENCES: Final = 3
HITS_FOR_FULL_CONFIDENCE: Final = 3


def build_context(contact: Contact, outlet: Outlet | None) -> str:
    lines = [
        f"Name: {contact.full_name}",
        f"Title: {contact.title or 'Unknown'}",
        f"Bio: {contact.bio or 'Not provided'}",
        f"Current beat: {contact.beat or 'Unknown'}",
        f"Outlet: {outlet.name if outlet else 'Unknown'}",
        f"Outlet type: {outlet.outlet_type if outlet else 'Unknown'}",
        f"Location: {contact.location or 'Unknown'}",
    ]
    return "\n".join(lines)


def extract_expertise_areas(context: str) -> list[str]:
    lowered = context.lower()
    return [area for area in EXPERTISE_INDICATORS if area.lower() in lowered][:MAX_EXPERTISE_AREAS]


def infer_content_preferences(context: str) -> list[str]:
    lowered = context.lower()
    return [
        preference
        for preference, keywords in CONTENT_PREFERENCE_RULES
        if any(keyword in lowered for keyword in keywords)
    ][:MAX_CONTENT_PREFERENCES]


def categorize_by_keywords(context: str) -> Categorization:
    """Rule-based categorization: most keyword hits wins, ties go to the earlier beat."""
    lowered = context.lower()
    hits = {
        beat: sum(1 for keyword in keywords if keyword in lowered)
        for beat, keywords in BEAT_KEYWORDS.items()
    }
    ranked = sorted(
        (beat for beat, count in hits.items() if count > 0),
        key=lambda beat: -hits[beat],
    )
    if not ranked:
        return Categorization(
            primary_beat=DEFAULT_BEAT,
            secondary_beats=[],
            confidence_score=0.0,
            expertise_areas=extract_expertise_areas(context),
            content_preferences=infer_content_preferences(context),
            source="rules",
        )
    primary = ranked[0]
    return Categorization(
        primary_beat=primary,
        secondary_beats=ranked[1 : 1 + MAX_SECONDARY_BEATS],
        confidence_score=round(min(hits[primary] / HITS_FOR_FULL_CONFIDENCE * 100, 100.0), 2),
        expertise_areas=extract_expertise_areas(context),
        content_preferences=infer_content_preferences(context),
        source="rules",
    )


def parse_categorization(raw_text: str) -> Categorization:
    """Validate an untyped model response into a Categorization, failing closed."""
    try:
        payload = _parse_json_payload(raw_text)
    except ValueError as exc:
        raise CategorizationValidationError(
            "Model response was not valid JSON.", code="502_OPENAI_UPSTREAM"
        ) from exc
    if not isinstance(payload, dict):
        raise CategorizationValidationError(
            "Model response must be a JSON object.", code="502_OPENAI_UPSTREAM"
        )
    try:
        categorization = Categorization(
            primary_beat=str(payload["primary_beat"]).strip().lower(),
            secondary_beats=[str(beat).strip().lower() for beat in payload.get("secondary_beats") or []][
                :MAX_SECONDARY_BEATS
            ],
            confidence_score=float(payload["confidence_score"]),
            expertise_areas=[str(area) for area in payload.get("expertise_areas") or []][
                :MAX_EXPERTISE_AREAS
            ],
            content_preferences=[str(item) for item in payload.get("content_preferences") or []][
                :MAX_CONTENT_PREFERENCES
            ],
            source="ai",
        )
    except (KeyError, TypeError, ValueError, ValidationError) as exc:
        raise CategorizationValidationError(
            "Model response missing required fields.", code="422_INVALID_CATEGORIZATION"
        ) from exc
    return categorization


def _parse_json_payload(raw_text: str) -> Any:
    """Best-effort JSON decoding that tolerates code fences or prose."""
    candidate = raw_text.strip()
    if candidate.startswith("```"):
        candidate = "\n".join(
            line for line in candidate.splitlines() if not line.strip().startswith("```")
        ).strip()
    if candidate.startswith("{") and candidate.endswith("}"):
        return json.loads(candidate)
    start = candidate.find("{")
    end = candidate.rfind("}")
    if start != -1 and end != -1 and end > start:
        return json.loads(candidate[start : end + 1])
    raise ValueError("Response did not contain JSON object.")


class Categorizer:
    """Uses the AI client when configured and falls back to keyword rules on any failure."""

    def __init__(self, client: CategorizationClient | None = None) -> None:
        self._client = client

    async def categorize(self, contact: Contact, outlet: Outlet | None) -> Categorization:
        context = build_context(contact, outlet)
        if self._client is None:
            metrics.increment("intelligence.categorization", tags={"source": "rules"})
            return categorize_by_keywords(context)
        try:
            categorization = parse_categorization(await self._client.categorize(context))
        except CategorizationError as exc:
            logger.warning(
                "intelligence.categorization_fallback",
                extra={"contact_id": str(contact.id), "code": exc.code},
            )
            metrics.increment("intelligence.categorization", tags={"source": "fallback"})
            return categorize_by_keywords(context)
        except Exception as exc:
            logger.warning(
                "intelligence.categorization_fallback",
                extra={"contact_id": str(contact.id), "error": type(exc).__name__},
            )
            metrics.increment("intelligence.categorization", tags={"source": "fallback"})
            return categorize_by_keywords(context)
        metrics.increment("intelligence.categorization", tags={"source": "ai"})
        return categorization
