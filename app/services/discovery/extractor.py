"""Heuristic contact extraction from staff and masthead pages."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from typing import Final
from urllib.parse import urljoin, urlsplit

from app.models.contact import ContactCandidate, SocialLinks
from app.observability.metrics import metrics
from app.services.discovery.document import HtmlDocument, Node, parse_document

logger = logging.getLogger(__name__)

SECTION_SELECTORS: Final[tuple[str, ...]] = (
    ".staff-member",
    ".team-member",
    ".employee",
    ".reporter",
    ".journalist",
    ".bio",
    ".profile",
    ".person",
    ".author",
    ".contributor",
    ".editor",
    '[class*="staff"]',
    '[class*="team"]',
    '[class*="bio"]',
    '[class*="profile"]',
)
CARD_SELECTORS: Final[tuple[str, ...]] = (
    ".card",
    ".profile-card",
    ".staff-card",
    ".team-card",
    ".media-object",
    ".person-card",
    ".bio-card",
    '[class*="card"]',
    '[class*="profile"]',
)
NAME_SELECTORS: Final[tuple[str, ...]] = (
    ".name",
    ".full-name",
    ".author",
    ".person-name",
    "h1",
    "h2",
    "h3",
    ".title",
    ".headline",
)
TITLE_SELECTORS: Final[tuple[str, ...]] = (
    ".title",
    ".position",
    ".role",
    ".job-title",
    ".subtitle",
    ".description",
)
BIO_SELECTORS: Final[tuple[str, ...]] = (
    ".bio",
    ".biography",
    ".description",
    ".about",
    ".summary",
    ".profile-text",
    "p",
)
IMAGE_SELECTORS: Final[tuple[str, ...]] = ("img", ".photo img", ".headshot img", ".avatar img")

TITLE_INDICATORS: Final[tuple[str, ...]] = (
    "reporter",
    "journalist",
    "editor",
    "writer",
    "correspondent",
    "columnist",
    "anchor",
    "host",
    "producer",
    "director",
    "chief",
    "senior",
    "staff",
    "contributing",
    "freelance",
    "investigative",
    "business",
    "technology",
    "sports",
    "entertainment",
    "politics",
    "health",
    "science",
    "local",
)
PERSON_INDICATORS: Final[tuple[str, ...]] = (
    "@",
    "email",
    "reporter",
    "editor",
    "writer",
    "journalist",
    "correspondent",
    "producer",
    "director",
    "chief",
    "senior",
)
NAME_BLACKLIST: Final[tuple[str, ...]] = ("email", "phone", "contact", "mailto", "@", "http")
PROFILE_LINK_HINTS: Final[tuple[str, ...]] = ("profile", "bio", "more")

BEAT_KEYWORDS: Final[dict[str, tuple[str, ...]]] = {
    "technology": ("tech", "technology", "software", "ai", "digital", "cyber"),
    "business": ("business", "finance", "economy", "market", "startup", "entrepreneur"),
    "sports": ("sports", "athletic", "football", "basketball", "baseball", "soccer"),
    "politics": ("politics", "government", "policy", "election", "congress"),
    "health": ("health", "medical", "healthcare", "medicine", "wellness"),
    "entertainment": ("entertainment", "celebrity", "movies", "music", "culture"),
    "science": ("science", "research", "climate", "environment", "space"),
}

# Candidate confidence weights; a social link counts once regardless of how many are present.
SCORE_WEIGHTS: Final[dict[str, int]] = {
    "name": 20,
    "email": 30,
    "title": 20,
    "bio": 15,
    "image": 5,
    "social": 10,
}
MIN_BIO_LENGTH: Final = 50
FREE_TEXT_WINDOW: Final = 200

EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
TWITTER_PATTERN = re.compile(
    r"^https?://(?:www\.|mobile\.)?(?:twitter\.com|x\.com)/([A-Za-z0-9_]{1,15})(?:[/?#]|$)",
    re.IGNORECASE,
)
LINKEDIN_PATTERN = re.compile(
    r"^https?://(?:[a-z]{2,3}\.)?linkedin\.com/in/([A-Za-z0-9-]+)", re.IGNORECASE
)
TWITTER_RESERVED: Final[frozenset[str]] = frozenset(
    {"share", "intent", "home", "hashtag", "search", "i"}
)


def is_valid_name(text: str | None) -> bool:
    """Heuristic check that ``text`` reads like a person's full name."""
    if not text:
        return False
    candidate = text.strip()
    if not 2 <= len(candidate) <= 100:
        return False
    if len(candidate.split()) < 2:
        return False
    lowered = candidate.lower()
    if any(token in lowered for token in NAME_BLACKLIST):
        return False
    letters = sum(1 for char in candidate if char.isalpha())
    return letters / len(candidate) > 0.7


def is_valid_title(text: str | None) -> bool:
    if not text:
        return False
    candidate = text.strip()
    if not 3 <= len(candidate) <= 200:
        return False
    lowered = candidate.lower()
    return any(indicator in lowered for indicator in TITLE_INDICATORS)


def score_candidate(
    *,
    name: str | None,
    email: str | None = None,
    title: str | None = None,
    bio: str | None = None,
    image_url: str | None = None,
    social_links: SocialLinks | None = None,
) -> int:
    """Additive confidence over the fields that were found."""
    score = 0
    if name:
        score += SCORE_WEIGHTS["name"]
    if email:
        score += SCORE_WEIGHTS["email"]
    if title:
        score += SCORE_WEIGHTS["title"]
    if bio and len(bio) >= MIN_BIO_LENGTH:
        score += SCORE_WEIGHTS["bio"]
    if image_url:
        score += SCORE_WEIGHTS["image"]
    if social_links and social_links.any():
        score += SCORE_WEIGHTS["social"]
    return min(score, 100)


def infer_beat(title: str | None, bio: str | None) -> str | None:
    """First beat whose keyword appears in the combined title and bio."""
    text = f"{title or ''} {bio or ''}".lower()
    if not text.strip():
        return None
    for beat, keywords in BEAT_KEYWORDS.items():
        if any(keyword in text for keyword in keywords):
            return beat
    return None


def _lines(text: str) -> list[str]:
    return [line.strip() for line in text.splitlines() if line.strip()]


def _resolve(href: str | None, base_url: str) -> str | None:
    if not href:
        return None
    href = href.strip()
    if not href or href.startswith(("javascript:", "data:", "#")):
        return None
    return urljoin(base_url, href)


class ContactExtractor:
    """Runs the extraction strategies in order, stopping at the first that yields contacts."""

    def __init__(self) -> None:
        self._strategies: Sequence[tuple[str, Callable[[HtmlDocument, str], list[ContactCandidate]]]] = (
            ("structured_sections", self._extract_sections),
            ("profile_cards", self._extract_cards),
            ("free_text", self._extract_free_text),
        )

    def extract(self, html: str, base_url: str) -> list[ContactCandidate]:
        document = parse_document(html)
        for strategy, run in self._strategies:
            try:
                candidates = run(document, base_url)
            except Exception:
                logger.warning(
                    "discovery.strategy_failed",
                    extra={"strategy": strategy, "url": base_url},
                    exc_info=True,
                )
                continue
            if candidates:
                metrics.increment("discovery.strategy_hit", tags={"strategy": strategy})
                logger.info(
                    "discovery.contacts_extracted",
                    extra={"strategy": strategy, "url": base_url, "count": len(candidates)},
                )
                return candidates
        return []

    def _extract_sections(self, document: HtmlDocument, base_url: str) -> list[ContactCandidate]:
        nodes = _select_all(document.root, SECTION_SELECTORS)
        return self._candidates_from(nodes, base_url)

    def _extract_cards(self, document: HtmlDocument, base_url: str) -> list[ContactCandidate]:
        nodes = [
            node
            for node in _select_all(document.root, CARD_SELECTORS)
            if _has_person_indicator(node)
        ]
        return self._candidates_from(nodes, base_url)

    def _extract_free_text(self, document: HtmlDocument, base_url: str) -> list[ContactCandidate]:
        text = document.body_text()
        candidates: list[ContactCandidate] = []
        seen: set[str] = set()
        for match in EMAIL_PATTERN.finditer(text):
            email = match.group(0)
            if email.lower() in seen:
                continue
            preceding = text[max(0, match.start() - FREE_TEXT_WINDOW) : match.start()]
            names = [line for line in reversed(_lines(preceding)) if is_valid_name(line)]
            name = next((line for line in names if not is_valid_title(line)), None)
            name = name or next(iter(names), None)
            if not name:
                continue
            seen.add(email.lower())
            name_at = text.rfind(name, 0, match.start())
            following = text[name_at + len(name) : name_at + len(name) + FREE_TEXT_WINDOW]
            title = next(
                (line for line in _lines(following) if line != name and is_valid_title(line)),
                None,
            )
            candidates.append(
                _build_candidate(name=name, title=title, email=email, base_url=base_url)
            )
        return candidates

    def _candidates_from(self, nodes: list[Node], base_url: str) -> list[ContactCandidate]:
        people: list[tuple[Node, ContactCandidate]] = []
        for node in nodes:
            candidate = _candidate_from_node(node, base_url)
            if candidate is not None:
                people.append((node, candidate))

        # A match holding two or more people is a listing wrapper, not a person.
        containers = [node for node, _ in people]
        people = [
            (node, candidate)
            for node, candidate in people
            if sum(1 for other in containers if node.contains(other)) < 2
        ]
        return [
            candidate
            for node, candidate in people
            if not any(other.contains(node) for other, _ in people)
        ]


def _candidate_from_node(node: Node, base_url: str) -> ContactCandidate | None:
    """Build a candidate when the node has a name plus at least one corroborating field."""
    name = _extract_name(node)
    if not name:
        return None
    title = _extract_title(node, name)
    email = _extract_email(node)
    image_url = _extract_image(node, base_url)
    profile_url = _extract_profile_url(node, base_url)
    social_links = _extract_social_links(node, base_url)
    bio = _extract_bio(node)
    if not (title or email or bio or image_url or profile_url or social_links.any()):
        return None
    return _build_candidate(
        name=name,
        title=title,
        email=email,
        bio=bio,
        image_url=image_url,
        profile_url=profile_url,
        social_links=social_links,
        base_url=base_url,
    )


def _build_candidate(
    *,
    name: str,
    base_url: str,
    title: str | None = None,
    email: str | None = None,
    bio: str | None = None,
    image_url: str | None = None,
    profile_url: str | None = None,
    social_links: SocialLinks | None = None,
) -> ContactCandidate:
    links = social_links or SocialLinks()
    return ContactCandidate(
        name=" ".join(name.split()),
        title=title,
        email=email.lower() if email else None,
        bio=bio,
        image_url=image_url,
        profile_url=profile_url,
        social_links=links,
        beat=infer_beat(title, bio),
        confidence_score=score_candidate(
            name=name,
            email=email,
            title=title,
            bio=bio,
            image_url=image_url,
            social_links=links,
        ),
        source_url=base_url,
    )


def _select_all(root: Node, selectors: Sequence[str]) -> list[Node]:
    """Union of selector matches in first-seen order."""
    seen: set[Node] = set()
    ordered: list[Node] = []
    for selector in selectors:
        for node in root.select(selector):
            if node not in seen:
                seen.add(node)
                ordered.append(node)
    return ordered


def _has_person_indicator(node: Node) -> bool:
    hrefs = " ".join(anchor.attr("href") or "" for anchor in node.select("a[href]"))
    haystack = f"{node.text()} {hrefs}".lower()
    return any(indicator in haystack for indicator in PERSON_INDICATORS)


def _extract_name(node: Node) -> str | None:
    for selector in NAME_SELECTORS:
        match = node.select_one(selector)
        if match is None:
            continue
        text = " ".join(match.text().split())
        if is_valid_name(text):
            return text
    return next((line for line in _lines(node.text()) if is_valid_name(line)), None)


def _extract_title(node: Node, name: str) -> str | None:
    for selector in TITLE_SELECTORS:
        match = node.select_one(selector)
        if match is None:
            continue
        text = " ".join(match.text().split())
        if text != name and is_valid_title(text):
            return text
    return next(
        (line for line in _lines(node.text()) if line != name and is_valid_title(line)),
        None,
    )


def _extract_email(node: Node) -> str | None:
    for anchor in node.select('a[href^="mailto:"]'):
        address = (anchor.attr("href") or "")[len("mailto:") :].split("?", 1)[0].strip()
        if EMAIL_PATTERN.fullmatch(address):
            return address
    hrefs = " ".join(anchor.attr("href") or "" for anchor in node.select("a[href]"))
    match = EMAIL_PATTERN.search(f"{node.text()} {hrefs}")
    return match.group(0) if match else None


def _extract_bio(node: Node) -> str | None:
    for selector in BIO_SELECTORS:
        for match in node.select(selector):
            text = " ".join(match.text().split())
            if len(text) >= MIN_BIO_LENGTH:
                return text
    return None


def _extract_image(node: Node, base_url: str) -> str | None:
    for selector in IMAGE_SELECTORS:
        match = node.select_one(selector)
        if match is None:
            continue
        resolved = _resolve(match.attr("src") or match.attr("data-src"), base_url)
        if resolved:
            return resolved
    return None


def _extract_profile_url(node: Node, base_url: str) -> str | None:
    for anchor in node.select("a[href]"):
        text = anchor.text().lower()
        if any(hint in text for hint in PROFILE_LINK_HINTS):
            resolved = _resolve(anchor.attr("href"), base_url)
            if resolved and not resolved.startswith("mailto:"):
                return resolved
    return None


def _extract_social_links(node: Node, base_url: str) -> SocialLinks:
    links = SocialLinks()
    base_host = (urlsplit(base_url).hostname or "").lower()
    for anchor in node.select("a[href]"):
        href = (anchor.attr("href") or "").strip()
        if not href or href.lower().startswith("mailto:"):
            continue
        twitter = TWITTER_PATTERN.match(href)
        if twitter:
            if links.twitter is None and twitter.group(1).lower() not in TWITTER_RESERVED:
                links.twitter = href
            continue
        if LINKEDIN_PATTERN.match(href):
            if links.linkedin is None:
                links.linkedin = href
            continue
        parts = urlsplit(href)
        host = (parts.hostname or "").lower()
        if (
            links.personal_site is None
            and parts.scheme in ("http", "https")
            and "." in host
            and host != base_host
            and not host.endswith("." + base_host)
        ):
            links.personal_site = href
    return links
