"""Heuristic email deliverability checks."""

from __future__ import annotations

import logging
import re
from typing import Final, Protocol

import dns.asyncresolver
import dns.exception

from app.clients.fetcher import DocumentFetcher
from app.config import settings
from app.models.verification import DeliverabilityResult, EmailVerification

logger = logging.getLogger(__name__)

EMAIL_FORMAT = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

DISPOSABLE_DOMAINS: Final[frozenset[str]] = frozenset(
    {
        "10minutemail.com",
        "guerrillamail.com",
        "mailinator.com",
        "tempmail.org",
        "throwaway.email",
        "temp-mail.org",
    }
)
ROLE_PREFIXES: Final[tuple[str, ...]] = (
    "info@",
    "admin@",
    "support@",
    "help@",
    "contact@",
    "sales@",
    "marketing@",
    "noreply@",
    "no-reply@",
)
COMMON_PROVIDERS: Final[frozenset[str]] = frozenset(
    {"gmail.com", "yahoo.com", "hotmail.com", "outlook.com"}
)

EMAIL_WEIGHTS: Final[dict[str, int]] = {
    "format": 20,
    "mx": 30,
    "not_disposable": 20,
    "not_role_based": 10,
    "deliverable": 20,
}


class MxResolver(Protocol):
    async def has_mx(self, domain: str) -> bool:
        ...


class DnsMxResolver(MxResolver):
    """MX lookups through dnspython's asyncio resolver."""

    def __init__(self, *, lifetime: float | None = None) -> None:
        self._lifetime = lifetime or settings.dns_timeout_seconds

    async def has_mx(self, domain: str) -> bool:
        try:
            answer = await dns.asyncresolver.resolve(domain, "MX", lifetime=self._lifetime)
        except dns.exception.DNSException as exc:
            logger.debug("verification.mx_lookup_failed", extra={"domain": domain, "error": type(exc).__name__})
            return False
        return len(answer) > 0


class EmailVerifier:
    """Format, blacklist, MX and reachability checks folded into one score."""

    def __init__(self, fetcher: DocumentFetcher, *, resolver: MxResolver | None = None) -> None:
        self._fetcher = fetcher
        self._resolver = resolver or DnsMxResolver()

    async def verify(self, email: str | None) -> EmailVerification:
        if not email:
            return EmailVerification()
        address = email.strip().lower()
        if not EMAIL_FORMAT.match(address):
            return EmailVerification(is_valid_format=False)

        domain = address.rsplit("@", 1)[1]
        is_disposable = domain in DISPOSABLE_DOMAINS
        is_role_based = address.startswith(ROLE_PREFIXES)
        mx_record_exists = await self._resolver.has_mx(domain)
        smtp_result = await self._classify_deliverability(domain)
        is_deliverable = smtp_result in ("deliverable", "likely_deliverable")

        score = EMAIL_WEIGHTS["format"]
        if mx_record_exists:
            score += EMAIL_WEIGHTS["mx"]
        if not is_disposable:
            score += EMAIL_WEIGHTS["not_disposable"]
        if not is_role_based:
            score += EMAIL_WEIGHTS["not_role_based"]
        if is_deliverable:
            score += EMAIL_WEIGHTS["deliverable"]

        return EmailVerification(
            is_deliverable=is_deliverable,
            is_valid_format=True,
            is_disposable=is_disposable,
            is_role_based=is_role_based,
            mx_record_exists=mx_record_exists,
            smtp_check_result=smtp_result,
            domain=domain,
            confidence_score=min(score, 100),
        )

    async def _classify_deliverability(self, domain: str) -> DeliverabilityResult:
        if domain in COMMON_PROVIDERS:
            return "deliverable"
        if await self._fetcher.head(f"https://{domain}"):
            return "likely_deliverable"
        return "unknown"
