"""HTTP document fetcher shared by the scraper and verification analyzers."""

from __future__ import annotations

import logging
import time
from typing import NamedTuple

import httpx

from app.config import settings
from app.observability.metrics import metrics

logger = logging.getLogger(__name__)

HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


class FetchResult(NamedTuple):
    """Body and success flag for a single GET."""

    body: str
    ok: bool
    status_code: int | None = None


class DocumentFetcher:
    """Fetches documents with a fixed identity and never raises on transport failures."""

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient | None = None,
        user_agent: str | None = None,
        timeout: float | None = None,
        head_timeout: float | None = None,
    ) -> None:
        self._timeout = timeout or settings.fetch_timeout_seconds
        self._head_timeout = head_timeout or settings.head_timeout_seconds
        self._headers = {**HEADERS, "User-Agent": user_agent or settings.fetch_user_agent}
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(follow_redirects=True)

    async def fetch(self, url: str, *, timeout: float | None = None) -> FetchResult:
        """GET ``url`` and return ``(body, ok)``; non-2xx and transport errors yield ``ok=False``."""
        start = time.perf_counter()
        try:
            response = await self._http.get(
                url,
                headers=self._headers,
                timeout=timeout or self._timeout,
                follow_redirects=True,
            )
        except httpx.TimeoutException:
            logger.warning("fetcher.timeout", extra={"url": url})
            metrics.increment("fetcher.requests", tags={"outcome": "timeout"})
            return FetchResult("", False)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning(
                "fetcher.request_error",
                extra={"url": url, "error": type(exc).__name__},
            )
            metrics.increment("fetcher.requests", tags={"outcome": "error"})
            return FetchResult("", False)
        finally:
            metrics.timing("fetcher.latency_ms", (time.perf_counter() - start) * 1000)

        if not response.is_success:
            logger.info(
                "fetcher.http_status",
                extra={"url": url, "status": response.status_code},
            )
            metrics.increment("fetcher.requests", tags={"outcome": "http_status"})
            return FetchResult("", False, response.status_code)

        metrics.increment("fetcher.requests", tags={"outcome": "ok"})
        return FetchResult(response.text, True, response.status_code)

    async def head(self, url: str) -> bool:
        """Reachability probe; True when the URL answers with a non-error status."""
        try:
            response = await self._http.head(
                url,
                headers=self._headers,
                timeout=self._head_timeout,
                follow_redirects=True,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.debug("fetcher.head_failed", extra={"url": url, "error": type(exc).__name__})
            return False
        return response.status_code < 400

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._http.aclose()

    async def __aenter__(self) -> "DocumentFetcher":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
