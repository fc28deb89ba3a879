from __future__ import annotations

import json

import httpx
import pytest

from app.clients.tavily import (
    TavilyClient,
    TavilyError,
    TavilyRateLimitError,
    TavilySchemaError,
    TavilyTimeoutError,
)


def _client(handler) -> TavilyClient:
    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="https://api.tavily.com"
    )
    return TavilyClient(api_key="tvly-test", http_client=http_client)


@pytest.mark.asyncio
async def test_search_posts_news_query_and_returns_results():
    captured: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["path"] = request.url.path
        captured["auth"] = request.headers["authorization"]
        captured["payload"] = json.loads(request.content)
        return httpx.Response(200, json={"results": [{"title": "Story", "url": "https://x.test/a"}]})

    client = _client(handler)
    results = await client.search(query='"Jane Doe" journalist', max_results=5, days_limit=90)

    assert results == [{"title": "Story", "url": "https://x.test/a"}]
    assert captured["path"] == "/search"
    assert captured["auth"] == "Bearer tvly-test"
    assert captured["payload"]["topic"] == "news"
    assert captured["payload"]["max_results"] == 5
    assert captured["payload"]["days"] == 90


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status_code", "error_type"),
    [(429, TavilyRateLimitError), (504, TavilyTimeoutError), (500, TavilyError)],
)
async def test_search_maps_error_statuses(status_code, error_type):
    client = _client(lambda request: httpx.Response(status_code, json={"detail": "nope"}))

    with pytest.raises(error_type):
        await client.search(query="anything")


@pytest.mark.asyncio
async def test_search_rejects_missing_results():
    client = _client(lambda request: httpx.Response(200, json={"answer": "no results key"}))

    with pytest.raises(TavilySchemaError) as excinfo:
        await client.search(query="anything")

    assert excinfo.value.code == "TAVILY_SCHEMA_ERR"


def test_from_settings_without_key_returns_none(monkeypatch):
    from app.clients import tavily as tavily_module

    monkeypatch.setattr(tavily_module.settings, "tavily_api_key", None)

    assert TavilyClient.from_settings() is None
