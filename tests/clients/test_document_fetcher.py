from __future__ import annotations

import httpx
import pytest

from app.clients import fetcher as fetcher_module
from tests.helpers.metrics_stub import StubMetrics
from tests.helpers.stubs import make_fetcher


@pytest.mark.asyncio
async def test_fetch_returns_body_on_success(monkeypatch):
    stub = StubMetrics()
    monkeypatch.setattr(fetcher_module, "metrics", stub)
    seen_agents: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen_agents.append(request.headers["user-agent"])
        return httpx.Response(200, text="<html>ok</html>")

    fetcher = make_fetcher(handler)
    result = await fetcher.fetch("https://outlet.example.com/staff")

    assert result.ok is True
    assert result.body == "<html>ok</html>"
    assert result.status_code == 200
    assert seen_agents and "Mozilla" in seen_agents[0]
    assert stub.increment_calls[-1]["tags"] == {"outcome": "ok"}


@pytest.mark.asyncio
async def test_fetch_non_success_status_is_not_ok():
    fetcher = make_fetcher(lambda request: httpx.Response(503, text="busy"))

    result = await fetcher.fetch("https://outlet.example.com/team")

    assert result.ok is False
    assert result.body == ""
    assert result.status_code == 503


@pytest.mark.asyncio
async def test_fetch_swallows_transport_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    fetcher = make_fetcher(handler)
    result = await fetcher.fetch("https://unreachable.example.com")

    assert result.ok is False
    assert result.body == ""


@pytest.mark.asyncio
async def test_fetch_swallows_timeouts():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("too slow", request=request)

    fetcher = make_fetcher(handler)
    result = await fetcher.fetch("https://slow.example.com")

    assert result == ("", False, None)


@pytest.mark.asyncio
async def test_head_reports_reachability():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "HEAD"
        if request.url.host == "up.example.com":
            return httpx.Response(204)
        return httpx.Response(404)

    fetcher = make_fetcher(handler)

    assert await fetcher.head("https://up.example.com") is True
    assert await fetcher.head("https://down.example.com") is False
