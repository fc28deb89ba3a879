from __future__ import annotations

import json

import pytest

from app.services.errors import CategorizationProviderError, CategorizationValidationError
from app.services.intelligence import categorization as categorization_module
from app.services.intelligence.categorization import (
    Categorizer,
    build_context,
    categorize_by_keywords,
    parse_categorization,
)
from tests.helpers.metrics_stub import StubMetrics


class StubCategorizationClient:
    def __init__(self, *, response: str | None = None, error: Exception | None = None) -> None:
        self._response = response
        self._error = error
        self.contexts: list[str] = []

    async def categorize(self, context: str) -> str:
        self.contexts.append(context)
        if self._error is not None:
            raise self._error
        return self._response or ""


def test_keyword_fallback_prefers_most_hits():
    result = categorize_by_keywords("blockchain, venture capital, IPO")

    assert result.primary_beat == "technology"
    assert result.confidence_score == 100
    assert result.secondary_beats == ["business"]
    assert result.source == "rules"
    assert result.expertise_areas == ["venture capital", "IPO", "blockchain", "AI"]


def test_keyword_fallback_without_hits_is_general():
    result = categorize_by_keywords("Writes about gardening and knitting")

    assert result.primary_beat == "general"
    assert result.confidence_score == 0
    assert result.secondary_beats == []


def test_keyword_fallback_partial_confidence_and_preferences():
    result = categorize_by_keywords("Exclusive analysis of the election campaign")

    assert result.primary_beat == "politics"
    assert result.confidence_score == round(2 / 3 * 100, 2)
    assert result.content_preferences == ["analytical pieces", "exclusive content"]


def test_build_context_lists_known_fields(make_contact, outlet):
    context = build_context(make_contact(title="Reporter", bio="Covers chips"), outlet)

    assert "Name: Jane Doe" in context
    assert "Title: Reporter" in context
    assert "Outlet: The Daily Example" in context
    assert "Outlet type: digital_native" in context


def test_parse_categorization_accepts_fenced_json():
    raw = "```json\n" + json.dumps(
        {
            "primary_beat": "Healthcare",
            "secondary_beats": ["science", "business", "politics", "sports"],
            "confidence_score": 87,
            "expertise_areas": ["biotech"],
            "content_preferences": ["data-driven stories"],
        }
    ) + "\n```"

    result = parse_categorization(raw)

    assert result.primary_beat == "healthcare"
    assert result.secondary_beats == ["science", "business", "politics"]
    assert result.confidence_score == 87
    assert result.source == "ai"


@pytest.mark.parametrize(
    "raw",
    [
        "I think this is a tech reporter.",
        "[1, 2, 3]",
        json.dumps({"secondary_beats": ["tech"]}),
        json.dumps({"primary_beat": "technology", "confidence_score": 250}),
        json.dumps({"primary_beat": "technology", "confidence_score": "high"}),
    ],
)
def test_parse_categorization_fails_closed(raw):
    with pytest.raises(CategorizationValidationError):
        parse_categorization(raw)


@pytest.mark.asyncio
async def test_categorizer_without_client_uses_rules(make_contact):
    contact = make_contact(bio="Covers blockchain, venture capital, IPO")

    result = await Categorizer(None).categorize(contact, None)

    assert result.source == "rules"
    assert result.primary_beat == "technology"
    assert result.confidence_score == 100


@pytest.mark.asyncio
async def test_categorizer_uses_ai_response(make_contact, outlet):
    client = StubCategorizationClient(
        response=json.dumps({"primary_beat": "science", "confidence_score": 72.5})
    )

    result = await Categorizer(client).categorize(make_contact(), outlet)

    assert result.primary_beat == "science"
    assert result.source == "ai"
    assert "Outlet: The Daily Example" in client.contexts[0]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "client",
    [
        StubCategorizationClient(response="not json at all"),
        StubCategorizationClient(error=CategorizationProviderError("down", code="502_OPENAI_UPSTREAM")),
        StubCategorizationClient(error=TimeoutError("socket timeout")),
    ],
)
async def test_categorizer_falls_back_on_any_failure(monkeypatch, make_contact, client):
    stub = StubMetrics()
    monkeypatch.setattr(categorization_module, "metrics", stub)
    contact = make_contact(title="Sports Editor", bio="Covers the basketball league and its playoffs")

    result = await Categorizer(client).categorize(contact, None)

    assert result.source == "rules"
    assert result.primary_beat == "sports"
    assert stub.increment_calls[-1]["tags"] == {"source": "fallback"}
