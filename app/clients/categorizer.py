"""OpenAI chat client used to categorize journalist beats."""

from __future__ import annotations

import logging
from typing import Protocol

from openai import APIError, APIStatusError, AsyncOpenAI, OpenAIError

from app.config import settings
from app.services.errors import CategorizationProviderError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert media analyst. Categorize journalists by beat and expertise. "
    "Respond with a single JSON object containing primary_beat, secondary_beats, "
    "confidence_score (0-100), expertise_areas and content_preferences."
)


class CategorizationClient(Protocol):
    """Minimal contract for a remote categorization capability."""

    async def categorize(self, context: str) -> str:
        ...


class OpenAICategorizationClient(CategorizationClient):
    """Thin wrapper around the OpenAI chat completions API."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        if not api_key and client is None:
            raise ValueError("OPENAI_API_KEY is required for AI categorization.")
        self._client = client or AsyncOpenAI(api_key=api_key)
        self._model = model or settings.categorization_model
        self._temperature = (
            settings.categorization_temperature if temperature is None else temperature
        )
        self._max_tokens = max_tokens or settings.categorization_max_tokens

    @classmethod
    def from_settings(cls) -> "OpenAICategorizationClient | None":
        if not settings.openai_api_key:
            return None
        return cls(settings.openai_api_key)

    async def categorize(self, context: str) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": f"Categorize this journalist and return JSON only.\n\n{context}",
                    },
                ],
            )
        except APIStatusError as exc:
            code = "429_RATE_LIMIT" if exc.status_code == 429 else "502_OPENAI_UPSTREAM"
            raise CategorizationProviderError(f"OpenAI request failed: {exc.message}", code=code) from exc
        except (APIError, OpenAIError) as exc:
            raise CategorizationProviderError(
                f"OpenAI request failed: {exc}", code="502_OPENAI_UPSTREAM"
            ) from exc

        choices = getattr(response, "choices", None) or []
        content = choices[0].message.content if choices else None
        if not isinstance(content, str) or not content.strip():
            raise CategorizationProviderError(
                "OpenAI response did not include text output.",
                code="502_OPENAI_UPSTREAM",
            )
        logger.debug("categorizer.response_received", extra={"model": self._model})
        return content.strip()
