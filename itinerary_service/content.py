"""Itinerary content providers.

A provider turns ``(destination, duration_days)`` into validated day entries
or raises ContentGenerationError. Providers run on worker threads.
"""

from __future__ import annotations

import json
import logging
import re
import time
from typing import Any, Protocol

import httpx

from .config import Settings
from .errors import ConfigurationError, ContentGenerationError
from .models import Activity, ItineraryDay, parse_itinerary

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)

SYSTEM_PROMPT = (
    "You are a travel planner. Reply with raw JSON only: no prose, no markdown, no code fences."
)

USER_PROMPT_TEMPLATE = """Plan a {days}-day trip to {destination}.
Return a JSON array with exactly {days} elements, one per day, in this shape:
[
  {{
    "day": 1,
    "theme": "short theme for the day",
    "activities": [
      {{"time": "Morning", "description": "what to do", "location": "where"}},
      {{"time": "Afternoon", "description": "what to do", "location": "where"}},
      {{"time": "Evening", "description": "what to do", "location": "where"}}
    ]
  }}
]"""


class ContentProvider(Protocol):
    def generate(self, destination: str, duration_days: int) -> list[ItineraryDay]:
        ...


class PlaceholderContentProvider:
    """Deterministic itinerary after a fixed delay, for running without a model."""

    def __init__(self, delay_seconds: float = 3.0):
        self.delay_seconds = delay_seconds

    def generate(self, destination: str, duration_days: int) -> list[ItineraryDay]:
        if self.delay_seconds > 0:
            time.sleep(self.delay_seconds)
        return [
            ItineraryDay(
                day=i,
                theme=f"Sample Day {i}",
                activities=[
                    Activity("Morning", "Sample activity in the morning.", "Somewhere nice"),
                    Activity("Afternoon", "Sample activity in the afternoon.", "Another place"),
                    Activity("Evening", "Sample dinner recommendation.", "Dinner spot"),
                ],
            )
            for i in range(1, duration_days + 1)
        ]


class FailingContentProvider:
    def __init__(self, message: str = "Content generation is disabled"):
        self.message = message

    def generate(self, destination: str, duration_days: int) -> list[ItineraryDay]:
        raise ContentGenerationError(self.message)


def _strip_fences(content: str) -> str:
    text = content.strip()
    match = _FENCE_RE.match(text)
    return match.group(1) if match else text


class ChatCompletionContentProvider:
    """Single chat-completion call against an OpenAI-compatible endpoint."""

    def __init__(
        self,
        client: httpx.Client,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-4o-mini",
        temperature: float = 0.7,
    ):
        self.client = client
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature

    def _request_body(self, destination: str, duration_days: int) -> dict[str, Any]:
        return {
            "model": self.model,
            "temperature": self.temperature,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": USER_PROMPT_TEMPLATE.format(days=duration_days, destination=destination)},
            ],
        }

    def generate(self, destination: str, duration_days: int) -> list[ItineraryDay]:
        url = f"{self.base_url}/chat/completions"
        try:
            response = self.client.post(
                url,
                json=self._request_body(destination, duration_days),
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except httpx.HTTPError as exc:
            raise ContentGenerationError(f"Chat completion request failed: {exc}") from exc

        if not response.is_success:
            raise ContentGenerationError(f"Chat completion returned {response.status_code}: {response.text}")

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise ContentGenerationError("Chat completion response has no message content") from exc
        if not isinstance(content, str):
            raise ContentGenerationError("Chat completion message content is not text")

        try:
            payload = json.loads(_strip_fences(content))
        except json.JSONDecodeError as exc:
            raise ContentGenerationError(f"Model returned non-JSON content: {exc}") from exc

        if isinstance(payload, dict) and isinstance(payload.get("itinerary"), list):
            payload = payload["itinerary"]
        itinerary = parse_itinerary(payload)
        logger.debug("Model returned %d day(s) for %s", len(itinerary), destination)
        return itinerary


def build_content_provider(settings: Settings, client: httpx.Client) -> ContentProvider:
    """Factory for the configured content provider."""
    if settings.content_provider == "placeholder":
        return PlaceholderContentProvider(delay_seconds=settings.placeholder_delay_seconds)
    if settings.content_provider == "failing":
        return FailingContentProvider()
    if settings.content_provider == "openai":
        if not settings.llm_api_key:
            raise ConfigurationError("OPENAI_API_KEY is required for the openai content provider")
        return ChatCompletionContentProvider(
            client,
            api_key=settings.llm_api_key,
            base_url=settings.llm_base_url,
            model=settings.llm_model,
            temperature=settings.llm_temperature,
        )
    raise ConfigurationError(f"Unknown content provider: {settings.content_provider}")
