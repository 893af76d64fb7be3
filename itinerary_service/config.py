"""Service settings loaded from environment variables."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache

from .errors import ConfigurationError


@dataclass(frozen=True)
class Settings:
    service_account_json: str | None = None
    collection: str = "itineraries"
    firestore_base_url: str = "https://firestore.googleapis.com/v1"
    database_id: str = "(default)"
    content_provider: str = "placeholder"  # placeholder | openai | failing
    llm_api_key: str | None = None
    llm_base_url: str = "https://api.openai.com/v1"
    llm_model: str = "gpt-4o-mini"
    llm_temperature: float = 0.7
    placeholder_delay_seconds: float = 3.0
    http_timeout_seconds: float = 30.0
    max_workers: int = 4
    drain_timeout_seconds: float = 60.0
    log_level: str = "INFO"


def _number(env: Mapping[str, str], name: str, default: str, cast):
    raw = env.get(name, default).strip() or default
    try:
        return cast(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if environ is None else environ

    api_key = (env.get("OPENAI_API_KEY") or "").strip() or None
    provider = (env.get("ITINERARY_CONTENT_PROVIDER") or "").strip().lower()
    if not provider:
        provider = "openai" if api_key else "placeholder"

    return Settings(
        service_account_json=env.get("FIREBASE_SERVICE_ACCOUNT") or None,
        collection=(env.get("ITINERARY_COLLECTION") or "itineraries").strip(),
        firestore_base_url=(env.get("FIRESTORE_BASE_URL") or Settings.firestore_base_url).rstrip("/"),
        database_id=(env.get("FIRESTORE_DATABASE") or "(default)").strip(),
        content_provider=provider,
        llm_api_key=api_key,
        llm_base_url=(env.get("OPENAI_BASE_URL") or Settings.llm_base_url).rstrip("/"),
        llm_model=(env.get("LLM_MODEL") or Settings.llm_model).strip(),
        llm_temperature=_number(env, "LLM_TEMPERATURE", "0.7", float),
        placeholder_delay_seconds=max(_number(env, "PLACEHOLDER_DELAY_SECONDS", "3", float), 0.0),
        http_timeout_seconds=_number(env, "HTTP_TIMEOUT_SECONDS", "30", float),
        max_workers=max(_number(env, "ITINERARY_MAX_WORKERS", "4", int), 1),
        drain_timeout_seconds=_number(env, "ITINERARY_DRAIN_TIMEOUT_SECONDS", "60", float),
        log_level=(env.get("LOG_LEVEL") or "INFO").strip().upper(),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings once per process."""
    return load_settings()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
