"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class FetchSettings:
    """
    Outbound page fetch behavior.
    """

    timeout_seconds: float = 15.0
    user_agent: str = "CompetitorWatchBot/1.0 (+https://example.com/bot)"
    review_site_base_url: str = "https://www.trustpilot.com"


@dataclass(frozen=True)
class AnalysisSettings:
    """
    External summarization/extraction webhook endpoints.
    """

    website_endpoint: str | None = None
    reviews_endpoint: str | None = None
    timeout_seconds: float = 60.0


@dataclass(frozen=True)
class SchedulerSettings:
    """
    Background scheduler behavior.
    """

    enabled: bool = True
    timezone: str = "UTC"
    misfire_grace_seconds: int = 3600


@lru_cache(maxsize=1)
def get_fetch_settings() -> FetchSettings:
    """
    Return cached page fetch settings from environment variables.
    """

    return FetchSettings(
        timeout_seconds=max(1.0, _get_float_env("FETCH_TIMEOUT_SECONDS", 15.0)),
        user_agent=_get_str_env(
            "FETCH_USER_AGENT",
            "CompetitorWatchBot/1.0 (+https://example.com/bot)",
        ),
        review_site_base_url=_get_str_env(
            "REVIEW_SITE_BASE_URL",
            "https://www.trustpilot.com",
        ).rstrip("/"),
    )


@lru_cache(maxsize=1)
def get_analysis_settings() -> AnalysisSettings:
    """
    Return analysis webhook settings; endpoints may be unset.
    """

    return AnalysisSettings(
        website_endpoint=_get_optional_str_env("ANALYSIS_WEBSITE_ENDPOINT"),
        reviews_endpoint=_get_optional_str_env("ANALYSIS_REVIEWS_ENDPOINT"),
        timeout_seconds=max(1.0, _get_float_env("ANALYSIS_TIMEOUT_SECONDS", 60.0)),
    )


@lru_cache(maxsize=1)
def get_scheduler_settings() -> SchedulerSettings:
    """
    Return background scheduler settings from environment variables.
    """

    return SchedulerSettings(
        enabled=_get_bool_env("SCHEDULER_ENABLED", True),
        timezone=_get_str_env("SCHEDULER_TIMEZONE", "UTC"),
        misfire_grace_seconds=max(
            60,
            int(_get_float_env("SCHEDULER_MISFIRE_GRACE_SECONDS", 3600)),
        ),
    )
