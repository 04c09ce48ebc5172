"""
app/repositories/module_settings_repository.py

Per-module configuration with read-through built-in defaults.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from apscheduler.triggers.cron import CronTrigger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from sqlalchemy.orm import Session

from app.errors import NotFoundError
from app.repositories.research_run_repository import ResearchModule
from app.tracking.logging_utils import log_event
from db.models.module_settings import ModuleSettings

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4"
DEFAULT_TRACKING_SCHEDULE = "0 */6 * * *"
DEFAULT_DAILY_SCHEDULE = "0 3 * * *"

_WEBSITE_PROMPT = (
    "Compare the previous and current content of {url}. "
    "Summarize meaningful changes to products, pricing, positioning and messaging."
)
_REVIEWS_PROMPT = (
    "Extract every customer review on {review_source_url} with rating, title, "
    "body, author and publication date."
)

# Built-in modules: module_id -> (display name, prompt template, schedule).
BUILTIN_MODULES: dict[str, tuple[str, str, str]] = {
    ResearchModule.WEBSITE_CHANGES: (
        "Website Change Tracking",
        _WEBSITE_PROMPT,
        DEFAULT_TRACKING_SCHEDULE,
    ),
    ResearchModule.TRUSTPILOT: (
        "Trustpilot Review Monitoring",
        _REVIEWS_PROMPT,
        DEFAULT_DAILY_SCHEDULE,
    ),
    "social-media": (
        "Social Media Monitoring",
        "Summarize recent social media activity for {url}.",
        DEFAULT_DAILY_SCHEDULE,
    ),
    "seo": (
        "SEO Analysis",
        "Summarize search ranking and on-page SEO changes for {url}.",
        DEFAULT_DAILY_SCHEDULE,
    ),
}


class ModuleSettingsValue(BaseModel):
    """
    Validated shape of ModuleSettings.value.
    """

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    model: str = Field(min_length=1)
    prompt_template: str = Field(min_length=1)
    schedule: str
    enabled: bool = True

    @field_validator("schedule")
    @classmethod
    def _validate_cron(cls, value: str) -> str:
        normalized = " ".join(value.split())
        if len(normalized.split(" ")) != 5:
            raise ValueError("schedule must be a 5-field cron expression")
        CronTrigger.from_crontab(normalized)
        return normalized


def default_settings_value(module_id: str) -> dict[str, Any]:
    """
    Built-in default value for a known module.
    """

    try:
        _, prompt_template, schedule = BUILTIN_MODULES[module_id]
    except KeyError as exc:
        raise NotFoundError(f"Unknown research module: {module_id}") from exc
    return ModuleSettingsValue(
        model=DEFAULT_MODEL,
        prompt_template=prompt_template,
        schedule=schedule,
        enabled=True,
    ).model_dump()


class SettingsStore:
    """
    get() materializes defaults on first read; put() merges partial updates.

    Both flush only; callers commit.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, module_id: str) -> ModuleSettings:
        row = self._session.get(ModuleSettings, module_id)
        if row is not None:
            return row

        name = BUILTIN_MODULES[module_id][0] if module_id in BUILTIN_MODULES else module_id
        row = ModuleSettings(
            module_id=module_id,
            name=name,
            value=default_settings_value(module_id),
        )
        self._session.add(row)
        self._session.flush()
        log_event(logger, logging.INFO, "module_settings_defaulted", module_id=module_id)
        return row

    def get_value(self, module_id: str) -> ModuleSettingsValue:
        return ModuleSettingsValue.model_validate(self.get(module_id).value)

    def put(
        self,
        module_id: str,
        partial: Mapping[str, Any],
        *,
        name: str | None = None,
    ) -> ModuleSettings:
        """
        Merge ``partial`` into the stored value, leaving unspecified fields as they were.

        Raises ValueError when the merged value is invalid.
        """

        row = self.get(module_id)
        merged = {**row.value, **{key: value for key, value in partial.items() if value is not None}}
        try:
            validated = ModuleSettingsValue.model_validate(merged)
        except ValidationError as exc:
            raise ValueError(f"Invalid settings for module {module_id}: {exc}") from exc

        # Reassign so the JSON column is detected as changed.
        row.value = validated.model_dump()
        if name is not None and name.strip():
            row.name = name.strip()
        self._session.flush()
        log_event(
            logger,
            logging.INFO,
            "module_settings_updated",
            module_id=module_id,
            fields=sorted(partial.keys()),
        )
        return row
