"""
tests/test_settings_store.py

SettingsStore read-through defaults and partial updates.
"""

from __future__ import annotations

import pytest

from app.errors import NotFoundError
from app.repositories import module_settings_repository
from app.repositories.module_settings_repository import (
    DEFAULT_MODEL,
    DEFAULT_TRACKING_SCHEDULE,
    ModuleSettingsValue,
    SettingsStore,
)
from app.repositories.research_run_repository import ResearchModule
from db.models import ModuleSettings


class TestDefaults:
    def test_unconfigured_module_returns_default(self, db) -> None:
        value = SettingsStore(db).get_value(ResearchModule.WEBSITE_CHANGES)

        assert value.model == DEFAULT_MODEL
        assert value.schedule == DEFAULT_TRACKING_SCHEDULE
        assert value.enabled is True
        assert "{url}" in value.prompt_template

    def test_default_is_persisted_and_not_recomputed(self, db, session_factory, monkeypatch) -> None:
        SettingsStore(db).get(ResearchModule.TRUSTPILOT)
        db.commit()

        calls: list[str] = []
        original = module_settings_repository.default_settings_value

        def counting(module_id: str):
            calls.append(module_id)
            return original(module_id)

        monkeypatch.setattr(module_settings_repository, "default_settings_value", counting)

        other = session_factory()
        try:
            row = SettingsStore(other).get(ResearchModule.TRUSTPILOT)
            assert row.value["schedule"] == "0 3 * * *"
        finally:
            other.close()
        assert calls == []

    def test_builtin_modules_have_names(self, db) -> None:
        for module_id in ("website-changes", "trustpilot", "social-media", "seo"):
            assert SettingsStore(db).get(module_id).name

    def test_unknown_module(self, db) -> None:
        with pytest.raises(NotFoundError):
            SettingsStore(db).get("carrier-pigeon")
        assert db.get(ModuleSettings, "carrier-pigeon") is None


class TestPut:
    def test_partial_update_merges(self, db) -> None:
        store = SettingsStore(db)

        store.put(ResearchModule.WEBSITE_CHANGES, {"schedule": "15 */2 * * *"})
        db.commit()
        value = store.get_value(ResearchModule.WEBSITE_CHANGES)

        assert value.schedule == "15 */2 * * *"
        assert value.model == DEFAULT_MODEL

    def test_none_fields_are_ignored(self, db) -> None:
        store = SettingsStore(db)
        store.put("seo", {"model": "gpt-4o", "schedule": None})

        value = store.get_value("seo")
        assert value.model == "gpt-4o"
        assert value.schedule == "0 3 * * *"

    def test_rename(self, db) -> None:
        row = SettingsStore(db).put("seo", {}, name="  Search Visibility ")
        assert row.name == "Search Visibility"

    @pytest.mark.parametrize("schedule", ["not a cron", "0 3 * *", "99 3 * * *"])
    def test_invalid_schedule_rejected(self, db, schedule) -> None:
        store = SettingsStore(db)
        with pytest.raises(ValueError):
            store.put(ResearchModule.WEBSITE_CHANGES, {"schedule": schedule})
        assert store.get_value(ResearchModule.WEBSITE_CHANGES).schedule == DEFAULT_TRACKING_SCHEDULE

    def test_empty_model_rejected(self, db) -> None:
        with pytest.raises(ValueError):
            SettingsStore(db).put("seo", {"model": "  "})

    def test_unknown_field_rejected(self, db) -> None:
        with pytest.raises(ValueError):
            SettingsStore(db).put("seo", {"temperature": 0.2})


class TestModuleSettingsValue:
    def test_schedule_whitespace_is_normalized(self) -> None:
        value = ModuleSettingsValue(model="m", prompt_template="p", schedule=" 0  3 * * * ")
        assert value.schedule == "0 3 * * *"
