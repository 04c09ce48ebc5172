"""
app/repositories package marker.
"""

from app.repositories.change_record_repository import ChangeRecordRepository
from app.repositories.module_settings_repository import SettingsStore
from app.repositories.research_run_repository import ResearchModule, ResearchRunRecorder
from app.repositories.review_repository import InsertOutcome, ReviewInput, ReviewRepository
from app.repositories.tracked_entity_repository import TrackedEntityRepository

__all__ = [
    "ChangeRecordRepository",
    "InsertOutcome",
    "ResearchModule",
    "ResearchRunRecorder",
    "ReviewInput",
    "ReviewRepository",
    "SettingsStore",
    "TrackedEntityRepository",
]
