"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.change_record import ChangeClassification, ChangeRecord
from db.models.module_settings import ModuleSettings
from db.models.research_run import ResearchRun
from db.models.review_record import ReviewRecord
from db.models.snapshot import Snapshot
from db.models.tracked_entity import TrackedEntity

__all__ = [
    "ChangeClassification",
    "ChangeRecord",
    "ModuleSettings",
    "ResearchRun",
    "ReviewRecord",
    "Snapshot",
    "TrackedEntity",
]
