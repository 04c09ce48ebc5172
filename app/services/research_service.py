"""
app/services/research_service.py

On-demand research operations and read interfaces used by the API and CLI.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping, Sequence
from functools import lru_cache
from typing import Any

from sqlalchemy.orm import Session

from app.analysis.client import AnalysisClient
from app.analysis.contracts import WebsiteAnalysisRequest
from app.analysis.prompts import render_prompt
from app.repositories.change_record_repository import ChangeRecordRepository
from app.repositories.module_settings_repository import SettingsStore
from app.repositories.research_run_repository import ResearchModule, ResearchRunRecorder
from app.repositories.review_repository import ReviewRepository
from app.repositories.tracked_entity_repository import TrackedEntityRepository
from app.reviews.ingester import ReviewIngester, ReviewIngestionResult
from app.tracking.change_tracker import ChangeTracker, TrackingOutcome
from app.tracking.logging_utils import log_event
from app.tracking.snapshot_store import SnapshotStore
from db.models.change_record import ChangeRecord
from db.models.module_settings import ModuleSettings
from db.models.research_run import ResearchRun
from db.models.review_record import ReviewRecord

logger = logging.getLogger(__name__)


class ResearchService:
    """
    Single-entity operations. Errors propagate to the caller.
    """

    def __init__(
        self,
        *,
        tracker: ChangeTracker | None = None,
        ingester: ReviewIngester | None = None,
        analysis_client: AnalysisClient | None = None,
    ) -> None:
        self._tracker = tracker or ChangeTracker()
        self._ingester = ingester or ReviewIngester()
        self._analysis_client = analysis_client

    @property
    def analysis_client(self) -> AnalysisClient:
        if self._analysis_client is None:
            self._analysis_client = AnalysisClient()
        return self._analysis_client

    def track_entity(
        self,
        db: Session,
        entity_id: uuid.UUID,
        *,
        timeout_seconds: float | None = None,
    ) -> TrackingOutcome:
        return self._tracker.track(db, entity_id, timeout_seconds=timeout_seconds)

    def ingest_reviews(
        self,
        db: Session,
        entity_id: uuid.UUID,
        *,
        review_source_url: str | None = None,
        timeout_seconds: float | None = None,
    ) -> ReviewIngestionResult:
        return self._ingester.ingest(
            db,
            entity_id,
            review_source_url=review_source_url,
            timeout_seconds=timeout_seconds,
        )

    def run_website_research(
        self,
        db: Session,
        entity_id: uuid.UUID,
        *,
        timeout_seconds: float | None = None,
    ) -> ResearchRun:
        """
        Ask the analysis webhook for a change verdict and record the run.

        The latest stored snapshot is sent as the previous content.
        """

        entity = TrackedEntityRepository(db).require(entity_id)
        try:
            settings = SettingsStore(db).get_value(ResearchModule.WEBSITE_CHANGES)
            latest = SnapshotStore(db).latest_for_entity(entity_id)
            request = WebsiteAnalysisRequest(
                url=entity.url,
                previous_content=latest.content if latest is not None else None,
                model=settings.model,
                prompt=render_prompt(settings.prompt_template, url=entity.url, name=entity.name),
            )
            response = self.analysis_client.analyze_website(request, timeout_seconds=timeout_seconds)
            run = ResearchRunRecorder(db).record(
                entity_id=entity_id,
                module_id=ResearchModule.WEBSITE_RESEARCH,
                result={
                    "content": response.content,
                    "change_flag": response.change_flag,
                    "previous_snapshot_id": str(latest.id) if latest is not None else None,
                    "model": settings.model,
                },
                changes_made=response.change_flag,
                change_details=response.change_details,
            )
            db.commit()
        except Exception as exc:
            db.rollback()
            log_event(
                logger,
                logging.WARNING,
                "website_research_failed",
                entity_id=entity_id,
                exc=exc,
            )
            raise

        log_event(
            logger,
            logging.INFO,
            "website_research_completed",
            entity_id=entity_id,
            changes_made=run.changes_made,
        )
        return run

    # -- read interfaces ---------------------------------------------------

    def research_history(
        self,
        db: Session,
        entity_id: uuid.UUID,
        *,
        module_id: str | None = None,
        limit: int = 50,
    ) -> list[ResearchRun]:
        TrackedEntityRepository(db).require(entity_id)
        return ResearchRunRecorder(db).history(entity_id, module_id=module_id, limit=limit)

    def change_history(
        self,
        db: Session,
        entity_id: uuid.UUID,
        *,
        limit: int = 20,
        offset: int = 0,
    ) -> list[ChangeRecord]:
        TrackedEntityRepository(db).require(entity_id)
        return ChangeRecordRepository(db).list_for_entity(entity_id, limit=limit, offset=offset)

    def unreported_changes(
        self,
        db: Session,
        *,
        entity_id: uuid.UUID | None = None,
        limit: int = 100,
    ) -> list[ChangeRecord]:
        return ChangeRecordRepository(db).list_unreported(entity_id=entity_id, limit=limit)

    def mark_reported(self, db: Session, change_record_ids: Sequence[uuid.UUID]) -> int:
        updated = ChangeRecordRepository(db).mark_reported(change_record_ids)
        db.commit()
        return updated

    def reviews(self, db: Session, entity_id: uuid.UUID, *, limit: int = 100) -> list[ReviewRecord]:
        TrackedEntityRepository(db).require(entity_id)
        return ReviewRepository(db).list_for_entity(entity_id, limit=limit)

    # -- module settings ---------------------------------------------------

    def get_settings(self, db: Session, module_id: str) -> ModuleSettings:
        row = SettingsStore(db).get(module_id)
        db.commit()
        return row

    def update_settings(
        self,
        db: Session,
        module_id: str,
        partial: Mapping[str, Any],
        *,
        name: str | None = None,
    ) -> ModuleSettings:
        try:
            row = SettingsStore(db).put(module_id, partial, name=name)
            db.commit()
        except Exception:
            db.rollback()
            raise
        return row


@lru_cache(maxsize=1)
def get_research_service() -> ResearchService:
    """
    Build and cache the research service.
    """

    return ResearchService()
