"""
app/reviews/ingester.py

Review ingestion for one tracked entity.

Resolves the review-source URL, loads entries from a ReviewSource, writes
each with insert_if_absent, and appends a ``trustpilot`` ResearchRun. All
writes for one ingestion commit together.
"""

from __future__ import annotations

import enum
import logging
import uuid
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from app.analysis.client import AnalysisClient
from app.analysis.prompts import render_prompt
from app.config import AnalysisSettings, get_analysis_settings
from app.repositories.module_settings_repository import SettingsStore
from app.repositories.research_run_repository import ResearchModule, ResearchRunRecorder
from app.repositories.review_repository import InsertOutcome, ReviewRepository
from app.repositories.tracked_entity_repository import TrackedEntityRepository
from app.reviews.source_resolver import ReviewSourceResolver
from app.reviews.sources import AnalysisReviewSource, HtmlReviewSource, ReviewSource
from app.tracking.logging_utils import log_event
from db.models.review_record import ReviewRecord
from db.models.tracked_entity import TrackedEntity

logger = logging.getLogger(__name__)


class IngestionStatus(str, enum.Enum):
    INGESTED = "ingested"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class ReviewIngestionResult:
    entity_id: uuid.UUID
    status: IngestionStatus
    review_source_url: str | None = None
    inserted: list[ReviewRecord] = field(default_factory=list)
    skipped_duplicates: int = 0
    research_run_id: uuid.UUID | None = None
    message: str = ""

    @property
    def inserted_count(self) -> int:
        return len(self.inserted)


class ReviewIngester:
    """
    Ingests reviews for one entity at a time.

    Without an injected ``source`` the source is chosen per ingestion: the
    analysis webhook when ``ANALYSIS_REVIEWS_ENDPOINT`` is configured, using
    the ``trustpilot`` module's model and rendered prompt template, otherwise
    the review page is fetched and parsed directly.
    """

    def __init__(
        self,
        *,
        resolver: ReviewSourceResolver | None = None,
        source: ReviewSource | None = None,
        analysis_client: AnalysisClient | None = None,
        analysis_settings: AnalysisSettings | None = None,
    ) -> None:
        self._resolver = resolver or ReviewSourceResolver()
        self._source = source
        self._analysis_client = analysis_client
        self._analysis_settings = analysis_settings
        self._html_source: HtmlReviewSource | None = None

    def select_source(self, db: Session, entity: TrackedEntity, review_source_url: str) -> ReviewSource:
        if self._source is not None:
            return self._source

        settings = self._analysis_settings or get_analysis_settings()
        if not settings.reviews_endpoint:
            if self._html_source is None:
                self._html_source = HtmlReviewSource()
            return self._html_source

        module = SettingsStore(db).get_value(ResearchModule.TRUSTPILOT)
        return AnalysisReviewSource(
            client=self._analysis_client or AnalysisClient(settings=settings),
            model=module.model,
            prompt=render_prompt(
                module.prompt_template,
                review_source_url=review_source_url,
                url=entity.url,
                name=entity.name,
            ),
        )

    def ingest(
        self,
        db: Session,
        entity_id: uuid.UUID,
        *,
        review_source_url: str | None = None,
        timeout_seconds: float | None = None,
    ) -> ReviewIngestionResult:
        """
        Ingest reviews for one entity and commit.

        An unresolvable review source is reported as UNRESOLVED without
        writing anything. Fetch and parse errors roll back and propagate.
        """

        entities = TrackedEntityRepository(db)
        entity = entities.require(entity_id)

        resolved_url = self._resolver.resolve(
            entity,
            supplied_url=review_source_url,
            timeout_seconds=timeout_seconds,
        )
        if resolved_url is None:
            log_event(logger, logging.INFO, "review_source_unresolved", entity_id=entity_id, url=entity.url)
            return ReviewIngestionResult(
                entity_id=entity_id,
                status=IngestionStatus.UNRESOLVED,
                message=f"Could not resolve a review source for {entity.url}.",
            )

        try:
            if entity.review_source_url != resolved_url:
                entities.set_review_source_url(entity, resolved_url)

            source = self.select_source(db, entity, resolved_url)
            entries = source.load(resolved_url, timeout_seconds=timeout_seconds)

            repository = ReviewRepository(db)
            inserted: list[ReviewRecord] = []
            skipped = 0
            for entry in entries:
                outcome, record = repository.insert_if_absent(entity_id, entry)
                if outcome is InsertOutcome.INSERTED and record is not None:
                    inserted.append(record)
                else:
                    skipped += 1

            message = f"Found {len(entries)} review(s): {len(inserted)} new, {skipped} already stored."
            run = ResearchRunRecorder(db).record(
                entity_id=entity_id,
                module_id=ResearchModule.TRUSTPILOT,
                result={
                    "review_source_url": resolved_url,
                    "source": source.name,
                    "found": len(entries),
                    "inserted": len(inserted),
                    "skipped_duplicates": skipped,
                    "review_ids": [record.external_review_id for record in inserted],
                },
                changes_made=bool(inserted),
                change_details=message,
            )
            db.commit()
        except Exception as exc:
            db.rollback()
            log_event(
                logger,
                logging.WARNING,
                "review_ingestion_failed",
                entity_id=entity_id,
                review_source_url=resolved_url,
                exc=exc,
            )
            raise

        log_event(
            logger,
            logging.INFO,
            "review_ingestion_completed",
            entity_id=entity_id,
            review_source_url=resolved_url,
            inserted=len(inserted),
            skipped_duplicates=skipped,
        )
        return ReviewIngestionResult(
            entity_id=entity_id,
            status=IngestionStatus.INGESTED,
            review_source_url=resolved_url,
            inserted=inserted,
            skipped_duplicates=skipped,
            research_run_id=run.id,
            message=message,
        )
