"""
app/repositories/review_repository.py

Persistence layer for third-party review records.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from db.models.review_record import ReviewRecord

_DEDUPE_COLUMNS = ("tracked_entity_id", "external_review_id")


class InsertOutcome(str, enum.Enum):
    INSERTED = "inserted"
    ALREADY_EXISTED = "already_existed"


@dataclass(frozen=True)
class ReviewInput:
    """
    One parsed review entry, prior to persistence.
    """

    external_review_id: str
    rating: float
    body: str
    author: str
    published_at: datetime
    source_url: str
    title: str | None = None


class ReviewRepository:
    """
    Idempotent review writes keyed by (tracked_entity_id, external_review_id).
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def insert_if_absent(
        self,
        entity_id: uuid.UUID,
        review: ReviewInput,
    ) -> tuple[InsertOutcome, ReviewRecord | None]:
        """
        Insert with ON CONFLICT DO NOTHING and report which branch happened.

        Returns the new row when inserted, otherwise None.
        """

        payload: dict[str, Any] = {
            "id": uuid.uuid4(),
            "tracked_entity_id": entity_id,
            "external_review_id": review.external_review_id,
            "rating": review.rating,
            "title": review.title,
            "body": review.body,
            "author": review.author,
            "published_at": review.published_at,
            "source_url": review.source_url,
        }
        stmt = (
            self._insert_construct()(ReviewRecord)
            .values(payload)
            .on_conflict_do_nothing(index_elements=list(_DEDUPE_COLUMNS))
            .returning(ReviewRecord.id)
        )
        inserted_id = self._session.scalars(stmt).first()
        if inserted_id is None:
            return InsertOutcome.ALREADY_EXISTED, None
        return InsertOutcome.INSERTED, self._session.get(ReviewRecord, inserted_id)

    def list_for_entity(self, entity_id: uuid.UUID, *, limit: int = 100) -> list[ReviewRecord]:
        """
        Reviews for one entity, most recently published first.
        """

        stmt = (
            select(ReviewRecord)
            .where(ReviewRecord.tracked_entity_id == entity_id)
            .order_by(ReviewRecord.published_at.desc())
            .limit(max(1, limit))
        )
        return list(self._session.scalars(stmt).all())

    def _insert_construct(self) -> Any:
        dialect = self._session.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert
        if dialect == "sqlite":
            return sqlite.insert
        raise RuntimeError(f"insert_if_absent is not supported on dialect {dialect!r}")
