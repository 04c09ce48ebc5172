"""
app/repositories/change_record_repository.py

Read access to change records and the one-way reported flag.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence

from sqlalchemy import Select, select, update
from sqlalchemy.orm import Session

from db.models.change_record import ChangeRecord


class ChangeRecordRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def list_for_entity(
        self,
        entity_id: uuid.UUID,
        *,
        limit: int = 20,
        offset: int = 0,
    ) -> list[ChangeRecord]:
        """
        One page of change records, newest first.
        """

        stmt: Select[tuple[ChangeRecord]] = (
            select(ChangeRecord)
            .where(ChangeRecord.tracked_entity_id == entity_id)
            .order_by(ChangeRecord.detected_at.desc(), ChangeRecord.id.desc())
            .offset(max(0, offset))
            .limit(max(1, limit))
        )
        return list(self._session.scalars(stmt).all())

    def list_unreported(
        self,
        *,
        entity_id: uuid.UUID | None = None,
        limit: int = 100,
    ) -> list[ChangeRecord]:
        stmt: Select[tuple[ChangeRecord]] = select(ChangeRecord).where(
            ChangeRecord.reported.is_(False)
        )
        if entity_id is not None:
            stmt = stmt.where(ChangeRecord.tracked_entity_id == entity_id)
        stmt = stmt.order_by(ChangeRecord.detected_at.asc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def mark_reported(self, record_ids: Sequence[uuid.UUID]) -> int:
        """
        Set reported to true on unreported records; returns the number flipped.
        """

        if not record_ids:
            return 0

        stmt = (
            update(ChangeRecord)
            .where(
                ChangeRecord.id.in_(list(record_ids)),
                ChangeRecord.reported.is_(False),
            )
            .values(reported=True)
            .execution_options(synchronize_session="fetch")
        )
        result = self._session.execute(stmt)
        return int(result.rowcount or 0)
