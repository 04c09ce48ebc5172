"""
SQLAlchemy-backed snapshot persistence.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.tracking.diff import DiffSegment
from db.models.change_record import ChangeRecord
from db.models.snapshot import Snapshot


class SnapshotStore:
    """
    Immutable, time-ordered snapshot sequence per tracked entity.

    Writes only flush; the caller owns the transaction so a snapshot and its
    change record commit or roll back together.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def latest_for_entity(self, entity_id: uuid.UUID) -> Snapshot | None:
        stmt = (
            select(Snapshot)
            .where(Snapshot.tracked_entity_id == entity_id)
            .order_by(Snapshot.captured_at.desc())
            .limit(1)
        )
        return self._session.scalars(stmt).first()

    def list_for_entity(self, entity_id: uuid.UUID, *, limit: int = 50) -> list[Snapshot]:
        stmt = (
            select(Snapshot)
            .where(Snapshot.tracked_entity_id == entity_id)
            .order_by(Snapshot.captured_at.desc())
            .limit(max(1, limit))
        )
        return list(self._session.scalars(stmt).all())

    def count_for_entity(self, entity_id: uuid.UUID) -> int:
        stmt = select(func.count()).select_from(Snapshot).where(Snapshot.tracked_entity_id == entity_id)
        return int(self._session.scalar(stmt) or 0)

    def add_snapshot(
        self,
        *,
        entity_id: uuid.UUID,
        content: str,
        fingerprint: str,
        captured_at: datetime,
    ) -> Snapshot:
        snapshot = Snapshot(
            id=uuid.uuid4(),
            tracked_entity_id=entity_id,
            content=content,
            fingerprint=fingerprint,
            captured_at=captured_at,
        )
        self._session.add(snapshot)
        self._session.flush()
        return snapshot

    def add_change_record(
        self,
        *,
        snapshot: Snapshot,
        previous: Snapshot | None,
        segments: Sequence[DiffSegment],
        classification: str,
    ) -> ChangeRecord:
        record = ChangeRecord(
            id=uuid.uuid4(),
            tracked_entity_id=snapshot.tracked_entity_id,
            snapshot_id=snapshot.id,
            previous_snapshot_id=previous.id if previous is not None else None,
            segments=[segment.to_dict() for segment in segments],
            classification=classification,
            reported=False,
            detected_at=snapshot.captured_at,
        )
        self._session.add(record)
        self._session.flush()
        return record
