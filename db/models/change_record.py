"""
db/models/change_record.py

Word-level diff and classification for one snapshot transition.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, false
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, JSONType, UUIDPrimaryKeyMixin, utc_now

if TYPE_CHECKING:
    from db.models.snapshot import Snapshot
    from db.models.tracked_entity import TrackedEntity


class ChangeClassification:
    INITIAL = "initial"
    UPDATE = "update"
    NONE = "none"


class ChangeRecord(Base, UUIDPrimaryKeyMixin):
    __tablename__ = "change_records"

    tracked_entity_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("tracked_entities.id", ondelete="CASCADE"),
        nullable=False,
    )
    snapshot_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("snapshots.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        comment="Snapshot this transition produced",
    )
    previous_snapshot_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("snapshots.id", ondelete="SET NULL"),
        nullable=True,
    )
    segments: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType,
        nullable=False,
        default=list,
        comment="Ordered added/removed word segments",
    )
    classification: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="initial, update, none",
    )
    reported: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )
    detected_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )

    tracked_entity: Mapped[TrackedEntity] = relationship(back_populates="change_records")
    snapshot: Mapped[Snapshot] = relationship(foreign_keys=[snapshot_id])

    __table_args__ = (
        Index(
            "ix_change_records_tracked_entity_id_detected_at",
            "tracked_entity_id",
            "detected_at",
        ),
        Index("ix_change_records_reported", "reported"),
    )
