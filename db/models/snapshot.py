"""
db/models/snapshot.py

Immutable captured copy of a tracked entity's page content.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, UUIDPrimaryKeyMixin, utc_now

if TYPE_CHECKING:
    from db.models.tracked_entity import TrackedEntity


class Snapshot(Base, UUIDPrimaryKeyMixin):
    __tablename__ = "snapshots"

    tracked_entity_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("tracked_entities.id", ondelete="CASCADE"),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    fingerprint: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="sha256 hex digest of content",
    )
    captured_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )

    tracked_entity: Mapped[TrackedEntity] = relationship(back_populates="snapshots")

    __table_args__ = (
        Index(
            "ix_snapshots_tracked_entity_id_captured_at",
            "tracked_entity_id",
            "captured_at",
        ),
    )
