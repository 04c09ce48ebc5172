"""
db/models/review_record.py

Deduplicated third-party review ingested for a tracked entity.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Float, ForeignKey, Index, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from db.models.tracked_entity import TrackedEntity

REVIEW_DEDUPE_CONSTRAINT = "uq_review_records_entity_external_id"


class ReviewRecord(Base, UUIDPrimaryKeyMixin):
    __tablename__ = "review_records"

    tracked_entity_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("tracked_entities.id", ondelete="CASCADE"),
        nullable=False,
    )
    external_review_id: Mapped[str] = mapped_column(String(255), nullable=False)
    rating: Mapped[float] = mapped_column(Float, nullable=False)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    author: Mapped[str] = mapped_column(String(255), nullable=False)
    published_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    source_url: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    tracked_entity: Mapped[TrackedEntity] = relationship(back_populates="review_records")

    __table_args__ = (
        UniqueConstraint(
            "tracked_entity_id",
            "external_review_id",
            name=REVIEW_DEDUPE_CONSTRAINT,
        ),
        Index(
            "ix_review_records_tracked_entity_id_published_at",
            "tracked_entity_id",
            "published_at",
        ),
    )
