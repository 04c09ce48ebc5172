"""
db/models/research_run.py

Append-only audit record of one research operation and its outcome.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, JSONType, UUIDPrimaryKeyMixin, utc_now

if TYPE_CHECKING:
    from db.models.tracked_entity import TrackedEntity


class ResearchRun(Base, UUIDPrimaryKeyMixin):
    __tablename__ = "research_runs"

    tracked_entity_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("tracked_entities.id", ondelete="CASCADE"),
        nullable=False,
    )
    module_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="website-changes, trustpilot, ...",
    )
    run_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )
    result: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType,
        nullable=True,
        comment="Structured result payload of the operation",
    )
    changes_made: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    change_details: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Human-readable outcome summary",
    )

    tracked_entity: Mapped[TrackedEntity] = relationship(back_populates="research_runs")

    __table_args__ = (
        Index(
            "ix_research_runs_tracked_entity_id_run_date",
            "tracked_entity_id",
            "run_date",
        ),
        Index("ix_research_runs_module_id", "module_id"),
    )
