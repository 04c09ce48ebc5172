"""
db/models/tracked_entity.py

External target (competitor website) under monitoring.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Index, String, Text, false, true
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from db.models.change_record import ChangeRecord
    from db.models.research_run import ResearchRun
    from db.models.review_record import ReviewRecord
    from db.models.snapshot import Snapshot


class TrackedEntity(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "tracked_entities"

    owner_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Identifier of the owning user in the account service",
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=true(),
    )
    is_selected: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
        comment="Included in scheduled change tracking",
    )
    review_source_url: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Resolved third-party review page, cached after first discovery",
    )

    snapshots: Mapped[list[Snapshot]] = relationship(
        back_populates="tracked_entity",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    change_records: Mapped[list[ChangeRecord]] = relationship(
        back_populates="tracked_entity",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    review_records: Mapped[list[ReviewRecord]] = relationship(
        back_populates="tracked_entity",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    research_runs: Mapped[list[ResearchRun]] = relationship(
        back_populates="tracked_entity",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_tracked_entities_owner_id", "owner_id"),
        Index("ix_tracked_entities_selected_active", "is_selected", "is_active"),
    )

    def __repr__(self) -> str:
        return f"TrackedEntity(id={self.id!s}, name={self.name!r})"
