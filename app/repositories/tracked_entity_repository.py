"""
app/repositories/tracked_entity_repository.py

Persistence for monitored competitor targets.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from app.errors import NotFoundError
from db.models.tracked_entity import TrackedEntity


class TrackedEntityRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create(
        self,
        *,
        owner_id: str,
        name: str,
        url: str,
        is_selected: bool = False,
        is_active: bool = True,
        review_source_url: str | None = None,
    ) -> TrackedEntity:
        entity = TrackedEntity(
            owner_id=owner_id,
            name=name.strip(),
            url=url.strip(),
            is_selected=is_selected,
            is_active=is_active,
            review_source_url=review_source_url,
        )
        self._session.add(entity)
        self._session.flush()
        return entity

    def get(self, entity_id: uuid.UUID) -> TrackedEntity | None:
        return self._session.get(TrackedEntity, entity_id)

    def require(self, entity_id: uuid.UUID) -> TrackedEntity:
        entity = self.get(entity_id)
        if entity is None:
            raise NotFoundError(f"Tracked entity not found: {entity_id}")
        return entity

    def lock(self, entity_id: uuid.UUID) -> TrackedEntity:
        """
        Load the entity with a row lock held until the transaction ends.

        Serializes concurrent read-compare-write sequences for one entity.
        """

        stmt = (
            select(TrackedEntity)
            .where(TrackedEntity.id == entity_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        entity = self._session.scalars(stmt).one_or_none()
        if entity is None:
            raise NotFoundError(f"Tracked entity not found: {entity_id}")
        return entity

    def list_scheduled(self) -> list[TrackedEntity]:
        """
        Selected entities, oldest first. ``is_active`` does not exclude an entity.
        """

        stmt: Select[tuple[TrackedEntity]] = (
            select(TrackedEntity)
            .where(TrackedEntity.is_selected.is_(True))
            .order_by(TrackedEntity.created_at.asc(), TrackedEntity.id.asc())
        )
        return list(self._session.scalars(stmt).all())

    def set_review_source_url(self, entity: TrackedEntity, review_source_url: str) -> None:
        entity.review_source_url = review_source_url
        self._session.flush()

    def delete(self, entity_id: uuid.UUID) -> None:
        """
        Delete the entity; snapshots, change records, reviews and runs cascade.
        """

        entity = self.require(entity_id)
        self._session.delete(entity)
        self._session.flush()
