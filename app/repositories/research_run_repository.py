"""
app/repositories/research_run_repository.py

Append-only audit trail of research operations.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from db.base import utc_now
from db.models.research_run import ResearchRun


class ResearchModule:
    WEBSITE_CHANGES = "website-changes"
    WEBSITE_RESEARCH = "website-research"
    TRUSTPILOT = "trustpilot"


class ResearchRunRecorder:
    """
    Records research outcomes. Rows are never updated or deleted here.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def record(
        self,
        *,
        entity_id: uuid.UUID,
        module_id: str,
        result: dict[str, Any] | None,
        changes_made: bool | None = None,
        change_details: str | None = None,
        run_date: datetime | None = None,
    ) -> ResearchRun:
        run = ResearchRun(
            id=uuid.uuid4(),
            tracked_entity_id=entity_id,
            module_id=module_id,
            result=result,
            changes_made=changes_made,
            change_details=change_details,
            run_date=run_date or utc_now(),
        )
        self._session.add(run)
        self._session.flush()
        return run

    def history(
        self,
        entity_id: uuid.UUID,
        *,
        module_id: str | None = None,
        limit: int = 50,
    ) -> list[ResearchRun]:
        """
        Runs for one entity, newest first.
        """

        stmt: Select[tuple[ResearchRun]] = select(ResearchRun).where(
            ResearchRun.tracked_entity_id == entity_id
        )
        if module_id:
            stmt = stmt.where(ResearchRun.module_id == module_id)
        stmt = stmt.order_by(ResearchRun.run_date.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())
