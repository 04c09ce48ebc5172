"""
app/api/routers/changes.py

Change record read and acknowledgement endpoints.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.schemas.research import ChangeRecordResponse, MarkReportedRequest, MarkReportedResponse
from app.services.research_service import ResearchService, get_research_service
from db.session import get_db

router = APIRouter(tags=["changes"])


@router.get("/entities/{entity_id}/changes", response_model=list[ChangeRecordResponse])
def list_changes(
    entity_id: uuid.UUID,
    limit: int = Query(default=20, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    research_service: ResearchService = Depends(get_research_service),
) -> list[ChangeRecordResponse]:
    """
    Change records for one entity, newest first.
    """

    records = research_service.change_history(db, entity_id, limit=limit, offset=offset)
    return [ChangeRecordResponse.model_validate(record) for record in records]


@router.get("/changes/unreported", response_model=list[ChangeRecordResponse])
def list_unreported_changes(
    entity_id: uuid.UUID | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
    research_service: ResearchService = Depends(get_research_service),
) -> list[ChangeRecordResponse]:
    records = research_service.unreported_changes(db, entity_id=entity_id, limit=limit)
    return [ChangeRecordResponse.model_validate(record) for record in records]


@router.post("/changes/mark-reported", response_model=MarkReportedResponse)
def mark_changes_reported(
    body: MarkReportedRequest,
    db: Session = Depends(get_db),
    research_service: ResearchService = Depends(get_research_service),
) -> MarkReportedResponse:
    updated = research_service.mark_reported(db, body.change_record_ids)
    return MarkReportedResponse(updated=updated)
