"""
app/api/routers/reviews.py

Review ingestion and listing endpoints.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.schemas.research import (
    ReviewIngestionRequest,
    ReviewIngestionResponse,
    ReviewRecordResponse,
)
from app.services.research_service import ResearchService, get_research_service
from db.session import get_db

router = APIRouter(tags=["reviews"])


@router.post("/entities/{entity_id}/reviews/ingest", response_model=ReviewIngestionResponse)
def ingest_reviews(
    entity_id: uuid.UUID,
    body: ReviewIngestionRequest | None = None,
    db: Session = Depends(get_db),
    research_service: ResearchService = Depends(get_research_service),
) -> ReviewIngestionResponse:
    """
    Ingest reviews for one entity; an unresolvable source is not an error.
    """

    request = body or ReviewIngestionRequest()
    result = research_service.ingest_reviews(
        db,
        entity_id,
        review_source_url=request.review_source_url,
        timeout_seconds=request.timeout_seconds,
    )
    return ReviewIngestionResponse(
        entity_id=result.entity_id,
        status=result.status.value,
        review_source_url=result.review_source_url,
        inserted=[ReviewRecordResponse.model_validate(record) for record in result.inserted],
        skipped_duplicates=result.skipped_duplicates,
        research_run_id=result.research_run_id,
        message=result.message,
    )


@router.get("/entities/{entity_id}/reviews", response_model=list[ReviewRecordResponse])
def list_reviews(
    entity_id: uuid.UUID,
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
    research_service: ResearchService = Depends(get_research_service),
) -> list[ReviewRecordResponse]:
    records = research_service.reviews(db, entity_id, limit=limit)
    return [ReviewRecordResponse.model_validate(record) for record in records]
