"""
app/api/routers/research.py

Research run history and on-demand website research.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.schemas.research import ResearchRunResponse
from app.services.research_service import ResearchService, get_research_service
from db.session import get_db

router = APIRouter(tags=["research"])


@router.get("/entities/{entity_id}/research-runs", response_model=list[ResearchRunResponse])
def list_research_runs(
    entity_id: uuid.UUID,
    module_id: str | None = Query(default=None, description="Optional module filter"),
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
    research_service: ResearchService = Depends(get_research_service),
) -> list[ResearchRunResponse]:
    """
    Research runs for one entity, newest first.
    """

    runs = research_service.research_history(db, entity_id, module_id=module_id, limit=limit)
    return [ResearchRunResponse.model_validate(run) for run in runs]


@router.post("/entities/{entity_id}/research/website", response_model=ResearchRunResponse)
def run_website_research(
    entity_id: uuid.UUID,
    timeout_seconds: float | None = Query(default=None, gt=0),
    db: Session = Depends(get_db),
    research_service: ResearchService = Depends(get_research_service),
) -> ResearchRunResponse:
    run = research_service.run_website_research(db, entity_id, timeout_seconds=timeout_seconds)
    return ResearchRunResponse.model_validate(run)
