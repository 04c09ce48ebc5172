"""
app/api/routers/tracking.py

On-demand change tracking and scheduler status endpoints.
"""

from __future__ import annotations

import uuid

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.dependencies import get_scheduler
from app.scheduler.jobs import scheduler_status
from app.schemas.research import (
    DiffSegmentResponse,
    TrackingJobStatus,
    TrackingOutcomeResponse,
    TrackingStatusResponse,
)
from app.services.research_service import ResearchService, get_research_service
from db.session import get_db

router = APIRouter(tags=["tracking"])


@router.post("/entities/{entity_id}/track", response_model=TrackingOutcomeResponse)
def track_entity(
    entity_id: uuid.UUID,
    timeout_seconds: float | None = Query(default=None, gt=0, description="Fetch timeout override"),
    db: Session = Depends(get_db),
    research_service: ResearchService = Depends(get_research_service),
) -> TrackingOutcomeResponse:
    """
    Run change tracking for one entity now.
    """

    outcome = research_service.track_entity(db, entity_id, timeout_seconds=timeout_seconds)
    return TrackingOutcomeResponse(
        entity_id=outcome.entity_id,
        state=outcome.state.value,
        result=outcome.result,
        classification=outcome.classification,
        snapshot_id=outcome.snapshot_id,
        change_record_id=outcome.change_record_id,
        research_run_id=outcome.research_run_id,
        segments=[DiffSegmentResponse(**segment.to_dict()) for segment in outcome.segments],
    )


@router.get("/tracking/status", response_model=TrackingStatusResponse)
def tracking_status(
    db: Session = Depends(get_db),
    scheduler: BackgroundScheduler | None = Depends(get_scheduler),
) -> TrackingStatusResponse:
    jobs = scheduler_status(scheduler, db)
    db.commit()
    return TrackingStatusResponse(
        scheduler_running=bool(scheduler is not None and scheduler.running),
        jobs=[TrackingJobStatus(**job) for job in jobs],
    )
