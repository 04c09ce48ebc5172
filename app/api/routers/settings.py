"""
app/api/routers/settings.py

Per-module configuration endpoints.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_scheduler
from app.scheduler.jobs import reschedule_module
from app.schemas.research import ModuleSettingsResponse, ModuleSettingsUpdateRequest
from app.services.research_service import ResearchService, get_research_service
from db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/{module_id}", response_model=ModuleSettingsResponse)
def get_module_settings(
    module_id: str,
    db: Session = Depends(get_db),
    research_service: ResearchService = Depends(get_research_service),
) -> ModuleSettingsResponse:
    """
    Stored settings for a module, materializing defaults on first read.
    """

    return ModuleSettingsResponse.model_validate(research_service.get_settings(db, module_id))


@router.put("/{module_id}", response_model=ModuleSettingsResponse)
def update_module_settings(
    module_id: str,
    body: ModuleSettingsUpdateRequest,
    db: Session = Depends(get_db),
    research_service: ResearchService = Depends(get_research_service),
    scheduler: BackgroundScheduler | None = Depends(get_scheduler),
) -> ModuleSettingsResponse:
    """
    Merge a partial update; a changed schedule is applied to the running job.
    """

    partial = body.model_dump(exclude={"name"}, exclude_none=True)
    try:
        row = research_service.update_settings(db, module_id, partial, name=body.name)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc

    if "schedule" in partial:
        reschedule_module(scheduler, module_id, row.value["schedule"])
    return ModuleSettingsResponse.model_validate(row)
