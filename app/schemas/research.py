"""
app/schemas/research.py

Response and request schemas for tracking, research and review endpoints.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _ORMResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class DiffSegmentResponse(BaseModel):
    type: str
    value: str


class TrackingOutcomeResponse(BaseModel):
    """
    API response model for one change tracking run.
    """

    entity_id: uuid.UUID
    state: str
    result: str | None = None
    classification: str | None = None
    snapshot_id: uuid.UUID | None = None
    change_record_id: uuid.UUID | None = None
    research_run_id: uuid.UUID | None = None
    segments: list[DiffSegmentResponse] = Field(default_factory=list)


class ChangeRecordResponse(_ORMResponse):
    id: uuid.UUID
    tracked_entity_id: uuid.UUID
    snapshot_id: uuid.UUID
    previous_snapshot_id: uuid.UUID | None = None
    classification: str
    segments: list[dict[str, Any]] = Field(default_factory=list)
    reported: bool
    detected_at: datetime


class MarkReportedRequest(BaseModel):
    change_record_ids: list[uuid.UUID] = Field(..., min_length=1)


class MarkReportedResponse(BaseModel):
    updated: int = Field(..., ge=0)


class ResearchRunResponse(_ORMResponse):
    id: uuid.UUID
    tracked_entity_id: uuid.UUID
    module_id: str
    run_date: datetime
    result: dict[str, Any] | None = None
    changes_made: bool | None = None
    change_details: str | None = None


class ReviewRecordResponse(_ORMResponse):
    id: uuid.UUID
    tracked_entity_id: uuid.UUID
    external_review_id: str
    rating: float
    title: str | None = None
    body: str
    author: str
    published_at: datetime
    source_url: str


class ReviewIngestionRequest(BaseModel):
    review_source_url: str | None = None
    timeout_seconds: float | None = Field(default=None, gt=0)


class ReviewIngestionResponse(BaseModel):
    """
    API response model for one review ingestion.
    """

    entity_id: uuid.UUID
    status: str
    review_source_url: str | None = None
    inserted: list[ReviewRecordResponse] = Field(default_factory=list)
    skipped_duplicates: int = Field(0, ge=0)
    research_run_id: uuid.UUID | None = None
    message: str = ""


class ModuleSettingsResponse(_ORMResponse):
    module_id: str
    name: str
    value: dict[str, Any]
    updated_at: datetime | None = None


class ModuleSettingsUpdateRequest(BaseModel):
    """
    Partial update; omitted fields keep their stored value.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    model: str | None = None
    prompt_template: str | None = None
    schedule: str | None = None
    enabled: bool | None = None


class TrackingJobStatus(BaseModel):
    job_id: str
    name: str
    module_id: str
    schedule: str
    enabled: bool
    scheduled: bool
    running: bool
    next_run_time: datetime | None = None


class TrackingStatusResponse(BaseModel):
    scheduler_running: bool
    jobs: list[TrackingJobStatus] = Field(default_factory=list)
