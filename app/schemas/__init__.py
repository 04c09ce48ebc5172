"""
app/schemas package marker.
"""

from app.schemas.research import (
    ChangeRecordResponse,
    ModuleSettingsResponse,
    ModuleSettingsUpdateRequest,
    ResearchRunResponse,
    ReviewIngestionResponse,
    ReviewRecordResponse,
    TrackingOutcomeResponse,
    TrackingStatusResponse,
)

__all__ = [
    "ChangeRecordResponse",
    "ModuleSettingsResponse",
    "ModuleSettingsUpdateRequest",
    "ResearchRunResponse",
    "ReviewIngestionResponse",
    "ReviewRecordResponse",
    "TrackingOutcomeResponse",
    "TrackingStatusResponse",
]
