"""
app/api/routers package marker.
"""

from app.api.routers.changes import router as changes_router
from app.api.routers.research import router as research_router
from app.api.routers.reviews import router as reviews_router
from app.api.routers.settings import router as settings_router
from app.api.routers.tracking import router as tracking_router

__all__ = [
    "changes_router",
    "research_router",
    "reviews_router",
    "settings_router",
    "tracking_router",
]
