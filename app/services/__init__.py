"""
app/services package marker.
"""

from app.services.research_service import ResearchService, get_research_service

__all__ = [
    "ResearchService",
    "get_research_service",
]
