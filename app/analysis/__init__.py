"""
External analysis boundary exports.
"""

from app.analysis.client import AnalysisClient
from app.analysis.prompts import render_prompt
from app.analysis.contracts import (
    ReviewAnalysisRequest,
    ReviewAnalysisResponse,
    ReviewPayload,
    WebsiteAnalysisRequest,
    WebsiteAnalysisResponse,
)

__all__ = [
    "AnalysisClient",
    "ReviewAnalysisRequest",
    "ReviewAnalysisResponse",
    "ReviewPayload",
    "WebsiteAnalysisRequest",
    "WebsiteAnalysisResponse",
    "render_prompt",
]
