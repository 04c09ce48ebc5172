"""
Review ingestion components.
"""

from app.reviews.ingester import IngestionStatus, ReviewIngester, ReviewIngestionResult
from app.reviews.parser import ReviewPageParser
from app.reviews.source_resolver import ReviewSourceResolver, construct_review_url, find_review_link
from app.reviews.sources import AnalysisReviewSource, HtmlReviewSource, ReviewSource

__all__ = [
    "AnalysisReviewSource",
    "HtmlReviewSource",
    "IngestionStatus",
    "ReviewIngester",
    "ReviewIngestionResult",
    "ReviewPageParser",
    "ReviewSource",
    "ReviewSourceResolver",
    "construct_review_url",
    "find_review_link",
]
