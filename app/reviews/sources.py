"""
Review sources: where review entries for a review-source URL come from.
"""

from __future__ import annotations

from typing import Protocol

from app.analysis.client import AnalysisClient
from app.analysis.contracts import ReviewAnalysisRequest
from app.repositories.review_repository import ReviewInput
from app.reviews.parser import ReviewPageParser
from app.tracking.fetcher import ContentFetcher


class ReviewSource(Protocol):
    name: str

    def load(self, review_source_url: str, *, timeout_seconds: float | None = None) -> list[ReviewInput]:
        ...


class HtmlReviewSource:
    """Fetches the review page and parses it directly."""

    name = "html"

    def __init__(self, *, fetcher: ContentFetcher | None = None) -> None:
        self._fetcher = fetcher or ContentFetcher()

    def load(self, review_source_url: str, *, timeout_seconds: float | None = None) -> list[ReviewInput]:
        html = self._fetcher.fetch(review_source_url, timeout_seconds=timeout_seconds)
        return ReviewPageParser.parse(html, page_url=review_source_url)


class AnalysisReviewSource:
    """Delegates extraction to the external analysis webhook."""

    name = "analysis"

    def __init__(
        self,
        *,
        client: AnalysisClient | None = None,
        model: str | None = None,
        prompt: str | None = None,
    ) -> None:
        self._client = client or AnalysisClient()
        self._model = model
        self._prompt = prompt

    def load(self, review_source_url: str, *, timeout_seconds: float | None = None) -> list[ReviewInput]:
        response = self._client.extract_reviews(
            ReviewAnalysisRequest(
                review_source_url=review_source_url,
                model=self._model,
                prompt=self._prompt,
            ),
            timeout_seconds=timeout_seconds,
        )
        return [
            ReviewInput(
                external_review_id=review.review_id,
                rating=review.rating,
                title=review.title,
                body=review.content,
                author=review.author,
                published_at=review.published_at,
                source_url=review.review_url or f"{review_source_url}#{review.review_id}",
            )
            for review in response.reviews
        ]
