"""HTTP client for the external summarization/extraction webhooks.

The analysis itself is opaque: this module only posts a validated request
and validates the response against the contracts in ``contracts.py``.
"""

from __future__ import annotations

import logging

import requests
from pydantic import BaseModel

from app.analysis.contracts import (
    ResponseT,
    ReviewAnalysisRequest,
    ReviewAnalysisResponse,
    WebsiteAnalysisRequest,
    WebsiteAnalysisResponse,
    parse_response,
)
from app.config import AnalysisSettings, get_analysis_settings
from app.errors import ConfigurationError, FetchError, ParseError
from app.tracking.logging_utils import log_event

logger = logging.getLogger(__name__)


class AnalysisClient:
    """Posts analysis requests to configured webhook endpoints."""

    def __init__(
        self,
        *,
        settings: AnalysisSettings | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._settings = settings or get_analysis_settings()
        self._session = session or requests.Session()

    def analyze_website(
        self,
        request: WebsiteAnalysisRequest,
        *,
        timeout_seconds: float | None = None,
    ) -> WebsiteAnalysisResponse:
        """Request current content and a change verdict for a website.

        Args:
            request: URL plus the previously captured content, if any.
            timeout_seconds: Optional caller timeout overriding the default.

        Returns:
            The validated website analysis response.
        """
        endpoint = self._require_endpoint(
            self._settings.website_endpoint,
            "ANALYSIS_WEBSITE_ENDPOINT",
        )
        return self._post(
            endpoint,
            request,
            WebsiteAnalysisResponse,
            source="website_analysis",
            timeout_seconds=timeout_seconds,
        )

    def extract_reviews(
        self,
        request: ReviewAnalysisRequest,
        *,
        timeout_seconds: float | None = None,
    ) -> ReviewAnalysisResponse:
        """Request structured reviews for a review-source page.

        Args:
            request: The review-source URL to extract from.
            timeout_seconds: Optional caller timeout overriding the default.

        Returns:
            The validated list of reviews.
        """
        endpoint = self._require_endpoint(
            self._settings.reviews_endpoint,
            "ANALYSIS_REVIEWS_ENDPOINT",
        )
        return self._post(
            endpoint,
            request,
            ReviewAnalysisResponse,
            source="review_extraction",
            timeout_seconds=timeout_seconds,
        )

    @staticmethod
    def _require_endpoint(endpoint: str | None, env_name: str) -> str:
        if not endpoint:
            raise ConfigurationError(f"{env_name} is not configured.")
        return endpoint

    def _post(
        self,
        endpoint: str,
        request: BaseModel,
        response_model: type[ResponseT],
        *,
        source: str,
        timeout_seconds: float | None,
    ) -> ResponseT:
        timeout = timeout_seconds if timeout_seconds is not None else self._settings.timeout_seconds
        try:
            response = self._session.post(
                endpoint,
                json=request.model_dump(mode="json", by_alias=True),
                timeout=timeout,
            )
        except requests.RequestException as exc:
            raise FetchError(f"{source}: request failed: {exc}", url=endpoint) from exc

        if not response.ok:
            log_event(
                logger,
                logging.ERROR,
                "analysis_request_failed",
                source=source,
                status_code=response.status_code,
            )
            raise FetchError(
                f"{source}: non-success status {response.status_code}",
                url=endpoint,
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise ParseError(f"{source}: response was not valid JSON.") from exc
        return parse_response(response_model, payload, source=source)
