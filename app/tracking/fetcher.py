"""
Raw page content retrieval.
"""

from __future__ import annotations

import logging

import requests

from app.config import FetchSettings, get_fetch_settings
from app.errors import FetchError
from app.tracking.logging_utils import log_event

logger = logging.getLogger(__name__)


class ContentFetcher:
    """
    Single-attempt GET of a URL returning the response text.

    Retry policy belongs to the caller: every failure surfaces as FetchError.
    """

    def __init__(
        self,
        *,
        settings: FetchSettings | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._settings = settings or get_fetch_settings()
        self._session = session or requests.Session()
        self._headers = {"User-Agent": self._settings.user_agent}

    def fetch(self, url: str, *, timeout_seconds: float | None = None) -> str:
        timeout = timeout_seconds if timeout_seconds is not None else self._settings.timeout_seconds
        try:
            response = self._session.get(
                url,
                headers=self._headers,
                timeout=timeout,
                allow_redirects=True,
            )
        except requests.Timeout as exc:
            raise FetchError(f"Timed out after {timeout}s fetching {url}", url=url) from exc
        except requests.RequestException as exc:
            raise FetchError(f"Request to {url} failed: {exc}", url=url) from exc

        if not response.ok:
            log_event(
                logger,
                logging.WARNING,
                "fetch_non_success_status",
                url=url,
                status_code=response.status_code,
            )
            raise FetchError(
                f"Non-success status {response.status_code} fetching {url}",
                url=url,
                status_code=response.status_code,
            )
        return response.text
