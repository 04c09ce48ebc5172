"""
Review-source URL resolution for a tracked entity.

Order: supplied URL, cached URL on the entity, a review-site link found on
the entity homepage, then a URL constructed from the entity domain.
"""

from __future__ import annotations

import logging
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from app.config import FetchSettings, get_fetch_settings
from app.errors import FetchError
from app.tracking.fetcher import ContentFetcher
from app.tracking.logging_utils import log_event
from db.models.tracked_entity import TrackedEntity

logger = logging.getLogger(__name__)

REVIEW_SITE_HOST = "trustpilot.com"


def _is_review_page(url: str, *, base_url: str) -> bool:
    site = (urlparse(base_url).hostname or REVIEW_SITE_HOST).lower().removeprefix("www.")
    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()
    on_review_site = host == site or host.endswith(f".{site}")
    return on_review_site and parsed.path.startswith("/review/")


def find_review_link(html: str, *, base_url: str) -> str | None:
    """
    First homepage anchor pointing at a review-site company page, made absolute.

    Anchors that mention the review site but do not resolve to a
    ``/review/<domain>`` page are ignored.
    """

    soup = BeautifulSoup(html, "html.parser")
    for anchor in soup.find_all("a", href=True):
        href = str(anchor.get("href", "")).strip()
        text = anchor.get_text(" ", strip=True).lower()
        if not href or (REVIEW_SITE_HOST not in href.lower() and "trustpilot" not in text):
            continue
        candidate = urljoin(f"{base_url}/", href)
        if _is_review_page(candidate, base_url=base_url):
            return candidate
    return None


def construct_review_url(entity_url: str, *, base_url: str) -> str | None:
    """
    ``<base>/review/<domain>`` with any leading ``www.`` stripped.

    Returns None when the entity URL has no hostname.
    """

    candidate = entity_url.strip()
    if "://" not in candidate:
        candidate = f"https://{candidate}"
    hostname = urlparse(candidate).hostname
    if not hostname:
        return None
    domain = hostname.removeprefix("www.")
    return f"{base_url}/review/{domain}"


class ReviewSourceResolver:
    def __init__(
        self,
        *,
        fetcher: ContentFetcher | None = None,
        settings: FetchSettings | None = None,
    ) -> None:
        self._settings = settings or get_fetch_settings()
        self._fetcher = fetcher or ContentFetcher(settings=self._settings)

    def resolve(
        self,
        entity: TrackedEntity,
        *,
        supplied_url: str | None = None,
        timeout_seconds: float | None = None,
    ) -> str | None:
        if supplied_url and supplied_url.strip():
            return supplied_url.strip()
        if entity.review_source_url:
            return entity.review_source_url

        base_url = self._settings.review_site_base_url
        try:
            homepage = self._fetcher.fetch(entity.url, timeout_seconds=timeout_seconds)
        except FetchError as exc:
            # Homepage discovery is best-effort; fall through to construction.
            log_event(
                logger,
                logging.INFO,
                "review_link_discovery_failed",
                entity_id=entity.id,
                exc=exc,
            )
        else:
            discovered = find_review_link(homepage, base_url=base_url)
            if discovered:
                return discovered

        return construct_review_url(entity.url, base_url=base_url)
