"""
Parser for review pages that mark entries with ``data-*`` attributes.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone

from bs4 import BeautifulSoup, Tag

from app.repositories.review_repository import ReviewInput
from app.tracking.logging_utils import log_event

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


class ReviewPageParser:
    """
    Extracts ``[data-review-id]`` entries from a review page.

    Entries missing id, rating, body or author are skipped. A zero or
    out-of-range rating counts as missing.
    """

    @classmethod
    def parse(cls, html: str, *, page_url: str) -> list[ReviewInput]:
        soup = BeautifulSoup(html, "html.parser")
        reviews: list[ReviewInput] = []
        skipped = 0
        for node in soup.select("[data-review-id]"):
            review = cls._parse_entry(node, page_url=page_url)
            if review is None:
                skipped += 1
                continue
            reviews.append(review)

        if skipped:
            log_event(logger, logging.INFO, "review_entries_skipped", page_url=page_url, skipped=skipped)
        return reviews

    @classmethod
    def _parse_entry(cls, node: Tag, *, page_url: str) -> ReviewInput | None:
        review_id = str(node.get("data-review-id") or "").strip()
        rating = cls._parse_rating(node)
        body = cls._text(node, "[data-content]")
        author = cls._text(node, "[data-author]")
        if not review_id or rating is None or not body or not author:
            return None

        return ReviewInput(
            external_review_id=review_id,
            rating=rating,
            title=cls._text(node, "[data-title]") or None,
            body=body,
            author=author,
            published_at=cls._parse_date(node),
            source_url=f"{page_url}#{review_id}",
        )

    @staticmethod
    def _parse_rating(node: Tag) -> float | None:
        rating_node = node.select_one("[data-rating]")
        if rating_node is None:
            return None
        raw = str(rating_node.get("data-rating") or "").strip()
        try:
            value = float(raw)
        except ValueError:
            return None
        if not 0.0 < value <= 5.0:
            return None
        return value

    @staticmethod
    def _parse_date(node: Tag) -> datetime:
        date_node = node.select_one("[data-date]")
        raw = str(date_node.get("datetime") or "").strip() if date_node is not None else ""
        if raw:
            try:
                parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
            except ValueError:
                parsed = None
            if parsed is not None:
                return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
        return datetime.now(timezone.utc)

    @staticmethod
    def _text(node: Tag, selector: str) -> str:
        child = node.select_one(selector)
        if child is None:
            return ""
        return _WHITESPACE.sub(" ", child.get_text(" ", strip=True)).strip()
