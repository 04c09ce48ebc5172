"""
tests/test_logging_utils.py

Structured event encoding.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone

from app.errors import FetchError
from app.repositories.review_repository import InsertOutcome
from app.tracking.logging_utils import log_event

logger = logging.getLogger("tests.events")


def _last_event(caplog) -> dict:
    return json.loads(caplog.records[-1].getMessage())


class TestLogEvent:
    def test_fields_are_encoded(self, caplog) -> None:
        entity_id = uuid.uuid4()
        with caplog.at_level(logging.INFO, logger="tests.events"):
            log_event(
                logger,
                logging.INFO,
                "snapshot_written",
                entity_id=entity_id,
                captured_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
                outcome=InsertOutcome.INSERTED,
                previous=None,
            )

        assert _last_event(caplog) == {
            "event": "snapshot_written",
            "entity_id": str(entity_id),
            "captured_at": "2024-01-01T00:00:00+00:00",
            "outcome": InsertOutcome.INSERTED.value,
        }

    def test_exception_fields(self, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="tests.events"):
            log_event(
                logger,
                logging.WARNING,
                "fetch_failed",
                exc=FetchError("timed out", url="https://acme.test"),
            )

        payload = _last_event(caplog)
        assert payload["error"] == "timed out"
        assert payload["error_type"] == "FetchError"
        assert payload["error_code"] == "fetch_failed"
        assert payload["url"] == "https://acme.test"

    def test_disabled_level_emits_nothing(self, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="tests.events"):
            log_event(logger, logging.DEBUG, "noise", detail="x")

        assert caplog.records == []
