"""
Structured log events for tracking, ingestion and scheduled jobs.

Every event is one JSON object per line: ``event`` plus the caller's fields,
sorted by key. Passing ``exc=`` attaches the failure description, including
the pipeline error code and URL when the exception carries them.
"""

from __future__ import annotations

import enum
import json
import logging
from datetime import datetime
from typing import Any


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    return str(value)


def _error_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "error": str(exc),
        "error_type": type(exc).__name__,
        "error_code": getattr(exc, "code", None),
        "url": getattr(exc, "url", None),
    }
    return {key: value for key, value in fields.items() if value}


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    *,
    exc: BaseException | None = None,
    **fields: Any,
) -> None:
    """
    Emit one structured event. Fields whose value is None are left out.
    """

    if not logger.isEnabledFor(level):
        return

    payload: dict[str, Any] = {key: value for key, value in fields.items() if value is not None}
    if exc is not None:
        payload.update(_error_fields(exc))
    payload["event"] = event
    logger.log(level, json.dumps(payload, default=_encode, sort_keys=True))
