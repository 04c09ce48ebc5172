"""
Pipeline exception taxonomy.

On-demand operations let FetchError, ParseError and ConfigurationError reach
the caller; batch iteration catches them per entity and logs them.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for tracking and ingestion failures."""

    code = "pipeline_error"


class FetchError(PipelineError):
    """Raised on network failure, timeout, or a non-success HTTP status."""

    code = "fetch_failed"

    def __init__(self, message: str, *, url: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ParseError(PipelineError):
    """Raised when an external payload does not match its contract."""

    code = "parse_failed"


class NotFoundError(PipelineError):
    """Raised when a referenced tracked entity or module does not exist."""

    code = "not_found"


class ConflictError(PipelineError):
    """Raised when a duplicate review key is written outside insert_if_absent."""

    code = "conflict"


class ConfigurationError(PipelineError):
    """Raised when a required external endpoint is not configured."""

    code = "configuration_error"
