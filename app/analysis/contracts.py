"""Request/response contracts for the external analysis webhooks.

Responses are validated here before anything downstream reads them; any
shape violation becomes a ParseError at the boundary.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from app.errors import ParseError

ResponseT = TypeVar("ResponseT", bound=BaseModel)


class _Request(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    model: str | None = None
    prompt: str | None = None


class WebsiteAnalysisRequest(_Request):
    kind: Literal["website"] = "website"
    url: str = Field(min_length=1)
    previous_content: str | None = Field(default=None, serialization_alias="previousContent")


class ReviewAnalysisRequest(_Request):
    kind: Literal["reviews"] = "reviews"
    review_source_url: str = Field(min_length=1, serialization_alias="reviewSourceUrl")


class _Response(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)


class WebsiteAnalysisResponse(_Response):
    content: str
    change_flag: bool = Field(alias="changeFlag", strict=True)
    change_details: str | None = Field(default=None, alias="changeDetails")


class ReviewPayload(_Response):
    review_id: str = Field(alias="reviewId", min_length=1)
    rating: float = Field(ge=0.0, le=5.0)
    title: str | None = None
    content: str = Field(min_length=1)
    author: str = Field(min_length=1)
    published_at: datetime = Field(alias="publishedAt")
    review_url: str | None = Field(default=None, alias="reviewUrl")

    @field_validator("published_at")
    @classmethod
    def _ensure_timezone(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class ReviewAnalysisResponse(_Response):
    reviews: list[ReviewPayload]


def parse_response(model: type[ResponseT], payload: Any, *, source: str) -> ResponseT:
    """Validate a decoded JSON payload against a response contract.

    Args:
        model: Response contract class.
        payload: Decoded JSON body.
        source: Endpoint label used in the error message.

    Returns:
        The validated, immutable response model.

    Raises:
        ParseError: If the payload is not an object or violates the contract.
    """
    if not isinstance(payload, dict):
        raise ParseError(f"{source}: expected a JSON object, got {type(payload).__name__}.")
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        raise ParseError(f"{source}: response violated contract ({problems}).") from exc
