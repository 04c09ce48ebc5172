"""
tests/test_analysis_contracts.py

Analysis webhook contracts and client error mapping. HTTP is mocked.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from app.analysis.client import AnalysisClient
from app.analysis.contracts import (
    ReviewAnalysisResponse,
    WebsiteAnalysisRequest,
    WebsiteAnalysisResponse,
    parse_response,
)
from app.config import AnalysisSettings
from app.errors import ConfigurationError, FetchError, ParseError


def _response(status_code: int = 200, payload=None, json_error: bool = False) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    if json_error:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = payload
    return response


@pytest.fixture()
def http() -> MagicMock:
    return MagicMock(spec=requests.Session)


@pytest.fixture()
def client(http) -> AnalysisClient:
    settings = AnalysisSettings(
        website_endpoint="https://hooks.test/website",
        reviews_endpoint="https://hooks.test/reviews",
    )
    return AnalysisClient(settings=settings, session=http)


class TestParseResponse:
    def test_valid_website_payload(self) -> None:
        parsed = parse_response(
            WebsiteAnalysisResponse,
            {"content": "Home", "changeFlag": True, "changeDetails": "New pricing", "extra": 1},
            source="website_analysis",
        )
        assert parsed.change_flag is True
        assert parsed.change_details == "New pricing"

    @pytest.mark.parametrize(
        "payload",
        [
            {"content": "Home"},
            {"content": "Home", "changeFlag": "yes"},
            {"changeFlag": False},
            ["not", "an", "object"],
            None,
        ],
    )
    def test_malformed_website_payload(self, payload) -> None:
        with pytest.raises(ParseError):
            parse_response(WebsiteAnalysisResponse, payload, source="website_analysis")

    def test_review_rating_out_of_range(self) -> None:
        payload = {
            "reviews": [
                {
                    "reviewId": "1",
                    "rating": 9,
                    "content": "x",
                    "author": "a",
                    "publishedAt": "2024-01-01T00:00:00Z",
                }
            ]
        }
        with pytest.raises(ParseError, match="rating"):
            parse_response(ReviewAnalysisResponse, payload, source="review_extraction")


class TestAnalysisClient:
    def test_posts_aliased_request(self, client, http) -> None:
        http.post.return_value = _response(payload={"content": "Home", "changeFlag": False})

        result = client.analyze_website(
            WebsiteAnalysisRequest(url="https://acme.test", previous_content="Old", model="gpt-4"),
            timeout_seconds=5,
        )

        assert result.change_flag is False
        _, kwargs = http.post.call_args
        assert kwargs["json"]["previousContent"] == "Old"
        assert kwargs["json"]["kind"] == "website"
        assert kwargs["timeout"] == 5

    def test_missing_endpoint(self, http) -> None:
        client = AnalysisClient(settings=AnalysisSettings(), session=http)
        with pytest.raises(ConfigurationError):
            client.analyze_website(WebsiteAnalysisRequest(url="https://acme.test"))
        http.post.assert_not_called()

    def test_non_success_status(self, client, http) -> None:
        http.post.return_value = _response(status_code=500)
        with pytest.raises(FetchError) as excinfo:
            client.analyze_website(WebsiteAnalysisRequest(url="https://acme.test"))
        assert excinfo.value.status_code == 500

    def test_network_error(self, client, http) -> None:
        http.post.side_effect = requests.ConnectionError("refused")
        with pytest.raises(FetchError):
            client.analyze_website(WebsiteAnalysisRequest(url="https://acme.test"))

    def test_invalid_json(self, client, http) -> None:
        http.post.return_value = _response(json_error=True)
        with pytest.raises(ParseError):
            client.analyze_website(WebsiteAnalysisRequest(url="https://acme.test"))
