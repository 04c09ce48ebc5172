"""
tests/test_fetcher.py

ContentFetcher error mapping with a mocked requests session.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from app.config import FetchSettings
from app.errors import FetchError
from app.tracking.fetcher import ContentFetcher


@pytest.fixture()
def http() -> MagicMock:
    return MagicMock(spec=requests.Session)


@pytest.fixture()
def fetcher(http) -> ContentFetcher:
    return ContentFetcher(settings=FetchSettings(timeout_seconds=7, user_agent="TestBot/1.0"), session=http)


class TestContentFetcher:
    def test_returns_text_with_user_agent(self, fetcher, http) -> None:
        http.get.return_value = MagicMock(ok=True, status_code=200, text="<html>hi</html>")

        assert fetcher.fetch("https://acme.test") == "<html>hi</html>"
        _, kwargs = http.get.call_args
        assert kwargs["headers"]["User-Agent"] == "TestBot/1.0"
        assert kwargs["timeout"] == 7

    def test_caller_timeout_overrides_default(self, fetcher, http) -> None:
        http.get.return_value = MagicMock(ok=True, status_code=200, text="")
        fetcher.fetch("https://acme.test", timeout_seconds=2)
        assert http.get.call_args.kwargs["timeout"] == 2

    def test_non_success_status(self, fetcher, http) -> None:
        http.get.return_value = MagicMock(ok=False, status_code=404, text="missing")
        with pytest.raises(FetchError) as excinfo:
            fetcher.fetch("https://acme.test")
        assert excinfo.value.status_code == 404
        assert excinfo.value.url == "https://acme.test"

    @pytest.mark.parametrize("error", [requests.Timeout("slow"), requests.ConnectionError("down")])
    def test_request_errors(self, fetcher, http, error) -> None:
        http.get.side_effect = error
        with pytest.raises(FetchError):
            fetcher.fetch("https://acme.test")
