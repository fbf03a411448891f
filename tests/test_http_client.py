"""Tests for the shared HTTP helpers."""

import io
from unittest.mock import MagicMock, patch

import requests

from common import http_client


def fake_response(status, text="", chunks=()):
    response = MagicMock()
    response.status_code = status
    response.headers = {"Content-Type": "text/xml"}
    response.text = text
    response.iter_content.return_value = list(chunks)
    response.__enter__.return_value = response
    return response


class TestRobustGet:
    """Status handling and response caching."""

    def test_success_is_cached(self):
        """Test successful responses are served from the cache."""
        with patch("common.http_client.requests.get", return_value=fake_response(200, "body")) as get:
            assert http_client.robust_get("https://repo.example.org/a")[0] == 200
            status, headers, text = http_client.robust_get("https://repo.example.org/a")
        assert (status, text) == (200, "body")
        assert headers["Content-Type"] == "text/xml"
        assert get.call_count == 1

    def test_server_errors_not_cached(self):
        """Test server errors are fetched again."""
        with patch("common.http_client.requests.get", return_value=fake_response(503)) as get:
            http_client.robust_get("https://repo.example.org/b")
            http_client.robust_get("https://repo.example.org/b")
        assert get.call_count == 2

    def test_transport_failure_reports_status_zero(self):
        """Test a connection failure reports status 0."""
        with patch("common.http_client.requests.get", side_effect=requests.ConnectionError("refused")):
            status, headers, text = http_client.robust_get("https://repo.example.org/c")
        assert status == 0
        assert headers == {}
        assert "refused" in text


class TestStreamDownload:
    """Streaming bodies into a sink."""

    def test_body_written(self):
        """Test a 200 body is streamed into the sink."""
        sink = io.BytesIO()
        response = fake_response(200, chunks=[b"ab", b"", b"cd"])
        with patch("common.http_client.requests.get", return_value=response):
            assert http_client.stream_download("https://repo.example.org/x.jar", sink) == (200, None)
        assert sink.getvalue() == b"abcd"

    def test_not_found_writes_nothing(self):
        """Test a non-200 response writes nothing."""
        sink = io.BytesIO()
        with patch("common.http_client.requests.get", return_value=fake_response(404, chunks=[b"x"])):
            assert http_client.stream_download("https://repo.example.org/y.jar", sink) == (404, None)
        assert sink.getvalue() == b""

    def test_timeout(self):
        """Test a timeout reports status 0."""
        with patch("common.http_client.requests.get", side_effect=requests.Timeout()):
            assert http_client.stream_download("https://repo.example.org/z.jar", io.BytesIO()) == (0, "timeout")
