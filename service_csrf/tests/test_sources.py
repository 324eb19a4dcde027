"""
Unit tests for token source functions.
"""

from unittest.mock import MagicMock

import pytest
from fastapi import Request

from service_csrf.app.validation import (
    context_token_source,
    form_token_source,
    header_source,
    header_token_source,
    set_context_token,
)


def make_request(body: bytes = b"", content_type: str = "", headers=None) -> Request:
    """Build a Starlette request backed by an in-memory body."""
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    if content_type:
        raw_headers.append((b"content-type", content_type.encode()))
    raw_headers.append((b"content-length", str(len(body)).encode()))

    async def receive():
        return {"type": "http.request", "body": body, "more_body": False}

    scope = {
        "type": "http",
        "method": "POST",
        "path": "/submit",
        "headers": raw_headers,
        "query_string": b"",
    }
    return Request(scope, receive)


class TestHeaderSources:
    """Test cases for header-based sources."""

    def test_default_header(self):
        request = make_request(headers={"X-CSRF-Token": "abc"})

        assert header_token_source(request) == "abc"

    def test_header_is_case_insensitive(self):
        request = make_request(headers={"x-csrf-token": "abc"})

        assert header_token_source(request) == "abc"

    def test_missing_header(self):
        assert header_token_source(make_request()) == ""

    def test_custom_header(self):
        source = header_source("X-XSRF-Token")
        request = make_request(headers={"X-XSRF-Token": "abc", "X-CSRF-Token": "other"})

        assert source(request) == "abc"

    def test_mock_request_headers(self):
        """Test sources work against plain header mappings."""
        request = MagicMock(spec=Request)
        request.headers = {"X-CSRF-Token": "abc"}

        assert header_token_source(request) == "abc"


class TestContextSource:
    """Test cases for the request-scoped source."""

    def test_context_token(self):
        request = make_request()
        set_context_token(request, "abc")

        assert context_token_source(request) == "abc"

    def test_context_token_unset(self):
        assert context_token_source(make_request()) == ""


class TestFormSource:
    """Test cases for the form field source."""

    @pytest.mark.asyncio
    async def test_urlencoded_field(self):
        request = make_request(b"csrf_token=abc&name=x", "application/x-www-form-urlencoded")

        assert await form_token_source("csrf_token")(request) == "abc"

    @pytest.mark.asyncio
    async def test_missing_field(self):
        request = make_request(b"name=x", "application/x-www-form-urlencoded")

        assert await form_token_source("csrf_token")(request) == ""

    @pytest.mark.asyncio
    async def test_non_form_body(self):
        request = make_request(b'{"csrf_token": "abc"}', "application/json")

        assert await form_token_source("csrf_token")(request) == ""

    @pytest.mark.asyncio
    async def test_file_upload_is_ignored(self):
        boundary = "boundary123"
        body = (
            f"--{boundary}\r\n"
            'Content-Disposition: form-data; name="csrf_token"; filename="t.txt"\r\n'
            "Content-Type: text/plain\r\n\r\n"
            "abc\r\n"
            f"--{boundary}--\r\n"
        ).encode()
        request = make_request(body, f"multipart/form-data; boundary={boundary}")

        assert await form_token_source("csrf_token")(request) == ""

    @pytest.mark.asyncio
    async def test_body_remains_readable(self):
        """Test the body is still available after the source parsed it."""
        body = b"csrf_token=abc"
        request = make_request(body, "application/x-www-form-urlencoded")

        await form_token_source("csrf_token")(request)

        assert await request.body() == body

    @pytest.mark.asyncio
    async def test_malformed_multipart(self):
        """Test an unparsable multipart body yields no token instead of an error."""
        request = make_request(b"garbage-without-boundary", "multipart/form-data")

        assert await form_token_source("csrf_token")(request) == ""
