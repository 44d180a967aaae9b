"""
Unit tests for HTTP response building.
"""

import pytest
import json
from datetime import datetime, timezone, timedelta

from imageserver.http.response import (
    HTTPResponse,
    ResponseBuilder,
    HTTPStatus,
    error_response,
    not_found,
    internal_error,
    method_not_allowed,
    format_http_date,
)


class ClosableChunks:
    """A chunk iterable that records whether it was closed."""

    def __init__(self, chunks):
        self.chunks = chunks
        self.closed = False

    def __iter__(self):
        return iter(self.chunks)

    def close(self):
        self.closed = True


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        """Test status line generation."""
        response = HTTPResponse(status=HTTPStatus.OK)
        assert response.status_line == "HTTP/1.1 200 OK"

        response = HTTPResponse(status=HTTPStatus.NOT_MODIFIED)
        assert response.status_line == "HTTP/1.1 304 Not Modified"

    def test_to_bytes_includes_headers(self):
        """Test that to_bytes includes all headers."""
        response = HTTPResponse(
            status=HTTPStatus.OK,
            headers={"Content-Type": "image/png"},
            body=b"\x89PNG",
        )

        result = response.to_bytes()

        assert result.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"Content-Type: image/png\r\n" in result
        assert b"Content-Length: 4\r\n" in result
        assert b"Date: " in result
        assert b"Server: ImageServer/1.0\r\n" in result
        assert result.endswith(b"\r\n\r\n\x89PNG")

    def test_custom_server_name(self):
        """The Server header comes from the caller."""
        result = HTTPResponse(body=b"x").to_bytes(server_name="Pics/2")
        assert b"Server: Pics/2\r\n" in result

    def test_not_modified_has_no_body_or_length(self):
        """304 carries validators but never a body or Content-Length."""
        response = HTTPResponse(
            status=HTTPStatus.NOT_MODIFIED,
            headers={"ETag": '"1-2"', "Content-Length": "10"},
            body=b"0123456789",
        )

        result = response.to_bytes()

        assert b"ETag: \"1-2\"\r\n" in result
        assert b"Content-Length" not in result
        assert result.endswith(b"\r\n\r\n")

    def test_streamed_head(self):
        """A streamed response serializes only its head."""
        response = HTTPResponse(
            headers={"Content-Length": "6"},
            stream=[b"abc", b"def"],
        )

        head = response.head_bytes()

        assert response.is_streamed
        assert response.content_length == 6
        assert b"Content-Length: 6\r\n" in head
        assert head.endswith(b"\r\n\r\n")
        assert b"abc" not in head

    def test_streamed_requires_length(self):
        """Content-Length must be known before the head is sent."""
        response = HTTPResponse(stream=[b"abc"])

        with pytest.raises(ValueError):
            response.head_bytes()

    def test_streamed_to_bytes_refused(self):
        """to_bytes() is for buffered bodies only."""
        response = HTTPResponse(headers={"Content-Length": "3"}, stream=[b"abc"])

        with pytest.raises(ValueError):
            response.to_bytes()

    def test_close_releases_stream(self):
        """close() is passed on to the stream."""
        chunks = ClosableChunks([b"abc"])
        response = HTTPResponse(headers={"Content-Length": "3"}, stream=chunks)

        response.close()
        assert chunks.closed

        HTTPResponse(body=b"abc").close()  # no stream, no error

    def test_set_header_chaining(self):
        """Test method chaining for headers."""
        response = (HTTPResponse()
            .set_header("X-One", "1")
            .set_header("X-Two", "2"))

        assert response.headers["X-One"] == "1"
        assert response.headers["X-Two"] == "2"


class TestResponseBuilder:
    """Tests for ResponseBuilder class."""

    def test_status(self):
        """Test setting status code."""
        response = ResponseBuilder().status(HTTPStatus.NOT_MODIFIED).build()
        assert response.status == HTTPStatus.NOT_MODIFIED

    def test_status_from_int(self):
        """Plain ints are coerced to HTTPStatus."""
        response = ResponseBuilder().status(404).build()
        assert response.status is HTTPStatus.NOT_FOUND

    def test_json_body(self):
        """Test JSON body encoding."""
        data = {"error": "File not found"}
        response = ResponseBuilder().json(data).build()

        assert response.headers["Content-Type"] == "application/json; charset=utf-8"
        assert json.loads(response.body) == data

    def test_image_body(self):
        """Binary body sets Content-Length."""
        response = ResponseBuilder().content_type("image/gif").body(b"GIF89a").build()

        assert response.headers["Content-Type"] == "image/gif"
        assert response.headers["Content-Length"] == "6"
        assert response.body == b"GIF89a"
        assert not response.is_streamed

    def test_stream_body(self):
        """stream() sets the declared length up front."""
        chunks = [b"a" * 10, b"b" * 5]
        response = ResponseBuilder().stream(chunks, 15).build()

        assert response.is_streamed
        assert response.stream is chunks
        assert response.headers["Content-Length"] == "15"
        assert response.body == b""

    def test_cache_headers(self):
        """Test cache header setting."""
        response = ResponseBuilder().cache(max_age=3600).build()
        assert response.headers["Cache-Control"] == "public, max-age=3600"

        response = ResponseBuilder().cache().build()
        assert response.headers["Cache-Control"] == "public, max-age=86400"

    def test_close_connection(self):
        """Test connection close header."""
        response = ResponseBuilder().close_connection().build()
        assert response.headers["Connection"] == "close"

    def test_method_chaining(self):
        """Test fluent API chaining."""
        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .header("ETag", '"A-B"')
            .headers({"X-One": "1"})
            .body(b"data")
            .build())

        assert response.status == HTTPStatus.OK
        assert response.headers["ETag"] == '"A-B"'
        assert response.headers["X-One"] == "1"


class TestErrorResponses:
    """Tests for the JSON error helpers."""

    def test_error_response_message(self):
        """The message ends up under "error"."""
        response = error_response(HTTPStatus.FORBIDDEN, "Access denied")

        assert response.status == HTTPStatus.FORBIDDEN
        assert json.loads(response.body) == {"error": "Access denied"}

    def test_error_response_default_message(self):
        """Without a message the reason phrase is used."""
        response = error_response(503)
        assert json.loads(response.body) == {"error": "Service Unavailable"}

    def test_helpers(self):
        """Each helper maps to its status."""
        assert not_found("File not found").status == HTTPStatus.NOT_FOUND
        assert b"File not found" in not_found("File not found").body
        assert internal_error().status == HTTPStatus.INTERNAL_SERVER_ERROR

    def test_method_not_allowed(self):
        """405 lists the allowed methods."""
        response = method_not_allowed(["GET", "OPTIONS"])

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "GET, OPTIONS"


class TestHTTPStatus:
    """Tests for HTTPStatus enum."""

    def test_status_phrases(self):
        """Test that all statuses have phrases."""
        for status in HTTPStatus:
            assert status.phrase != "Unknown"

        assert HTTPStatus.OK.phrase == "OK"
        assert HTTPStatus.NOT_MODIFIED.phrase == "Not Modified"
        assert HTTPStatus.FORBIDDEN.phrase == "Forbidden"

    def test_allows_body(self):
        """204 and 304 never carry a body."""
        assert HTTPStatus.OK.allows_body
        assert HTTPStatus.NOT_FOUND.allows_body
        assert not HTTPStatus.NO_CONTENT.allows_body
        assert not HTTPStatus.NOT_MODIFIED.allows_body


class TestFormatHTTPDate:
    """Tests for HTTP date formatting."""

    def test_format(self):
        """Test HTTP date format."""
        dt = datetime(2026, 1, 15, 12, 30, 45, tzinfo=timezone.utc)
        assert format_http_date(dt) == "Thu, 15 Jan 2026 12:30:45 GMT"

    def test_converts_to_utc(self):
        """Aware datetimes in other zones are shifted to GMT."""
        dt = datetime(2026, 1, 15, 14, 30, 45, tzinfo=timezone(timedelta(hours=2)))
        assert format_http_date(dt) == "Thu, 15 Jan 2026 12:30:45 GMT"
