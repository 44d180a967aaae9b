"""
Failure kinds returned by the path resolver and the delivery component.

These are values, not exceptions: each component hands back a result
object whose `error` field is one of these, and the image handler turns it
into a response.
"""

from enum import Enum

from ..http.status_codes import HTTPStatus


class ServeError(Enum):
    BAD_REQUEST = "bad_request"      # empty or unusable path
    FORBIDDEN = "forbidden"          # path escapes the base directory
    NOT_FOUND = "not_found"          # nothing to serve at the path
    IO_FAILURE = "io_failure"        # read failed before the response began

    @property
    def status(self) -> HTTPStatus:
        return _STATUS[self]

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_STATUS = {
    ServeError.BAD_REQUEST: HTTPStatus.BAD_REQUEST,
    ServeError.FORBIDDEN: HTTPStatus.FORBIDDEN,
    ServeError.NOT_FOUND: HTTPStatus.NOT_FOUND,
    ServeError.IO_FAILURE: HTTPStatus.INTERNAL_SERVER_ERROR,
}

_MESSAGES = {
    ServeError.BAD_REQUEST: "File path is required",
    ServeError.FORBIDDEN: "Access denied",
    ServeError.NOT_FOUND: "File not found",
    ServeError.IO_FAILURE: "Error reading file",
}
