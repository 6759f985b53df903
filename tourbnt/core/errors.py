"""
API error type and error codes.

Route handlers and services raise ``ApiError``; the server registers a
handler that renders it as the standard error envelope.
"""

from __future__ import annotations

from typing import Any, Optional

VALIDATION_ERROR = "VALIDATION_ERROR"
AUTH_ERROR = "AUTH_ERROR"
FORBIDDEN_ERROR = "FORBIDDEN_ERROR"
NOT_FOUND_ERROR = "NOT_FOUND_ERROR"
METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
CONFLICT_ERROR = "CONFLICT_ERROR"
SERVER_ERROR = "SERVER_ERROR"
RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

DEFAULT_CODES = {
    400: VALIDATION_ERROR,
    401: AUTH_ERROR,
    403: FORBIDDEN_ERROR,
    404: NOT_FOUND_ERROR,
    405: METHOD_NOT_ALLOWED,
    409: CONFLICT_ERROR,
    429: RATE_LIMIT_EXCEEDED,
}


def code_for_status(status_code: int) -> str:
    return DEFAULT_CODES.get(status_code, SERVER_ERROR)


class ApiError(Exception):
    """An error that maps directly onto an HTTP error response.

    Args:
        status_code: HTTP status to answer with
        message: Human readable message
        code: Machine readable code, derived from ``status_code`` when omitted
        errors: Optional structured details (field errors, limits, ...)
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        code: Optional[str] = None,
        errors: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.code = code or code_for_status(status_code)
        self.errors = errors

    def __repr__(self) -> str:
        return f"ApiError(status_code={self.status_code}, code={self.code}, message={self.message!r})"


def bad_request(message: str, code: str = VALIDATION_ERROR, errors: Optional[Any] = None) -> ApiError:
    return ApiError(400, message, code, errors)


def unauthorized(message: str = "Authentication required") -> ApiError:
    return ApiError(401, message, AUTH_ERROR)


def forbidden(message: str = "Access denied", code: str = FORBIDDEN_ERROR) -> ApiError:
    return ApiError(403, message, code)


def not_found(message: str, code: str = NOT_FOUND_ERROR) -> ApiError:
    return ApiError(404, message, code)
