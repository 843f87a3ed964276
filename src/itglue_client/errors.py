"""
Error taxonomy for the IT Glue client.

Every API failure is an ``ITGlueError`` carrying an ``ErrorKind``. Policy code
(retry decisions, CLI exit codes) dispatches on ``error.kind``; the subclasses
exist so callers can still write ``except ITGlueValidationError``.
"""

from enum import Enum
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from itglue_client.models import JsonApiErrorObject


class ErrorKind(str, Enum):
    AUTHENTICATION = "authentication"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    RATE_LIMIT = "rate_limit"
    SERVER = "server"
    NETWORK = "network"
    TIMEOUT = "timeout"
    GENERIC = "generic"


class ITGlueError(Exception):
    """Base exception for IT Glue API errors."""

    kind: ErrorKind = ErrorKind.GENERIC

    def __init__(
        self,
        message: str,
        status_code: int = 0,
        response: Any = None,
        url: str | None = None,
        method: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response
        self.url = url
        self.method = method

    def __str__(self) -> str:
        base = self.message
        if self.status_code:
            base = f"{base} (HTTP {self.status_code})"
        if self.url:
            base = f"{base} [{self.method or 'GET'} {self.url}]"
        return base


class ITGlueAuthenticationError(ITGlueError):
    """Raised when authentication fails (401/403)."""

    kind = ErrorKind.AUTHENTICATION


class ITGlueNotFoundError(ITGlueError):
    """Raised when a resource is not found (404)."""

    kind = ErrorKind.NOT_FOUND


class ITGlueValidationError(ITGlueError):
    """Raised when the API rejects a payload (422)."""

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str,
        errors: list[JsonApiErrorObject] | None = None,
        response: Any = None,
        url: str | None = None,
        method: str | None = None,
    ):
        super().__init__(message, 422, response, url, method)
        self.errors = errors or []

    def error_messages(self) -> list[str]:
        return [error.format() for error in self.errors]

    def __str__(self) -> str:
        base = super().__str__()
        messages = self.error_messages()
        if not messages:
            return base
        lines = "\n".join(f"  - {m}" for m in messages)
        return f"{base}\nValidation errors:\n{lines}"


class ITGlueRateLimitError(ITGlueError):
    """Raised when the API rate limit is exceeded (429)."""

    kind = ErrorKind.RATE_LIMIT

    def __init__(
        self,
        message: str,
        retry_after: float | None = None,
        response: Any = None,
        url: str | None = None,
        method: str | None = None,
    ):
        super().__init__(message, 429, response, url, method)
        self.retry_after = retry_after


class ITGlueServerError(ITGlueError):
    """Raised on server errors (5xx)."""

    kind = ErrorKind.SERVER


class ITGlueNetworkError(ITGlueError):
    """Raised when the connection itself fails."""

    kind = ErrorKind.NETWORK

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        url: str | None = None,
        method: str | None = None,
    ):
        super().__init__(message, 0, None, url, method)
        self.cause = cause


class ITGlueTimeoutError(ITGlueError):
    """Raised when a request exceeds the configured timeout."""

    kind = ErrorKind.TIMEOUT

    def __init__(
        self,
        message: str,
        timeout: float,
        url: str | None = None,
        method: str | None = None,
    ):
        super().__init__(message, 0, None, url, method)
        self.timeout = timeout


class UnsupportedOperationError(Exception):
    """Raised when a resource does not support the requested operation."""


RETRYABLE_KINDS = frozenset({ErrorKind.RATE_LIMIT, ErrorKind.SERVER})


def is_retryable_error(exception: BaseException) -> bool:
    """Only rate-limit and server errors are worth another attempt."""
    return isinstance(exception, ITGlueError) and exception.kind in RETRYABLE_KINDS


def parse_error_objects(body: Any) -> list[JsonApiErrorObject]:
    """Extract the JSON:API ``errors`` array from a response body."""
    if not isinstance(body, dict):
        return []
    raw = body.get("errors")
    if not isinstance(raw, list):
        return []
    errors = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        try:
            errors.append(JsonApiErrorObject.model_validate(item))
        except PydanticValidationError:
            continue
    return errors


def _parse_retry_after(headers: Any) -> float | None:
    if not headers:
        return None
    value = headers.get("retry-after")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


def error_from_response(
    status_code: int,
    body: Any,
    url: str | None = None,
    method: str | None = None,
    headers: Any = None,
) -> ITGlueError:
    """Map a non-2xx response onto the error taxonomy."""
    errors = parse_error_objects(body)
    message = None
    if errors:
        message = errors[0].detail or errors[0].title
    if not message and isinstance(body, dict) and isinstance(body.get("message"), str):
        message = body["message"]

    if status_code in (401, 403):
        return ITGlueAuthenticationError(
            message or "Authentication failed. Check your API key.",
            status_code, body, url, method,
        )

    if status_code == 404:
        return ITGlueNotFoundError(
            message or "Resource not found.", 404, body, url, method
        )

    if status_code == 422:
        return ITGlueValidationError(
            message or "Validation failed.", errors, body, url, method
        )

    if status_code == 429:
        return ITGlueRateLimitError(
            message or "Rate limit exceeded.",
            _parse_retry_after(headers), body, url, method,
        )

    if status_code >= 500:
        return ITGlueServerError(
            message or "Server error occurred.", status_code, body, url, method
        )

    return ITGlueError(
        message or f"HTTP error {status_code}", status_code, body, url, method
    )
