"""Exception taxonomy shared by the data layer, providers and API."""

from __future__ import annotations

import math
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    RATE_LIMITED = "rate_limited"
    QUOTA_EXCEEDED = "quota_exceeded"
    PERMISSION_DENIED = "permission_denied"
    BAD_REQUEST = "bad_request"
    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"
    NETWORK = "network"
    TIMEOUT = "timeout"
    MALFORMED = "malformed"
    MISSING_KEY = "missing_key"
    UNKNOWN = "unknown"


class ThrivelogError(Exception):
    """Base class for all Thrivelog errors."""


class NotAuthenticatedError(ThrivelogError):
    def __init__(self, message: str = "Not logged in") -> None:
        super().__init__(message)


class NotFoundError(ThrivelogError):
    """Raised when a row addressed by id does not exist for the user."""


class MalformedResponseError(ThrivelogError):
    """Raised when provider output cannot be parsed into the expected shape."""


class StorageError(ThrivelogError):
    """Raised when reflection media cannot be uploaded or removed."""


class ProviderError(ThrivelogError):
    """An outbound AI provider call failed."""

    def __init__(
        self,
        provider: str,
        kind: ErrorKind,
        message: str,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.kind = kind
        self.status_code = status_code

    @property
    def message(self) -> str:
        return str(self)


class RateLimitExceeded(ThrivelogError):
    """Raised by the client-side throttle before any provider is called."""

    def __init__(self, provider: str, wait_seconds: float, reason: str = "window") -> None:
        self.provider = provider
        self.wait_seconds = wait_seconds
        self.reason = reason
        seconds = max(1, math.ceil(wait_seconds))
        if reason == "interval":
            message = f"Please wait {seconds} seconds before making another request."
        else:
            message = (
                f"Rate limit exceeded. Please wait {seconds} seconds before trying again."
            )
        super().__init__(message)


_STATUS_KINDS = {
    400: ErrorKind.BAD_REQUEST,
    401: ErrorKind.PERMISSION_DENIED,
    402: ErrorKind.QUOTA_EXCEEDED,
    403: ErrorKind.PERMISSION_DENIED,
    404: ErrorKind.NOT_FOUND,
    408: ErrorKind.TIMEOUT,
    429: ErrorKind.RATE_LIMITED,
}

# Wording carries the substrings that callers match on for advisories.
_KIND_MESSAGES = {
    ErrorKind.RATE_LIMITED: "rate limit exceeded, temporarily unavailable due to high usage",
    ErrorKind.QUOTA_EXCEEDED: "quota exceeded",
    ErrorKind.PERMISSION_DENIED: "access denied, check the API key and permissions",
    ErrorKind.BAD_REQUEST: "invalid request",
    ErrorKind.NOT_FOUND: "model or resource not found",
    ErrorKind.UNAVAILABLE: "service is currently unavailable",
    ErrorKind.TIMEOUT: "request timeout",
    ErrorKind.NETWORK: "network error",
}


def error_kind_for_status(status_code: Optional[int]) -> ErrorKind:
    """Map an HTTP status code from a provider to an ``ErrorKind``."""

    if status_code is None:
        return ErrorKind.UNKNOWN
    if status_code in _STATUS_KINDS:
        return _STATUS_KINDS[status_code]
    if status_code >= 500:
        return ErrorKind.UNAVAILABLE
    return ErrorKind.UNKNOWN


def provider_error_for_status(
    provider: str, status_code: int, detail: str = "", label: Optional[str] = None
) -> ProviderError:
    """Build a ``ProviderError`` for a non-2xx provider response.

    ``provider`` is the lowercase id carried on the error; ``label`` is the
    display name used in the message and defaults to the id.
    """

    kind = error_kind_for_status(status_code)
    summary = _KIND_MESSAGES.get(kind, "unexpected error")
    message = f"{label or provider} API error: {status_code} - {summary}"
    if detail:
        message = f"{message} ({detail})"
    return ProviderError(provider, kind, message, status_code=status_code)
