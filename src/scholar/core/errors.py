from __future__ import annotations

from enum import Enum
from typing import Optional


class ScholarError(RuntimeError):
    """Base error. `code` carries an upstream HTTP-like status when known."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.code = code


class ConfigurationError(ScholarError):
    pass


class AuthenticationError(ScholarError):
    pass


class RateLimitError(ScholarError):
    pass


class ServerError(ScholarError):
    pass


class NetworkError(ScholarError):
    pass


class PermissionDeniedError(ScholarError):
    """Microphone (or other device) access was refused."""


class SessionClosedError(ScholarError):
    pass


class ExtractionError(ScholarError):
    pass


class RequestCancelled(ScholarError):
    pass


class InvalidTransitionError(ScholarError):
    pass


class ErrorKind(str, Enum):
    RATE_LIMITED = "rate_limited"
    SERVER = "server"
    NETWORK = "network"
    AUTHENTICATION = "authentication"
    CONFIGURATION = "configuration"
    CANCELLED = "cancelled"
    OTHER = "other"

    @property
    def retryable(self) -> bool:
        return self in (ErrorKind.RATE_LIMITED, ErrorKind.SERVER, ErrorKind.NETWORK)


_DIRECT_KINDS: dict[type, ErrorKind] = {
    RateLimitError: ErrorKind.RATE_LIMITED,
    ServerError: ErrorKind.SERVER,
    NetworkError: ErrorKind.NETWORK,
    AuthenticationError: ErrorKind.AUTHENTICATION,
    ConfigurationError: ErrorKind.CONFIGURATION,
    RequestCancelled: ErrorKind.CANCELLED,
}

_AUTH_PATTERNS = ("api key", "unauthenticated", "permission denied")
_RATE_PATTERNS = ("429", "rate limit", "quota", "resource_exhausted")
_SERVER_PATTERNS = ("500", "503", "internal", "unavailable")
_NETWORK_PATTERNS = ("network", "fetch", "timeout", "timed out", "connection")


def _status_of(exc: BaseException) -> Optional[int]:
    # google-genai puts the int in `code` and a string in `status`;
    # requests/openai use `status_code`.
    for attr in ("code", "status", "status_code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    response = getattr(exc, "response", None)
    value = getattr(response, "status_code", None)
    if isinstance(value, int):
        return value
    return None


def classify_error(exc: BaseException) -> ErrorKind:
    """Decide which part of the error taxonomy an exception belongs to."""
    for err_type, kind in _DIRECT_KINDS.items():
        if isinstance(exc, err_type):
            return kind

    status = _status_of(exc)
    if status in (401, 403):
        return ErrorKind.AUTHENTICATION
    if status == 429:
        return ErrorKind.RATE_LIMITED
    if status is not None and status >= 500:
        return ErrorKind.SERVER

    msg = str(exc).lower()
    if any(p in msg for p in _AUTH_PATTERNS):
        return ErrorKind.AUTHENTICATION
    if any(p in msg for p in _RATE_PATTERNS):
        return ErrorKind.RATE_LIMITED
    if any(p in msg for p in _SERVER_PATTERNS):
        return ErrorKind.SERVER
    if any(p in msg for p in _NETWORK_PATTERNS):
        return ErrorKind.NETWORK

    if isinstance(exc, (TimeoutError, ConnectionError)):
        return ErrorKind.NETWORK
    return ErrorKind.OTHER
