import pytest

from scholar.core.errors import (
    ConfigurationError,
    ErrorKind,
    NetworkError,
    RateLimitError,
    RequestCancelled,
    classify_error,
)


class StatusError(Exception):
    def __init__(self, message, status_code):
        super().__init__(message)
        self.status_code = status_code


class GenaiLikeError(Exception):
    def __init__(self, message, code, status):
        super().__init__(message)
        self.code = code
        self.status = status


class Response:
    status_code = 503


class WrappedResponseError(Exception):
    response = Response()


@pytest.mark.parametrize(
    "exc, kind",
    [
        (RateLimitError("slow down"), ErrorKind.RATE_LIMITED),
        (NetworkError("x"), ErrorKind.NETWORK),
        (ConfigurationError("missing key"), ErrorKind.CONFIGURATION),
        (RequestCancelled("stop"), ErrorKind.CANCELLED),
        (StatusError("nope", 401), ErrorKind.AUTHENTICATION),
        (StatusError("too many", 429), ErrorKind.RATE_LIMITED),
        (StatusError("boom", 502), ErrorKind.SERVER),
        (GenaiLikeError("exhausted", 429, "RESOURCE_EXHAUSTED"), ErrorKind.RATE_LIMITED),
        (WrappedResponseError("upstream"), ErrorKind.SERVER),
        (RuntimeError("API key not valid"), ErrorKind.AUTHENTICATION),
        (RuntimeError("You exceeded your current quota"), ErrorKind.RATE_LIMITED),
        (RuntimeError("500 Internal error"), ErrorKind.SERVER),
        (RuntimeError("Failed to fetch"), ErrorKind.NETWORK),
        (TimeoutError(), ErrorKind.NETWORK),
        (ValueError("bad input"), ErrorKind.OTHER),
    ],
)
def test_classify_error(exc, kind):
    assert classify_error(exc) is kind


def test_only_transient_kinds_are_retryable():
    retryable = {k for k in ErrorKind if k.retryable}
    assert retryable == {ErrorKind.RATE_LIMITED, ErrorKind.SERVER, ErrorKind.NETWORK}


def test_scholar_error_keeps_code():
    err = RateLimitError("slow", code=429)
    assert err.code == 429
    assert str(err) == "slow"
