from __future__ import annotations

import logging
import random
import threading
import time
from typing import Callable, Optional, TypeVar

from tenacity import RetryCallState, Retrying, stop_after_attempt

from scholar.core.errors import ErrorKind, RateLimitError, RequestCancelled, classify_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please wait a moment before trying again."


def backoff_delay(
    attempt: int,
    base_delay: float,
    kind: ErrorKind,
    jitter: float = 0.0,
    rate_limit_floor: float = 5.0,
) -> float:
    """
    Delay in seconds before retrying after the failed attempt `attempt` (0-based).
    """
    delay = base_delay * (2 ** attempt) + jitter
    if kind is ErrorKind.RATE_LIMITED:
        delay = max(delay, rate_limit_floor)
    return delay


def with_retry(
    operation: Callable[[], T],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    *,
    jitter: float = 0.5,
    rate_limit_floor: float = 5.0,
    on_network_error: Optional[Callable[[], None]] = None,
    cancel_event: Optional[threading.Event] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Run `operation`, retrying rate-limit, server and network failures with
    exponential backoff. `max_attempts` is the total number of invocations.

    Non-retryable errors are re-raised untouched after the first failure.
    When attempts run out on a rate limit, a RateLimitError with a user-facing
    message is raised instead of the upstream error.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    def _cancelled() -> bool:
        return cancel_event is not None and cancel_event.is_set()

    def _should_retry(state: RetryCallState) -> bool:
        if _cancelled():
            return False
        outcome = state.outcome
        if outcome is None or not outcome.failed:
            return False
        return classify_error(outcome.exception()).retryable

    def _wait(state: RetryCallState) -> float:
        kind = classify_error(state.outcome.exception())
        return backoff_delay(
            state.attempt_number - 1,
            base_delay,
            kind,
            jitter=random.uniform(0, jitter) if jitter > 0 else 0.0,
            rate_limit_floor=rate_limit_floor,
        )

    def _before_sleep(state: RetryCallState) -> None:
        exc = state.outcome.exception()
        kind = classify_error(exc)
        logger.warning(
            "Retry attempt %d/%d after %.0fms (%s): %s",
            state.attempt_number,
            max_attempts - 1,
            state.next_action.sleep * 1000.0,
            kind.value,
            exc,
        )
        if kind is ErrorKind.NETWORK and on_network_error is not None:
            on_network_error()

    if _cancelled():
        raise RequestCancelled("Request cancelled before it started.")

    retrying = Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=_wait,
        retry=_should_retry,
        before_sleep=_before_sleep,
        sleep=sleep,
        reraise=True,
    )

    def _attempt() -> T:
        if _cancelled():
            raise RequestCancelled("Request cancelled.")
        return operation()

    try:
        result = retrying(_attempt)
    except RequestCancelled:
        raise
    except Exception as e:
        if _cancelled():
            raise RequestCancelled("Request cancelled.") from e
        if classify_error(e) is ErrorKind.RATE_LIMITED:
            raise RateLimitError(RATE_LIMIT_MESSAGE, code=429) from e
        raise

    if _cancelled():
        raise RequestCancelled("Request cancelled.")
    return result
