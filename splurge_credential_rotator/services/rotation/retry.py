"""Bounded exponential backoff for transient collaborator failures."""

import logging
import time
from typing import Callable, TypeVar

from splurge_credential_rotator.exceptions import (
    ProviderUnavailableError,
    StoreUnavailableError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_ERRORS = (ProviderUnavailableError, StoreUnavailableError)


def backoff_delay(attempt: int, *, base_delay: float, max_delay: float) -> float:
    """Delay before retry number ``attempt`` (1-based): base * 2^(attempt-1), capped."""
    return min(max_delay, base_delay * (2 ** (attempt - 1)))


def retry_call(
    func: Callable[[], T],
    *,
    description: str,
    max_attempts: int,
    base_delay: float,
    max_delay: float,
    retry_on: tuple[type[BaseException], ...] = TRANSIENT_ERRORS,
    sleep: Callable[[float], None] = time.sleep
) -> T:
    """Call ``func`` until it succeeds or the attempt budget is exhausted.

    Only exceptions in ``retry_on`` are retried; anything else propagates
    immediately. The last transient error is re-raised on exhaustion.

    Args:
        func: Zero-argument callable to invoke
        description: Short label used in log messages
        max_attempts: Total number of attempts (at least 1)
        base_delay: Delay before the first retry, in seconds
        max_delay: Upper bound on any single delay, in seconds
        retry_on: Exception types considered transient
        sleep: Sleep function (injectable for tests)

    Returns:
        The value returned by ``func``
    """
    attempt = 1
    while True:
        try:
            return func()
        except retry_on as e:
            if attempt >= max_attempts:
                logger.warning(f"{description} failed after {attempt} attempt(s): {e}", extra={
                    "attempts": attempt,
                    "event": "retry_exhausted",
                })
                raise
            delay = backoff_delay(attempt, base_delay=base_delay, max_delay=max_delay)
            logger.info(f"{description} failed (attempt {attempt}/{max_attempts}), retrying in {delay:.2f}s: {e}", extra={
                "attempts": attempt,
                "event": "retry_scheduled",
            })
            sleep(delay)
            attempt += 1
