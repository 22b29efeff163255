"""
Retry helper for wrapping fallible gateway calls.

The core never retries on its own; callers opt in by wrapping an
operation, e.g. ``with_retry(lambda: payment.get_transaction_status(order_id))``.
"""

import logging
import time
from typing import Callable, Optional, TypeVar

from tenacity import (
    Retrying,
    RetryCallState,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_fixed,
    wait_incrementing,
)

from .errors import ConfigurationError, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar('T')

NON_RETRYABLE = (ValidationError, ConfigurationError)


def with_retry(
    operation: Callable[[], T],
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: bool = True,
    on_retry: Optional[Callable[[BaseException, int], None]] = None,
    sleep: Callable[[float], None] = time.sleep
) -> T:
    """
    Call ``operation`` until it succeeds or the attempts run out.

    Args:
        operation: Zero-argument callable
        max_attempts: Total number of calls, including the first
        delay: Seconds to wait before the second attempt
        backoff: Wait ``delay * attempt`` (linear) instead of a fixed ``delay``
        on_retry: Called as ``on_retry(error, attempt)`` before each wait
        sleep: Sleep function, replaceable in tests

    Returns:
        The operation's result

    Raises:
        The last error raised by ``operation``. ValidationError and
        ConfigurationError are raised immediately.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    def before_sleep(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception()
        logger.info(
            "Retrying failed operation",
            extra={'attempt': retry_state.attempt_number, 'error': str(error)}
        )
        if on_retry is not None:
            on_retry(error, retry_state.attempt_number)

    wait = wait_incrementing(start=delay, increment=delay) if backoff else wait_fixed(delay)

    retrying = Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait,
        retry=retry_if_not_exception_type(NON_RETRYABLE),
        before_sleep=before_sleep,
        sleep=sleep,
        reraise=True,
    )
    return retrying(operation)
