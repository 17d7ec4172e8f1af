"""
Bounded exponential backoff for provider calls.

Thin wrapper around ``tenacity`` so that call sites only need to state which
errors are worth retrying.  With the defaults a call is attempted three
times, sleeping 1s and then 2s between attempts.
"""

import functools
import logging
import time
from typing import Any, Callable, TypeVar

from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _log_backoff(retry_state) -> None:
    exc = retry_state.outcome.exception()
    logger.warning(
        "Rate limited (attempt %d): %s. Retrying in %.1fs...",
        retry_state.attempt_number,
        exc,
        retry_state.next_action.sleep,
    )


def _build_retrying(
    is_retryable: Callable[[BaseException], bool],
    max_attempts: int,
    initial_delay: float,
    sleep: Callable[[float], Any],
) -> Retrying:
    return Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=initial_delay, exp_base=2),
        retry=retry_if_exception(is_retryable),
        before_sleep=_log_backoff,
        sleep=sleep,
        reraise=True,
    )


def with_backoff(
    fn: Callable[..., T],
    *args: Any,
    is_retryable: Callable[[BaseException], bool],
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    sleep: Callable[[float], Any] = time.sleep,
    **kwargs: Any,
) -> T:
    """Call ``fn`` and retry it while it raises a retryable error.

    Args:
        fn: The callable to invoke.
        is_retryable: Predicate deciding whether an exception warrants
            another attempt.  Anything else propagates immediately.
        max_attempts: Total number of attempts, including the first.
        initial_delay: Delay in seconds before the second attempt; each
            further delay doubles.
        sleep: Function used to wait between attempts.

    Returns:
        Whatever ``fn`` returns on its first successful attempt.

    Raises:
        The last exception raised by ``fn`` once attempts are exhausted.
    """
    retrying = _build_retrying(is_retryable, max_attempts, initial_delay, sleep)
    return retrying(fn, *args, **kwargs)


def retrying(
    *,
    is_retryable: Callable[[BaseException], bool],
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    sleep: Callable[[float], Any] = time.sleep,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator form of :func:`with_backoff`."""

    def decorator(fn: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            return with_backoff(
                fn,
                *args,
                is_retryable=is_retryable,
                max_attempts=max_attempts,
                initial_delay=initial_delay,
                sleep=sleep,
                **kwargs,
            )

        return wrapper

    return decorator
