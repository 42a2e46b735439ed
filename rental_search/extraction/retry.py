# rental_search/extraction/retry.py

"""Bounded retry of a whole extraction attempt."""

import logging
import time
from collections.abc import Callable
from typing import TypeVar

logger = logging.getLogger("rental_search.extraction")

T = TypeVar("T")


class RetryPolicy:
    """Run a callable up to ``max_attempts`` times.

    Only exceptions listed in ``retry_on`` trigger another attempt;
    anything else propagates at once.  Before each new attempt the
    optional ``on_retry(attempt, exc)`` hook runs (e.g. restarting the
    browser) and the policy sleeps ``delay * backoff ** (attempt - 1)``.
    When every attempt fails the last error is re-raised.
    """

    def __init__(
        self,
        max_attempts: int,
        delay: float = 0.0,
        backoff: float = 1.0,
        retry_on: tuple[type[BaseException], ...] = (Exception,),
        name: str = "retry",
    ) -> None:
        if max_attempts < 1:
            raise ValueError(
                f"max_attempts must be >= 1, got {max_attempts}"
            )
        self.max_attempts = max_attempts
        self.delay = delay
        self.backoff = backoff
        self.retry_on = retry_on
        self.name = name
        self.attempts_made = 0

    def call(
        self,
        fn: Callable[[], T],
        on_retry: Callable[[int, BaseException], None] | None = None,
    ) -> T:
        self.attempts_made = 0
        for attempt in range(1, self.max_attempts + 1):
            self.attempts_made = attempt
            try:
                return fn()
            except self.retry_on as exc:
                if attempt == self.max_attempts:
                    logger.error(
                        "[%s] Giving up after %d attempts: %s",
                        self.name,
                        attempt,
                        exc,
                    )
                    raise
                logger.warning(
                    "[%s] Attempt %d/%d failed: %s",
                    self.name,
                    attempt,
                    self.max_attempts,
                    exc,
                )
                if on_retry is not None:
                    on_retry(attempt, exc)
                pause = self.delay * self.backoff ** (attempt - 1)
                if pause > 0:
                    time.sleep(pause)
        # max_attempts >= 1 guarantees a return or raise above
        raise AssertionError("unreachable")
