"""
Retry and pacing policies for collaborator calls.

Both policies take their ``sleep`` (and clock) as constructor arguments so
tests can run them without wall-clock delays.
"""
import time
import random
import logging
import threading
from typing import Callable, Optional, TypeVar

from .exceptions import TransientUpstreamError

T = TypeVar("T")

logger = logging.getLogger(__name__)


class BackoffPolicy:
    """
    Bounded exponential backoff for transient upstream failures.

    Only :class:`TransientUpstreamError` is retried. Validation failures and
    permanent upstream errors propagate on the first attempt.
    """

    def __init__(
        self,
        max_retries: int = 3,
        backoff_base: float = 0.5,
        jitter: float = 0.1,
        sleep: Callable[[float], None] = time.sleep,
        logger: Optional[logging.Logger] = None,
    ):
        if max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.jitter = jitter
        self._sleep = sleep
        self.logger = logger or logging.getLogger(__name__)

    def delay_for(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (1-based), with up to ``jitter`` extra"""
        delay = self.backoff_base * (2 ** (attempt - 1))
        if self.jitter:
            delay += delay * random.uniform(0, self.jitter)
        return delay

    def run(self, fn: Callable[..., T], *args, description: str = "upstream call", **kwargs) -> T:
        """
        Call ``fn`` retrying transient failures.

        Raises:
            TransientUpstreamError: When retries are exhausted
        """
        attempt = 0
        while True:
            try:
                return fn(*args, **kwargs)
            except TransientUpstreamError as e:
                if attempt >= self.max_retries:
                    self.logger.error(f"{description} failed after {attempt + 1} attempts: {e}")
                    raise
                attempt += 1
                delay = self.delay_for(attempt)
                self.logger.warning(
                    f"Retrying {description} (attempt {attempt + 1}/{self.max_retries + 1}) "
                    f"in {delay:.2f}s: {e}"
                )
                self._sleep(delay)


class RequestPacer:
    """
    Enforces a minimum interval between consecutive calls to one upstream.

    Quote APIs reject or return stale data when dependent calls arrive
    back to back. This is rate-limit avoidance only; it says nothing about
    the execution order of the resulting transactions.
    """

    def __init__(
        self,
        min_interval: float,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.min_interval = min_interval
        self._sleep = sleep
        self._clock = clock
        self._last_call: Optional[float] = None
        self._lock = threading.Lock()

    def wait(self) -> None:
        """Block until the next call is allowed, then record it"""
        with self._lock:
            if self._last_call is not None and self.min_interval > 0:
                remaining = self._last_call + self.min_interval - self._clock()
                if remaining > 0:
                    self._sleep(remaining)
            self._last_call = self._clock()
