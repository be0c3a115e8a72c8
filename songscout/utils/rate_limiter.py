"""Per-service request pacing for the external catalog and tuning APIs."""

from __future__ import annotations

import threading
import time
from typing import Callable

from songscout.utils.logger import get_logger

logger = get_logger("utils.rate_limiter")


class RateLimiter:
    """Thread-safe limiter enforcing a minimum interval between calls to a service.

    Each service has its own lock, so a thread waiting on the iTunes
    interval never blocks a Songsterr lookup.

    Usage:
        limiter = RateLimiter()
        limiter.configure("itunes", 0.2)
        limiter.wait("itunes")
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._clock = clock
        self._sleep = sleep
        self._intervals: dict[str, float] = {}
        self._last_call: dict[str, float] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._meta_lock = threading.Lock()  # protects _locks dict creation

    def configure(self, service_name: str, min_interval: float) -> None:
        """Set the default minimum interval (seconds) for a service."""
        self._intervals[service_name] = max(0.0, float(min_interval))

    def interval_for(self, service_name: str) -> float:
        return self._intervals.get(service_name, 0.0)

    def _get_lock(self, service_name: str) -> threading.Lock:
        if service_name not in self._locks:
            with self._meta_lock:
                if service_name not in self._locks:
                    self._locks[service_name] = threading.Lock()
        return self._locks[service_name]

    def wait(self, service_name: str, min_interval: float | None = None) -> float:
        """Block until enough time has passed since the last call to this service.

        Args:
            service_name: Identifier for the API service (e.g. "itunes").
            min_interval: Override for the configured interval.

        Returns:
            Seconds actually slept.
        """
        interval = self.interval_for(service_name) if min_interval is None else min_interval
        lock = self._get_lock(service_name)

        # The slot is reserved under the lock so concurrent callers queue up
        # one interval apart instead of all firing after the same sleep.
        with lock:
            now = self._clock()
            last = self._last_call.get(service_name)
            slot = now if last is None else max(now, last + interval)
            self._last_call[service_name] = slot

        sleep_time = slot - now
        if sleep_time > 0:
            logger.debug("Rate limit: sleeping %.2fs for %s", sleep_time, service_name)
            self._sleep(sleep_time)
        return max(0.0, sleep_time)


# Shared across every client in the process
rate_limiter = RateLimiter()
