"""Short-lived cache for the "overdue loans" query.

Listing overdue loans scans every outstanding loan, so results are kept for
``FRESHNESS_SECONDS`` and concurrent callers share a single scan: while one
fetch is in flight the others poll until it lands (at most
``MAX_WAIT_SECONDS``) instead of starting their own.
"""

import threading
import time
from typing import Callable, Generic, Optional, TypeVar

from loguru import logger

T = TypeVar("T")

FRESHNESS_SECONDS = 30.0
MAX_WAIT_SECONDS = 5.0
POLL_INTERVAL_SECONDS = 0.1


class OverdueQueryCache(Generic[T]):
    """Time-boxed, request-coalescing cache around a list-returning fetch."""

    def __init__(
        self,
        fetch: Callable[[], list[T]],
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the cache.

        Args:
            fetch: Performs the underlying scan
            clock: Monotonic time source in seconds
            sleep: Used while waiting on an in-flight fetch
        """
        self._fetch = fetch
        self._clock = clock
        self._sleep = sleep

        self._value: Optional[list[T]] = None
        self._fetched_at: Optional[float] = None
        self._in_flight = False
        self._generation = 0
        # Guards only the check-and-set of the in-flight flag
        self._flag_lock = threading.Lock()

        self.fetch_count = 0

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def _fresh(self) -> Optional[list[T]]:
        if self._value is None or self._fetched_at is None:
            return None
        if self._clock() - self._fetched_at < FRESHNESS_SECONDS:
            return list(self._value)
        return None

    def get(self) -> list[T]:
        """Return overdue loans, from cache when fresh.

        Raises:
            Exception: Whatever the fetch raised, when no cached value exists
        """
        cached = self._fresh()
        if cached is not None:
            return cached

        with self._flag_lock:
            waiting = self._in_flight
            if not waiting:
                self._in_flight = True

        if waiting:
            finished = self._wait_for_fetch()

            cached = self._fresh()
            if cached is not None:
                return cached
            # A finished fetch that left nothing fresh was invalidated or failed
            if not finished and self._value is not None:
                logger.debug("Overdue cache: in-flight fetch not ready, serving stale result")
                return list(self._value)

            with self._flag_lock:
                self._in_flight = True

        return self._run_fetch()

    def _wait_for_fetch(self) -> bool:
        """Poll until the in-flight fetch ends; False when the wait timed out."""
        for _ in range(round(MAX_WAIT_SECONDS / POLL_INTERVAL_SECONDS)):
            if not self._in_flight:
                return True
            self._sleep(POLL_INTERVAL_SECONDS)
        return not self._in_flight

    def _run_fetch(self) -> list[T]:
        generation = self._generation
        try:
            self.fetch_count += 1
            result = list(self._fetch())
            # An invalidate() during the fetch means this result may predate a write
            if generation == self._generation:
                self._value = result
                self._fetched_at = self._clock()
            return list(result)
        except Exception as e:
            if self._value is not None:
                logger.warning(f"Overdue query failed, serving stale result: {e}")
                return list(self._value)
            raise
        finally:
            # Cleared after the result is stored
            self._in_flight = False

    def invalidate(self) -> None:
        """Mark the cached result stale; the next ``get`` refetches.

        The stale value is kept only as a fallback for a failing fetch.
        """
        self._generation += 1
        self._fetched_at = None
