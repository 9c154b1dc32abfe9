"""Process-wide cap on concurrent remote fetches."""

from __future__ import annotations

from contextlib import contextmanager
from threading import BoundedSemaphore, Lock
from typing import Iterator


class ConcurrencyGovernor:
    """Counting permit pool shared by every unit task.

    ``acquire`` blocks until a permit is free. Tokens are meant to be held
    for the duration of one fetch only, so prefer the :meth:`token` context
    manager, which releases on success and on failure alike.
    """

    def __init__(self, capacity: int = 3) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._semaphore = BoundedSemaphore(capacity)
        self._lock = Lock()
        self._in_flight = 0
        self._peak = 0

    @property
    def in_flight(self) -> int:
        with self._lock:
            return self._in_flight

    @property
    def peak(self) -> int:
        """Highest number of tokens held at once since creation."""

        with self._lock:
            return self._peak

    def acquire(self, timeout: float | None = None) -> bool:
        acquired = self._semaphore.acquire(timeout=timeout)
        if acquired:
            with self._lock:
                self._in_flight += 1
                self._peak = max(self._peak, self._in_flight)
        return acquired

    def release(self) -> None:
        with self._lock:
            self._in_flight -= 1
        self._semaphore.release()

    @contextmanager
    def token(self) -> Iterator[None]:
        self.acquire()
        try:
            yield
        finally:
            self.release()


__all__ = ["ConcurrencyGovernor"]
