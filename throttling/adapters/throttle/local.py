"""In-process throttles.

Notes:
- Per-process only: every worker process owns independent gate state.
- Thread-safe: each throttle guards its own state with its own lock, so
  unrelated names never contend.
"""

from __future__ import annotations

import threading

from throttling.adapters.throttle.base import (
    AbstractThrottle,
    AbstractThrottleManager,
    Clock,
    ThrottleKind,
    current_millis,
)


class LocalTimeBasedThrottle(AbstractThrottle):
    """Allows ``capacity`` calls per threshold interval.

    Every call is assigned one of ``capacity`` timestamp slots in rotation and
    is compared against the previous call that used the same slot. The slot is
    overwritten with the current time whether or not the gate opens, so a
    caller that keeps knocking keeps the gate shut.

    An unused slot always opens: the first ``capacity`` calls on a fresh
    throttle pass whatever the threshold.
    """

    kind = ThrottleKind.TIME_BASED

    def __init__(self, name: str, *, capacity: int = 1, clock: Clock = current_millis) -> None:
        super().__init__(name)
        self.capacity = capacity
        self._clock = clock
        self._lock = threading.Lock()
        self._slots: list[float | None] = [None] * capacity
        self._index = 0

    def open(self, threshold: float) -> bool:
        with self._lock:
            now = self._clock()
            slot = self._index % self.capacity
            self._index += 1

            previous = self._slots[slot]
            self._slots[slot] = now

            return previous is None or now - previous >= threshold


class LocalCountBasedThrottle(AbstractThrottle):
    """Opens once every ``threshold + 1`` calls."""

    kind = ThrottleKind.COUNT_BASED

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self._lock = threading.Lock()
        self._count = 0

    def open(self, threshold: float) -> bool:
        with self._lock:
            self._count += 1
            if self._count > threshold:
                self._count = 0
                return True
            return False


class LocalThrottleManager(AbstractThrottleManager):
    """Registry of in-process throttles."""

    backend = "local"

    def __init__(self, *, default_capacity: int = 1, clock: Clock = current_millis) -> None:
        super().__init__(default_capacity=default_capacity)
        self._clock = clock

    def _create_time_based(self, name: str, capacity: int) -> AbstractThrottle:
        return LocalTimeBasedThrottle(name, capacity=capacity, clock=self._clock)

    def _create_count_based(self, name: str) -> AbstractThrottle:
        return LocalCountBasedThrottle(name)
