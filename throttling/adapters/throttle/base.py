"""Throttle interfaces and the named-throttle registry.

Callers depend on ``AbstractThrottle`` and ``AbstractThrottleManager`` only,
so gate state can live in process memory or in a shared store without the
interception layer noticing.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable

from throttling.core.errors import ThrottleConfigurationError

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

# Slots are allocated up front by the local backend.
MAX_CAPACITY = 10_000


def current_millis() -> float:
    """Return wall-clock time in milliseconds."""
    return time.time() * 1000


class ThrottleKind(str, Enum):
    """Gating algorithm of a throttle."""

    TIME_BASED = "time"
    COUNT_BASED = "count"


class AbstractThrottle(ABC):
    """A per-key gate."""

    kind: ThrottleKind

    def __init__(self, name: str) -> None:
        self.name = name

    @abstractmethod
    def open(self, threshold: float) -> bool:
        """Decide whether the current call may proceed.

        Args:
            threshold: Milliseconds between calls for time-based throttles,
                calls to let pass before opening for count-based ones. The
                value is read per call and may change between calls.

        Returns:
            True when the gate is open for this call.
        """
        raise NotImplementedError

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"{type(self).__name__}(name={self.name!r})"


class AbstractThrottleManager(ABC):
    """Registry that memoizes one throttle per name.

    Subclasses only build throttles; the registry makes sure a name maps to a
    single instance for the lifetime of the manager, also when the first
    lookups for a name race each other.
    """

    backend: str = "abstract"

    def __init__(self, *, default_capacity: int = 1) -> None:
        _validate_capacity(default_capacity, name="<default>")
        self._default_capacity = default_capacity
        self._throttles: dict[str, AbstractThrottle] = {}
        self._lock = threading.Lock()

    @property
    def default_capacity(self) -> int:
        return self._default_capacity

    def get_time_based(self, name: str, capacity: int | None = None) -> AbstractThrottle:
        """Return the time-based throttle registered under ``name``.

        Args:
            name: Throttle name.
            capacity: Timestamp slots, i.e. calls allowed per threshold
                interval. Only the first registration of a name decides the
                capacity; later differing values are ignored.

        Raises:
            ThrottleConfigurationError: If capacity is not an integer in
                1..MAX_CAPACITY, the name is empty, or the name is already
                registered as a count-based throttle.
        """
        if capacity is None:
            capacity = self._default_capacity
        _validate_capacity(capacity, name=name)
        return self._get_or_create(
            name,
            ThrottleKind.TIME_BASED,
            lambda: self._create_time_based(name, capacity),
        )

    def get_count_based(self, name: str) -> AbstractThrottle:
        """Return the count-based throttle registered under ``name``.

        Raises:
            ThrottleConfigurationError: If the name is empty or already
                registered as a time-based throttle.
        """
        return self._get_or_create(
            name,
            ThrottleKind.COUNT_BASED,
            lambda: self._create_count_based(name),
        )

    def get(self, kind: ThrottleKind, name: str, capacity: int | None = None) -> AbstractThrottle:
        """Dispatch to ``get_time_based``/``get_count_based`` by kind."""
        if ThrottleKind(kind) is ThrottleKind.TIME_BASED:
            return self.get_time_based(name, capacity)
        return self.get_count_based(name)

    def names(self) -> list[str]:
        """Return registered throttle names, sorted."""
        with self._lock:
            return sorted(self._throttles)

    def _get_or_create(
        self,
        name: str,
        kind: ThrottleKind,
        factory: Callable[[], AbstractThrottle],
    ) -> AbstractThrottle:
        if not name:
            raise ThrottleConfigurationError(
                code="throttle_invalid_name",
                message="Throttle name must be a non-empty string",
                details={"throttle_kind": kind.value},
            )

        throttle = self._throttles.get(name)
        if throttle is None:
            with self._lock:
                throttle = self._throttles.get(name)
                if throttle is None:
                    throttle = factory()
                    self._throttles[name] = throttle
                    logger.debug(
                        "throttle.created",
                        extra={
                            "throttle_name": name,
                            "throttle_kind": kind.value,
                            "backend": self.backend,
                        },
                    )

        if throttle.kind is not kind:
            raise ThrottleConfigurationError(
                code="throttle_kind_conflict",
                message=(
                    f"Throttle '{name}' is already registered as {throttle.kind.value}-based"
                ),
                details={
                    "throttle_name": name,
                    "throttle_kind": kind.value,
                    "registered_kind": throttle.kind.value,
                },
            )
        return throttle

    @abstractmethod
    def _create_time_based(self, name: str, capacity: int) -> AbstractThrottle:
        raise NotImplementedError

    @abstractmethod
    def _create_count_based(self, name: str) -> AbstractThrottle:
        raise NotImplementedError


def _validate_capacity(capacity: int, *, name: str) -> None:
    if (
        not isinstance(capacity, int)
        or isinstance(capacity, bool)
        or not 1 <= capacity <= MAX_CAPACITY
    ):
        raise ThrottleConfigurationError(
            code="throttle_invalid_capacity",
            message=f"Time-based throttle capacity must be an integer between 1 and {MAX_CAPACITY}",
            details={"throttle_name": name, "capacity": capacity},
        )
