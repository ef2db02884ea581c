"""Throttle interception for arbitrary operations.

``ThrottleInterceptor.throttle`` decorates a function (sync or async) so each
call first asks a named throttle whether it may run:

- gate open: the function runs and its result or exception passes through
  unchanged;
- gate closed: the function does not run and ``ThrottledError`` is raised;
- store failure: ``StoreUnavailableError`` from the throttle propagates, the
  function does not run.

Example:
    >>> interceptor = ThrottleInterceptor()
    >>> @interceptor.throttle(kind=ThrottleKind.TIME_BASED, threshold=60_000)
    ... def refresh_prices() -> None:
    ...     ...
"""

from __future__ import annotations

import functools
import inspect
import logging
import threading
from typing import Any, Callable, TypeVar

from fastapi.concurrency import run_in_threadpool

from throttling.adapters.throttle.base import (
    AbstractThrottle,
    AbstractThrottleManager,
    ThrottleKind,
)
from throttling.core.errors import ThrottledError
from throttling.core.rate_limit import get_throttle_manager

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

Threshold = float | Callable[..., float]


def operation_name(func: Callable[..., Any]) -> str:
    """Return the identity an operation is registered under."""
    return f"{func.__module__}.{func.__qualname__}"


class ThrottleInterceptor:
    """Applies throttles around decorated operations.

    Attributes:
        manager_provider: Returns the manager throttles are resolved from. It
            is called on every invocation, so the manager may be swapped
            after decoration.
    """

    def __init__(
        self,
        manager_provider: Callable[[], AbstractThrottleManager] = get_throttle_manager,
    ) -> None:
        self.manager_provider = manager_provider
        self._lock = threading.Lock()
        self._operations: dict[str, str] = {}

    def throttle(
        self,
        name: str | None = None,
        *,
        kind: ThrottleKind = ThrottleKind.TIME_BASED,
        threshold: Threshold,
        capacity: int | None = None,
    ) -> Callable[[F], F]:
        """Decorate an operation with a throttle.

        Args:
            name: Throttle name; defaults to the operation's qualified name.
                Operations sharing a name share one gate.
            kind: Gating algorithm.
            threshold: Static threshold, or a callable receiving the
                operation's arguments and returning the threshold for that
                call.
            capacity: Slots for time-based throttles (manager default when None).

        Returns:
            Decorator producing a wrapper with the same signature.
        """

        def decorator(func: F) -> F:
            operation = operation_name(func)
            throttle_name = name or operation
            self._register(operation, throttle_name)

            def resolve(args: tuple[Any, ...], kwargs: dict[str, Any]) -> tuple[AbstractThrottle, float]:
                value = threshold(*args, **kwargs) if callable(threshold) else threshold
                throttle = self.manager_provider().get(kind, throttle_name, capacity)
                return throttle, value

            def closed(throttle: AbstractThrottle, value: float) -> ThrottledError:
                logger.info(
                    "interception.throttled",
                    extra={
                        "operation": operation,
                        "throttle_name": throttle.name,
                        "throttle_kind": throttle.kind.value,
                        "threshold": value,
                    },
                )
                return ThrottledError(
                    code="throttled",
                    message=f"Operation '{operation}' was throttled",
                    details={
                        "throttle_name": throttle.name,
                        "throttle_kind": throttle.kind.value,
                        "threshold": value,
                        "context": {"operation": operation},
                    },
                )

            if inspect.iscoroutinefunction(func):

                @functools.wraps(func)
                async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                    throttle, value = resolve(args, kwargs)
                    if not await run_in_threadpool(throttle.open, value):
                        raise closed(throttle, value)
                    return await func(*args, **kwargs)

                return async_wrapper  # type: ignore[return-value]

            @functools.wraps(func)
            def wrapper(*args: Any, **kwargs: Any) -> Any:
                throttle, value = resolve(args, kwargs)
                if not throttle.open(value):
                    raise closed(throttle, value)
                return func(*args, **kwargs)

            return wrapper  # type: ignore[return-value]

        return decorator

    def advising_count(self) -> int:
        """Return how many distinct operations are under interception."""
        with self._lock:
            return len(self._operations)

    def advised_operations(self) -> dict[str, str]:
        """Return a copy of the operation -> throttle name mapping."""
        with self._lock:
            return dict(self._operations)

    def _register(self, operation: str, throttle_name: str) -> None:
        with self._lock:
            self._operations[operation] = throttle_name


default_interceptor = ThrottleInterceptor()
throttle = default_interceptor.throttle
