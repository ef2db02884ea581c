"""Throttling exception types.

A guarded call fails in one of two ways owned by this package, a closed gate
(``ThrottledError``) or a gate whose state cannot be determined
(``StoreUnavailableError``). Errors raised by the guarded operation itself
are never wrapped.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    throttle_name: str
    throttle_kind: str
    threshold: float
    capacity: int
    registered_kind: str
    backend: str
    store_key: str
    error_type: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for throttling failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ThrottleConfigurationError(AppError):
    """Raised when a throttle cannot be created as requested."""


class StoreUnavailableError(AppError):
    """Raised when the shared store cannot decide a gate."""


class ThrottledError(AppError):
    """Raised at an interception point when the gate is closed."""
