"""Throttle dependency for FastAPI routes.

This module wires the throttle manager into the HTTP layer.

Design goals:
- Minimal coupling: routes declare a throttle through a dependency only.
- Swap-friendly: the backend (local or Redis) is chosen by configuration.
- Distinct outcomes: a closed gate raises ``ThrottledError`` (HTTP 429), a
  failing store raises ``StoreUnavailableError`` (HTTP 503).

Per-client throttles suffix the throttle name with the caller identity: the
hashed ``X-API-Key`` when present, else the client IP.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from typing import Annotated, Callable

from fastapi import Header, Request

from throttling.adapters.throttle.base import AbstractThrottleManager, ThrottleKind
from throttling.adapters.throttle.factory import create_throttle_manager
from throttling.core.config import settings
from throttling.core.errors import ThrottledError

logger = logging.getLogger(__name__)


_manager: AbstractThrottleManager | None = None
_manager_lock = threading.Lock()

RequestThreshold = float | Callable[[Request], float]


def get_throttle_manager() -> AbstractThrottleManager:
    """Return the process-wide throttle manager.

    The instance is created on first use and kept for the process lifetime so
    every lookup of a name resolves to the same throttle.

    Returns:
        AbstractThrottleManager: Configured manager instance.
    """

    global _manager

    if _manager is None:
        with _manager_lock:
            if _manager is None:
                _manager = create_throttle_manager(settings.throttle)
    return _manager


def set_throttle_manager(manager: AbstractThrottleManager | None) -> None:
    """Replace the process-wide manager (``None`` rebuilds it lazily from settings)."""

    global _manager

    with _manager_lock:
        _manager = manager


def _build_client_key(request: Request, x_api_key: str | None) -> str:
    """Build the caller identity used by per-client throttles.

    Args:
        request: FastAPI request.
        x_api_key: API key value from the X-API-Key header.

    Returns:
        str: Namespaced caller identity.
    """

    if x_api_key:
        return f"api_key:{hashlib.sha256(x_api_key.encode()).hexdigest()[:16]}"

    client_host = request.client.host if request.client else "unknown"
    return f"ip:{client_host}"


def enforce_throttle(
    name: str,
    *,
    kind: ThrottleKind = ThrottleKind.TIME_BASED,
    threshold: RequestThreshold,
    capacity: int | None = None,
    per_client: bool = False,
) -> Callable[..., None]:
    """Build a FastAPI dependency that guards a route with a throttle.

    Args:
        name: Throttle name.
        kind: Gating algorithm.
        threshold: Static threshold or a callable computing it from the request.
        capacity: Slots for time-based throttles (manager default when None).
        per_client: Keep a separate throttle per caller identity.

    Returns:
        Dependency callable for ``Depends(...)``.

    Example:
        >>> @router.post("/reports", dependencies=[Depends(enforce_throttle(
        ...     "reports", kind=ThrottleKind.COUNT_BASED, threshold=9))])
    """

    def dependency(
        request: Request,
        x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
    ) -> None:
        if not settings.throttle.enabled:
            return

        throttle_name = name
        if per_client:
            throttle_name = f"{name}:{_build_client_key(request, x_api_key)}"

        value = threshold(request) if callable(threshold) else threshold
        throttle = get_throttle_manager().get(kind, throttle_name, capacity)

        if throttle.open(value):
            return

        logger.warning(
            "throttle.closed",
            extra={
                "throttle_name": throttle_name,
                "throttle_kind": throttle.kind.value,
                "threshold": value,
                "route": request.url.path,
            },
        )
        raise ThrottledError(
            code="throttled",
            message="Too many requests. Try again later.",
            details={
                "throttle_name": name,
                "throttle_kind": throttle.kind.value,
                "threshold": value,
            },
        )

    return dependency
