from __future__ import annotations

from fastapi import APIRouter

from throttling.adapters.throttle.base import ThrottleKind
from throttling.core.rate_limit import get_throttle_manager
from throttling.schemas.throttle import (
    GateDecision,
    OpenThrottleRequest,
    ThrottleRegistryStatus,
)
from throttling.services.interception import default_interceptor

router = APIRouter(tags=["Throttles"])


@router.post("/throttles/{kind}/{name}/open", response_model=GateDecision)
def open_throttle(kind: ThrottleKind, name: str, body: OpenThrottleRequest) -> GateDecision:
    """Ask a named throttle for one gate decision.

    Lets processes that cannot import this package share the same gates.
    The throttle is created on first use.

    Raises:
        ThrottleConfigurationError: Invalid capacity or name used by the other kind (400).
        StoreUnavailableError: The shared store failed (503).
    """

    throttle = get_throttle_manager().get(kind, name, body.capacity)
    return GateDecision(
        kind=kind,
        name=name,
        threshold=body.threshold,
        open=throttle.open(body.threshold),
    )


@router.get("/throttles", response_model=ThrottleRegistryStatus)
def list_throttles() -> ThrottleRegistryStatus:
    manager = get_throttle_manager()
    return ThrottleRegistryStatus(
        backend=manager.backend,
        throttles=manager.names(),
        advising_count=default_interceptor.advising_count(),
        operations=default_interceptor.advised_operations(),
    )
