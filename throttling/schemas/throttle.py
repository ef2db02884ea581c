"""Pydantic schemas for the throttle HTTP routes."""

from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel, Field

from throttling.adapters.throttle.base import MAX_CAPACITY, ThrottleKind


class OpenThrottleRequest(BaseModel):
    """Arguments for a single gate decision."""

    threshold: float = Field(
        ...,
        description=(
            "Milliseconds between calls (time-based) or calls to let pass before "
            "opening (count-based)."
        ),
    )
    capacity: int | None = Field(
        default=None,
        ge=1,
        le=MAX_CAPACITY,
        description="Timestamp slots for a new time-based throttle. Ignored once the name exists.",
    )


class GateDecision(BaseModel):
    """Outcome of one ``open()`` call."""

    kind: ThrottleKind = Field(..., description="Gating algorithm: 'time' or 'count'.")
    name: str = Field(..., description="Throttle name.")
    threshold: float = Field(..., description="Threshold used for this call.")
    open: bool = Field(..., description="Whether the gate opened for this call.")


class ThrottleRegistryStatus(BaseModel):
    """Registered throttles and intercepted operations."""

    backend: str = Field(..., description="Backend holding gate state: 'local' or 'redis'.")
    throttles: List[str] = Field(
        default_factory=list, description="Names registered in this process."
    )
    advising_count: int = Field(
        ..., description="Number of distinct operations under interception."
    )
    operations: Dict[str, str] = Field(
        default_factory=dict,
        description="Intercepted operation -> throttle name.",
    )
