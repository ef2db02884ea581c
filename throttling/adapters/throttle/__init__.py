"""Throttle adapters.

Gate state lives either in process memory (``local``) or in Redis
(``redis_lua``); both sit behind the same manager interface.
"""

from throttling.adapters.throttle.base import (
    AbstractThrottle,
    AbstractThrottleManager,
    ThrottleKind,
    current_millis,
)
from throttling.adapters.throttle.factory import create_throttle_manager
from throttling.adapters.throttle.local import (
    LocalCountBasedThrottle,
    LocalThrottleManager,
    LocalTimeBasedThrottle,
)
from throttling.adapters.throttle.redis_lua import (
    RedisCountBasedThrottle,
    RedisThrottleManager,
    RedisTimeBasedThrottle,
)

__all__ = [
    "AbstractThrottle",
    "AbstractThrottleManager",
    "LocalCountBasedThrottle",
    "LocalThrottleManager",
    "LocalTimeBasedThrottle",
    "RedisCountBasedThrottle",
    "RedisThrottleManager",
    "RedisTimeBasedThrottle",
    "ThrottleKind",
    "create_throttle_manager",
    "current_millis",
]
