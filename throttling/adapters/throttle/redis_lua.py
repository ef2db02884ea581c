"""Distributed throttles backed by Redis.

Every ``open()`` is a single Lua script evaluation, so the read, the decision
and the write for a key happen in one atomic step on the server and every
process sharing the server observes one serialized history per key. The
scripts reproduce the local algorithms exactly, including the sentinel rule
for unused time slots and the reset-on-open rule for counters.

Key layout (``prefix`` defaults to ``throttle:``):

- ``{prefix}time:{name}``: hash with ``index`` (call counter), ``capacity``
  (set once, first registration wins) and one field per used slot holding the
  millisecond timestamp of the last call assigned to it.
- ``{prefix}count:{name}``: string counter.
"""

from __future__ import annotations

import logging
from typing import Any

from redis import Redis
from redis.commands.core import Script
from redis.exceptions import RedisError

from throttling.adapters.throttle.base import (
    AbstractThrottle,
    AbstractThrottleManager,
    Clock,
    ThrottleKind,
    current_millis,
)
from throttling.core.errors import StoreUnavailableError

logger = logging.getLogger(__name__)


TIME_BASED_LUA = """
local key = KEYS[1]
local now = tonumber(ARGV[1])
local threshold = tonumber(ARGV[2])

redis.call('HSETNX', key, 'capacity', ARGV[3])
local capacity = tonumber(redis.call('HGET', key, 'capacity'))

local index = redis.call('HINCRBY', key, 'index', 1) - 1
local slot = tostring(index % capacity)

local previous = redis.call('HGET', key, slot)
redis.call('HSET', key, slot, ARGV[1])

if not previous then
    return 1
end
if now - tonumber(previous) >= threshold then
    return 1
end
return 0
"""

COUNT_BASED_LUA = """
local count = redis.call('INCR', KEYS[1])
if count > tonumber(ARGV[1]) then
    redis.call('SET', KEYS[1], 0)
    return 1
end
return 0
"""


class _RedisThrottle(AbstractThrottle):
    def __init__(self, name: str, *, key: str, script: Script) -> None:
        super().__init__(name)
        self.key = key
        self._script = script

    def _evaluate(self, args: list[Any], threshold: float) -> bool:
        try:
            reply = self._script(keys=[self.key], args=args)
        except RedisError as exc:
            logger.error(
                "throttle.store_unavailable",
                extra={
                    "throttle_name": self.name,
                    "throttle_kind": self.kind.value,
                    "store_key": self.key,
                    "error_type": type(exc).__name__,
                },
            )
            raise StoreUnavailableError(
                code="throttle_store_unavailable",
                message=f"Shared store failed while evaluating throttle '{self.name}'",
                details={
                    "throttle_name": self.name,
                    "throttle_kind": self.kind.value,
                    "threshold": threshold,
                    "store_key": self.key,
                    "error_type": type(exc).__name__,
                },
            ) from exc

        if reply not in (0, 1):
            raise StoreUnavailableError(
                code="throttle_store_bad_reply",
                message=f"Unexpected reply {reply!r} while evaluating throttle '{self.name}'",
                details={
                    "throttle_name": self.name,
                    "throttle_kind": self.kind.value,
                    "store_key": self.key,
                },
            )
        return reply == 1


class RedisTimeBasedThrottle(_RedisThrottle):
    """Time-based slot rotation evaluated inside Redis."""

    kind = ThrottleKind.TIME_BASED

    def __init__(
        self,
        name: str,
        *,
        key: str,
        script: Script,
        capacity: int = 1,
        clock: Clock = current_millis,
    ) -> None:
        super().__init__(name, key=key, script=script)
        self.capacity = capacity
        self._clock = clock

    def open(self, threshold: float) -> bool:
        return self._evaluate([self._clock(), threshold, self.capacity], threshold)


class RedisCountBasedThrottle(_RedisThrottle):
    """Cyclic quota counter evaluated inside Redis."""

    kind = ThrottleKind.COUNT_BASED

    def open(self, threshold: float) -> bool:
        return self._evaluate([threshold], threshold)


class RedisThrottleManager(AbstractThrottleManager):
    """Registry of Redis-backed throttles.

    Instances are memoized per process like the local manager; the state they
    point at is shared by every process using the same Redis and prefix.
    """

    backend = "redis"

    def __init__(
        self,
        client: Redis,
        *,
        key_prefix: str = "throttle:",
        default_capacity: int = 1,
        clock: Clock = current_millis,
    ) -> None:
        super().__init__(default_capacity=default_capacity)
        self.client = client
        self.key_prefix = key_prefix
        self._clock = clock
        # Script objects run EVALSHA and reload the script on NOSCRIPT.
        self._time_based_script = client.register_script(TIME_BASED_LUA)
        self._count_based_script = client.register_script(COUNT_BASED_LUA)

    def make_key(self, kind: ThrottleKind, name: str) -> str:
        return f"{self.key_prefix}{kind.value}:{name}"

    def _create_time_based(self, name: str, capacity: int) -> AbstractThrottle:
        return RedisTimeBasedThrottle(
            name,
            key=self.make_key(ThrottleKind.TIME_BASED, name),
            script=self._time_based_script,
            capacity=capacity,
            clock=self._clock,
        )

    def _create_count_based(self, name: str) -> AbstractThrottle:
        return RedisCountBasedThrottle(
            name,
            key=self.make_key(ThrottleKind.COUNT_BASED, name),
            script=self._count_based_script,
        )
