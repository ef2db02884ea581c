"""Factory for creating throttle managers from configuration."""

import logging

from redis import Redis

from throttling.adapters.throttle.base import AbstractThrottleManager
from throttling.adapters.throttle.local import LocalThrottleManager
from throttling.adapters.throttle.redis_lua import RedisThrottleManager
from throttling.core.config import ThrottleSettings, settings
from throttling.core.errors import ThrottleConfigurationError
from throttling.core.logging import redact_url

logger = logging.getLogger(__name__)


def create_throttle_manager(throttle_settings: ThrottleSettings | None = None) -> AbstractThrottleManager:
    """Instantiate the throttle manager for the configured backend.

    Args:
        throttle_settings: Optional settings; defaults to ``settings.throttle``.

    Returns:
        AbstractThrottleManager: Manager for the ``local`` or ``redis`` backend.

    Raises:
        ThrottleConfigurationError: If the backend is unknown.
    """
    cfg = throttle_settings or settings.throttle
    backend = cfg.backend.lower()

    if backend == "local":
        return LocalThrottleManager(default_capacity=cfg.default_capacity)

    if backend == "redis":
        client = Redis.from_url(
            cfg.redis_url,
            socket_timeout=cfg.redis_socket_timeout_seconds,
            socket_connect_timeout=cfg.redis_socket_timeout_seconds,
        )
        logger.info(
            "throttle.backend_configured",
            extra={
                "backend": backend,
                "store": redact_url(cfg.redis_url),
                "key_prefix": cfg.redis_key_prefix,
            },
        )
        return RedisThrottleManager(
            client,
            key_prefix=cfg.redis_key_prefix,
            default_capacity=cfg.default_capacity,
        )

    raise ThrottleConfigurationError(
        code="throttle_unknown_backend",
        message=f"Unknown throttle backend: '{cfg.backend}'. Supported backends: local, redis",
        details={"backend": cfg.backend},
    )
