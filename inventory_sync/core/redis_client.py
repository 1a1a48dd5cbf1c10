"""Shared Redis connection for the Redis baseline, notifier and metrics backends.

Opened in the app lifespan only when settings select a Redis backend.
"""

import logging
from typing import Optional

import redis as redis_lib

from inventory_sync.core.config import Settings

logger = logging.getLogger(__name__)

_client: Optional[redis_lib.Redis] = None


def uses_redis(cfg: Settings) -> bool:
    return "redis" in (cfg.baseline_backend, cfg.notifier, cfg.metrics)


def init_redis_client(cfg: Settings) -> redis_lib.Redis:
    global _client
    _client = redis_lib.Redis(host=cfg.redis_host, port=cfg.redis_port, decode_responses=True)
    logger.info(f"Redis client initialized ({cfg.redis_host}:{cfg.redis_port})")
    return _client


def get_redis_client() -> redis_lib.Redis:
    if _client is None:
        raise RuntimeError("Redis client not initialized; no Redis backend is configured.")
    return _client


def close_redis_client() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None
        logger.info("Redis client closed")


def check_connection() -> bool:
    """Ping the server. False when not initialized or unreachable."""
    if _client is None:
        return False
    try:
        return bool(_client.ping())
    except redis_lib.RedisError as e:
        logger.warning(f"Redis ping failed: {e}")
        return False
