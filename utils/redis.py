"""Redis helper utilities.

Key naming conventions:
    ``permission:record:{id}``        - JSON permission record with gate fields.
    ``permission:by_start``           - sorted set of permission ids by window start.
    ``gatepass:secret:{digest}``      - ``{id}:{direction}`` for a live token.
    ``security:logs``                 - sorted set of security log entries.

Token keys are stored under the SHA-256 digest of the secret so a dump of
Redis never exposes a usable gate pass.
"""

import os
from typing import Optional

import redis as redis_sync
from loguru import logger
from redis.exceptions import RedisError

from config import config as shared_config


def permission_key(permission_id: str) -> str:
    return f"permission:record:{permission_id}"


def secret_key(digest: str) -> str:
    return f"gatepass:secret:{digest}"


PERMISSION_START_INDEX = "permission:by_start"
SECURITY_LOG_KEY = "security:logs"


def trim_sorted_set_sync(
    client: redis_sync.Redis,
    key: str,
    ts: float,
    retention_secs: Optional[int] = None,
) -> None:
    """Remove entries older than the retention window from a sorted set."""
    if retention_secs is None:
        days = int(shared_config.get("security_log_retention_days", 30))
        retention_secs = days * 24 * 60 * 60
    client.zremrangebyscore(key, 0, ts - retention_secs)


def get_sync_client(url: Optional[str] = None) -> redis_sync.Redis:
    """Return a synchronous Redis client.

    The URL is resolved from the given argument, the shared configuration, or
    the ``REDIS_URL`` environment variable. Responses are decoded to ``str``
    automatically.
    """
    url = (
        url
        or shared_config.get("redis_url")
        or os.getenv("REDIS_URL", "redis://localhost:6379/0")
    )
    try:
        client = redis_sync.Redis.from_url(url, decode_responses=True)
        client.ping()
    except (RedisError, OSError) as e:
        logger.error("Failed to connect to Redis at {}: {}", url, e)
        raise
    return client
