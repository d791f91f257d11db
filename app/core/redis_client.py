"""Redis client configuration and utilities."""

import redis

from app.config import settings

# Global Redis client instance
_redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    """
    Get or create Redis client instance.

    Returns:
        Redis client instance
    """
    global _redis_client

    if _redis_client is None:
        _redis_client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            username=settings.redis_username,
            password=settings.redis_password,
            decode_responses=settings.redis_decode_responses,
            socket_connect_timeout=5,
            socket_keepalive=True,
            health_check_interval=30,
        )

    return _redis_client


async def check_redis_connection() -> bool:
    """
    Check if Redis connection is healthy.

    Returns:
        True if connection is healthy, False otherwise
    """
    try:
        client = get_redis_client()
        client.ping()
        return True
    except Exception:
        return False


def close_redis_connection() -> None:
    """Close Redis connection."""
    global _redis_client

    if _redis_client is not None:
        _redis_client.close()
        _redis_client = None


class OutboxQueue:
    """Redis list used as the hand-off point to the external notification dispatcher.

    Producers LPUSH, the dispatcher pops from the right, so delivery order is FIFO.
    """

    def __init__(self, redis_client: redis.Redis, key: str | None = None):
        """Initialize queue with Redis client and list key."""
        self.redis = redis_client
        self.key = key or settings.notification_queue_key

    def push(self, payload: str) -> int:
        """Append a serialized message; returns the queue length."""
        return int(self.redis.lpush(self.key, payload))

    def depth(self) -> int:
        """Number of messages waiting for the dispatcher."""
        try:
            return int(self.redis.llen(self.key))
        except Exception:
            return -1
