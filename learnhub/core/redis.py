"""Redis connection management.

The client is created in the application lifespan and stored on
``app.state``; nothing here keeps a process-wide handle.
"""

import redis.asyncio as redis

from learnhub.config import Settings
from learnhub.core.logging import get_logger


logger = get_logger(__name__)


async def create_redis_client(settings: Settings) -> redis.Redis:
    """Create a Redis client and verify the connection.

    Raises:
        redis.ConnectionError: If the server cannot be reached.
    """
    client = redis.from_url(
        settings.redis_url,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_connect_timeout,
        retry_on_timeout=settings.redis_retry_on_timeout,
        health_check_interval=settings.redis_health_check_interval,
        decode_responses=True,
    )

    try:
        await client.ping()
    except redis.ConnectionError as e:
        logger.warning("redis_connection_failed", error=str(e))
        await client.aclose()
        raise

    logger.info("redis_connected", url=settings.redis_url)
    return client


async def close_redis_client(client: redis.Redis | None) -> None:
    """Close a client created by :func:`create_redis_client`."""
    if client is not None:
        await client.aclose()
        logger.info("redis_disconnected")
