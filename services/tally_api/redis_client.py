"""Redis connection management for the Tally API."""

import logging
from typing import Optional

import redis.asyncio as redis

logger = logging.getLogger(__name__)


class RedisClient:
    """Owns the Redis connection pool shared by the cache and counter stores."""

    def __init__(self, url: str, max_connections: int = 50):
        self.url = url
        self.max_connections = max_connections
        self.client: Optional[redis.Redis] = None

    async def connect(self) -> redis.Redis:
        """Create the connection pool and verify it with a PING."""
        self.client = redis.from_url(
            self.url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=self.max_connections,
            socket_connect_timeout=5,
            socket_keepalive=True,
            health_check_interval=30
        )
        try:
            await self.client.ping()
            logger.info("Redis connection established successfully")
        except redis.RedisError as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise
        return self.client

    async def check_health(self) -> bool:
        """
        Check Redis connection health.

        Returns:
            bool: True if healthy, False otherwise
        """
        try:
            if not self.client:
                return False
            await self.client.ping()
            return True
        except redis.RedisError as e:
            logger.error(f"Redis health check failed: {e}")
            return False

    async def close(self):
        """Close Redis connection pool."""
        try:
            if self.client:
                await self.client.aclose()
                logger.info("Redis connection pool closed")
        except Exception as e:
            logger.error(f"Error closing Redis connection: {e}")
