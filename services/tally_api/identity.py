"""Read-through identity cache in front of the users table."""

import logging
from typing import Iterable, Optional

import redis.asyncio as redis

from services.shared import Citizen, decode_citizen, encode_citizen, get_redis_key
from services.tally_api.database import Database

logger = logging.getLogger(__name__)


class IdentityStore:
    """Resolves citizens from Redis, falling back to PostgreSQL on a miss.

    Cached entries never expire and are never invalidated: a citizen's
    name, address and quota are reference data for the whole run.
    """

    def __init__(self, redis_client: redis.Redis, database: Database):
        self.redis = redis_client
        self.database = database

    async def resolve(self, mynumber: Optional[str]) -> Optional[Citizen]:
        """
        Resolve a citizen by identification number.

        Args:
            mynumber: National identification number from the vote form

        Returns:
            Citizen or None if not registered
        """
        if not mynumber:
            return None

        key = get_redis_key('user', mynumber)
        try:
            cached = await self.redis.get(key)
        except redis.RedisError as e:
            logger.error(f"Redis error reading identity {key}: {e}")
            raise

        if cached is not None:
            return decode_citizen(mynumber, cached)

        citizen = await self.database.get_user(mynumber)
        if citizen is None:
            logger.debug(f"Unknown citizen {mynumber}")
            return None

        try:
            await self.redis.set(key, encode_citizen(citizen))
        except redis.RedisError as e:
            logger.error(f"Redis error caching identity {key}: {e}")
            raise
        logger.debug(f"Cached identity for {mynumber}")
        return citizen

    async def warm(self, citizens: Iterable[Citizen], batch_size: int = 1000) -> int:
        """
        Write-through a batch of citizens ahead of traffic.

        Args:
            citizens: Citizens to cache
            batch_size: Number of SET commands per pipeline round trip

        Returns:
            Number of citizens cached
        """
        cached = 0
        pipe = self.redis.pipeline(transaction=False)
        for citizen in citizens:
            pipe.set(get_redis_key('user', citizen.mynumber), encode_citizen(citizen))
            cached += 1
            if cached % batch_size == 0:
                await pipe.execute()
        await pipe.execute()
        logger.info(f"Warmed identity cache with {cached} citizens")
        return cached
