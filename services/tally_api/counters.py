"""Live vote counters kept in Redis."""

import logging
from typing import List, Optional, Sequence

import redis.asyncio as redis

from services.shared import get_redis_key

logger = logging.getLogger(__name__)


def candidate_key(candidate_id) -> str:
    return get_redis_key('candidate_result', candidate_id)


def party_key(political_party: str) -> str:
    return get_redis_key('party_result', political_party)


def sex_key(sex: str) -> str:
    return get_redis_key('sex_result', sex)


def votes_cast_key(mynumber: str) -> str:
    return get_redis_key('user_votes', mynumber)


class CounterStore:
    """Atomically incremented integer counters.

    Every mutation is a single INCRBY or DECRBY so concurrent submissions
    never lose updates. Counters that do not exist read as zero.
    """

    def __init__(self, redis_client: redis.Redis):
        self.redis = redis_client

    async def increment(self, key: str, delta: int, pipe=None) -> Optional[int]:
        """
        Add `delta` to a counter, creating it at `delta` if absent.

        Args:
            key: Counter key
            delta: Non-negative amount to add
            pipe: Optional pipeline to queue the command on instead of
                sending it immediately

        Returns:
            The new value, or None when queued on a pipeline

        Raises:
            ValueError: If delta is negative
        """
        if delta < 0:
            raise ValueError(f"Counter delta must be non-negative, got {delta}")
        if pipe is not None:
            pipe.incrby(key, delta)
            return None
        try:
            value = await self.redis.incrby(key, delta)
            logger.debug(f"Counter {key} += {delta} -> {value}")
            return value
        except redis.RedisError as e:
            logger.error(f"Redis error incrementing {key}: {e}")
            raise

    async def decrement(self, key: str, delta: int) -> int:
        """
        Take back `delta` previously added to a counter.

        Used to undo an increment of the same key.

        Raises:
            ValueError: If delta is negative
        """
        if delta < 0:
            raise ValueError(f"Counter delta must be non-negative, got {delta}")
        try:
            value = await self.redis.decrby(key, delta)
            logger.debug(f"Counter {key} -= {delta} -> {value}")
            return value
        except redis.RedisError as e:
            logger.error(f"Redis error decrementing {key}: {e}")
            raise

    async def read(self, key: str) -> int:
        try:
            value = await self.redis.get(key)
        except redis.RedisError as e:
            logger.error(f"Redis error reading {key}: {e}")
            raise
        return int(value) if value else 0

    async def read_many(self, keys: Sequence[str]) -> List[int]:
        """
        Read several counters in one round trip.

        Args:
            keys: Counter keys

        Returns:
            Values aligned with `keys`, 0 for absent counters
        """
        if not keys:
            return []
        try:
            values = await self.redis.mget(list(keys))
        except redis.RedisError as e:
            logger.error(f"Redis error reading {len(keys)} counters: {e}")
            raise
        return [int(value) if value else 0 for value in values]

    async def reset(self, keys: Sequence[str]) -> None:
        """Set every counter in `keys` to zero."""
        pipe = self.redis.pipeline(transaction=False)
        for key in keys:
            pipe.set(key, 0)
        try:
            await pipe.execute()
        except redis.RedisError as e:
            logger.error(f"Redis error resetting counters: {e}")
            raise

    async def delete_matching(self, pattern: str) -> int:
        """
        Delete every key matching a glob pattern.

        Args:
            pattern: Redis glob pattern such as `users.votes.*`

        Returns:
            Number of keys deleted
        """
        try:
            keys = [key async for key in self.redis.scan_iter(match=pattern, count=1000)]
            if not keys:
                return 0
            deleted = await self.redis.delete(*keys)
        except redis.RedisError as e:
            logger.error(f"Redis error deleting {pattern}: {e}")
            raise
        logger.debug(f"Deleted {deleted} keys matching {pattern}")
        return deleted
