"""Weighted keyword leaderboards kept in Redis sorted sets."""

import logging
from typing import List, Optional, Tuple

import redis.asyncio as redis

from services.shared import get_redis_key

logger = logging.getLogger(__name__)


def candidate_keywords_key(candidate_id) -> str:
    return get_redis_key('candidate_keywords', candidate_id)


def party_keywords_key(political_party: str) -> str:
    return get_redis_key('party_keywords', political_party)


class KeywordRanking:
    """Per-candidate and per-party rankings of vote reasons.

    Each ranking maps keyword text to the sum of vote_count of every
    submission that gave it. Equal weights are ordered by keyword,
    ascending, so results do not depend on the store's member ordering.
    """

    def __init__(self, redis_client: redis.Redis):
        self.redis = redis_client

    async def bump(self, key: str, keyword: str, delta: int, pipe=None) -> Optional[float]:
        """
        Add `delta` to a keyword's weight, creating it at `delta` if absent.

        Args:
            key: Ranking key
            keyword: Reason text as submitted
            delta: Amount to add
            pipe: Optional pipeline to queue the command on

        Returns:
            The new weight, or None when queued on a pipeline
        """
        if pipe is not None:
            pipe.zincrby(key, delta, keyword)
            return None
        try:
            return await self.redis.zincrby(key, delta, keyword)
        except redis.RedisError as e:
            logger.error(f"Redis error bumping {keyword!r} in {key}: {e}")
            raise

    async def top_k(self, key: str, k: int) -> List[Tuple[str, int]]:
        """
        Get the `k` heaviest keywords.

        Args:
            key: Ranking key
            k: Maximum number of entries

        Returns:
            (keyword, weight) pairs, heaviest first
        """
        if k <= 0:
            return []
        try:
            entries = await self.redis.zrevrange(key, 0, k - 1, withscores=True)
            weights = dict(entries)
            if len(entries) == k:
                # Pull in every member tied with the last one so the cut is
                # made on our ordering rather than the store's.
                boundary = entries[-1][1]
                ties = await self.redis.zrangebyscore(key, boundary, boundary, withscores=True)
                weights.update(ties)
        except redis.RedisError as e:
            logger.error(f"Redis error reading ranking {key}: {e}")
            raise

        ranked = sorted(weights.items(), key=lambda item: (-item[1], item[0]))
        return [(keyword, int(weight)) for keyword, weight in ranked[:k]]

    async def keywords(self, key: str, k: int) -> List[str]:
        """Get only the keyword texts of `top_k`."""
        return [keyword for keyword, _ in await self.top_k(key, k)]

    async def clear(self, pattern: str) -> int:
        """
        Delete every ranking matching a glob pattern.

        Returns:
            Number of rankings deleted
        """
        try:
            keys = [key async for key in self.redis.scan_iter(match=pattern, count=1000)]
            if not keys:
                return 0
            return await self.redis.delete(*keys)
        except redis.RedisError as e:
            logger.error(f"Redis error clearing rankings {pattern}: {e}")
            raise
