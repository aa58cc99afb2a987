"""Candidate registry: in-process candidate table plus its Redis name mirror."""

import logging
from typing import List, Optional

import redis.asyncio as redis

from services.shared import Candidate, decode_candidate, encode_candidate, get_redis_key
from services.tally_api.database import Database

logger = logging.getLogger(__name__)


class CandidateRegistry:
    """Holds the candidate list for the process lifetime.

    The list is loaded from PostgreSQL once and only refreshed by the reset
    procedure. Name lookups at vote time go to Redis exclusively, so a
    candidate becomes votable only after reset has mirrored it.
    """

    def __init__(self, redis_client: redis.Redis, database: Database):
        self.redis = redis_client
        self.database = database
        self._candidates: Optional[List[Candidate]] = None

    async def load_all(self, force: bool = False) -> List[Candidate]:
        """
        Get every candidate, loading from PostgreSQL on first use.

        Args:
            force: Reload from PostgreSQL even if already loaded

        Returns:
            Candidates in table order
        """
        if self._candidates is None or force:
            self._candidates = await self.database.get_candidates()
            logger.info(f"Loaded {len(self._candidates)} candidates")
        return list(self._candidates)

    async def find_by_id(self, candidate_id: int) -> Optional[Candidate]:
        for candidate in await self.load_all():
            if candidate.id == candidate_id:
                return candidate
        return None

    async def by_party(self, political_party: str) -> List[Candidate]:
        return [
            candidate for candidate in await self.load_all()
            if candidate.political_party == political_party
        ]

    async def find_by_name(self, name: Optional[str]) -> Optional[Candidate]:
        """
        Resolve a candidate from the name a voter typed.

        Args:
            name: Free-text candidate name

        Returns:
            Candidate decoded from the Redis mirror, or None if not mirrored
        """
        if not name:
            return None
        try:
            value = await self.redis.get(get_redis_key('candidate', name))
        except redis.RedisError as e:
            logger.error(f"Redis error looking up candidate {name}: {e}")
            raise
        if value is None:
            return None
        return decode_candidate(name, value)

    @staticmethod
    def mirror(pipe, candidate: Candidate) -> None:
        """Queue the `candidates.<name>` mirror write on a pipeline."""
        pipe.set(get_redis_key('candidate', candidate.name), encode_candidate(candidate))
