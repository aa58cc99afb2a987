"""
Vote tally core.

Validates vote submissions against the identity cache and candidate mirror,
applies accepted votes to the live counters and keyword rankings, resets all
run state between benchmark runs, and builds the result page read models.
"""
import logging
from typing import List, Optional, Sequence

import redis.asyncio as redis

from services.shared import Candidate, VoteOutcome, get_redis_pattern
from services.tally_api.candidates import CandidateRegistry
from services.tally_api.counters import (
    CounterStore,
    candidate_key,
    party_key,
    sex_key,
    votes_cast_key,
)
from services.tally_api.database import Database
from services.tally_api.identity import IdentityStore
from services.tally_api.keywords import (
    KeywordRanking,
    candidate_keywords_key,
    party_keywords_key,
)
from services.tally_api.models import (
    CandidateDetail,
    CandidateResult,
    PartyDetail,
    ResultsOverview,
    VoteForm,
)

logger = logging.getLogger(__name__)


class VoteTally:
    """Vote submission, reset and result queries over the Redis stores."""

    def __init__(
        self,
        redis_client: redis.Redis,
        database: Database,
        parties: Sequence[str],
        sexes: Sequence[str],
        results_top: int = 10,
        results_bottom: int = 1,
        keyword_limit: int = 11
    ):
        self.redis = redis_client
        self.database = database
        self.parties = list(parties)
        self.sexes = list(sexes)
        self.results_top = results_top
        self.results_bottom = results_bottom
        self.keyword_limit = keyword_limit

        self.identity = IdentityStore(redis_client, database)
        self.candidates = CandidateRegistry(redis_client, database)
        self.counters = CounterStore(redis_client)
        self.keywords = KeywordRanking(redis_client)

    @classmethod
    def from_settings(cls, redis_client: redis.Redis, database: Database, settings) -> 'VoteTally':
        """Build a tally configured from application settings."""
        return cls(
            redis_client,
            database,
            parties=settings.PARTIES,
            sexes=settings.SEXES,
            results_top=settings.RESULTS_TOP,
            results_bottom=settings.RESULTS_BOTTOM,
            keyword_limit=settings.KEYWORD_LIMIT
        )

    async def submit(self, form: VoteForm) -> VoteOutcome:
        """
        Validate and apply a vote submission.

        Checks run in a fixed order and the first failure wins. Rejected
        submissions leave every counter and ranking untouched.

        Args:
            form: Parsed vote form

        Returns:
            VoteOutcome.SUCCESS or the rejection reason
        """
        citizen = await self.identity.resolve(form.mynumber)
        if citizen is None or not citizen.matches(form.name, form.address):
            return VoteOutcome.INVALID_IDENTITY

        voted_count = await self.counters.read(votes_cast_key(form.mynumber))
        if form.vote_count < 0 or voted_count + form.vote_count > citizen.vote_quota:
            return VoteOutcome.QUOTA_EXCEEDED

        if not form.candidate:
            return VoteOutcome.CANDIDATE_BLANK

        candidate = await self.candidates.find_by_name(form.candidate)
        if candidate is None:
            return VoteOutcome.INVALID_CANDIDATE

        if not form.keyword:
            return VoteOutcome.KEYWORD_BLANK

        return await self._apply(form, candidate, citizen.vote_quota)

    async def _apply(self, form: VoteForm, candidate: Candidate, vote_quota: int) -> VoteOutcome:
        """Increment the vote-cast counter, then the tallies and rankings."""
        cast_key = votes_cast_key(form.mynumber)
        total = await self.counters.increment(cast_key, form.vote_count)
        if total > vote_quota:
            # A concurrent submission by the same citizen got there first.
            await self.counters.decrement(cast_key, form.vote_count)
            logger.info(f"Quota race lost for {form.mynumber}: {total} > {vote_quota}")
            return VoteOutcome.QUOTA_EXCEEDED

        pipe = self.redis.pipeline(transaction=False)
        await self.counters.increment(candidate_key(candidate.id), form.vote_count, pipe=pipe)
        await self.counters.increment(party_key(candidate.political_party), form.vote_count, pipe=pipe)
        await self.counters.increment(sex_key(candidate.sex), form.vote_count, pipe=pipe)
        await self.keywords.bump(candidate_keywords_key(candidate.id), form.keyword, form.vote_count, pipe=pipe)
        await self.keywords.bump(party_keywords_key(candidate.political_party), form.keyword, form.vote_count, pipe=pipe)
        try:
            await pipe.execute()
        except redis.RedisError as e:
            logger.error(f"Redis error applying vote for candidate {candidate.id}: {e}")
            raise

        logger.debug(
            f"Vote applied: candidate={candidate.id}, party={candidate.political_party}, "
            f"count={form.vote_count}"
        )
        return VoteOutcome.SUCCESS

    async def reset(self) -> List[Candidate]:
        """
        Reset every counter and ranking to an empty baseline.

        Must not run concurrently with vote submissions. Cached identities
        are kept.

        Returns:
            The freshly loaded candidate list
        """
        logger.info("Resetting election results")
        await self.database.delete_votes()
        candidates = await self.candidates.load_all(force=True)

        pipe = self.redis.pipeline(transaction=False)
        for candidate in candidates:
            self.candidates.mirror(pipe, candidate)
        try:
            await pipe.execute()
        except redis.RedisError as e:
            logger.error(f"Redis error mirroring candidates: {e}")
            raise

        await self.counters.reset(
            [candidate_key(candidate.id) for candidate in candidates]
            + [party_key(party) for party in self.parties]
            + [sex_key(sex) for sex in self.sexes]
        )
        await self.keywords.clear(get_redis_pattern('candidate_keywords'))
        await self.keywords.clear(get_redis_pattern('party_keywords'))
        cleared = await self.counters.delete_matching(get_redis_pattern('user_votes'))

        logger.info(
            f"Reset complete: {len(candidates)} candidates, {len(self.parties)} parties, "
            f"{cleared} vote-cast counters cleared"
        )
        return candidates

    async def _with_counts(self, candidates: List[Candidate]) -> List[CandidateResult]:
        counts = await self.counters.read_many([candidate_key(c.id) for c in candidates])
        return [
            CandidateResult(**candidate.to_dict(), count=count)
            for candidate, count in zip(candidates, counts)
        ]

    async def results_overview(self) -> ResultsOverview:
        """
        Build the ranked results page.

        Candidates are ordered by votes, most first, keeping table order for
        ties; only the top and bottom of the ranking are returned.
        """
        results = await self._with_counts(await self.candidates.load_all())
        results.sort(key=lambda result: result.count, reverse=True)
        bottom_start = len(results) - self.results_bottom
        shown = [
            result for i, result in enumerate(results)
            if i < self.results_top or i >= bottom_start
        ]

        party_counts = await self.counters.read_many([party_key(p) for p in self.parties])
        sex_counts = await self.counters.read_many([sex_key(s) for s in self.sexes])

        return ResultsOverview(
            candidates=shown,
            parties=dict(zip(self.parties, party_counts)),
            sex_ratio=dict(zip(self.sexes, sex_counts))
        )

    async def candidate_detail(self, candidate_id: int) -> Optional[CandidateDetail]:
        """
        Build a candidate page.

        Returns:
            CandidateDetail or None for an unknown candidate id
        """
        candidate = await self.candidates.find_by_id(candidate_id)
        if candidate is None:
            return None
        votes = await self.counters.read(candidate_key(candidate.id))
        keywords = await self.keywords.keywords(
            candidate_keywords_key(candidate.id), self.keyword_limit
        )
        return CandidateDetail(
            candidate=CandidateResult(**candidate.to_dict(), count=votes),
            votes=votes,
            keywords=keywords
        )

    async def party_detail(self, political_party: str) -> PartyDetail:
        """Build a political party page. Unknown parties show zero votes."""
        votes = await self.counters.read(party_key(political_party))
        candidates = await self._with_counts(await self.candidates.by_party(political_party))
        keywords = await self.keywords.keywords(
            party_keywords_key(political_party), self.keyword_limit
        )
        return PartyDetail(
            political_party=political_party,
            votes=votes,
            candidates=candidates,
            keywords=keywords
        )
