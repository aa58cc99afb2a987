"""Pytest fixtures for the vote tally tests.

Redis is provided in-process by fakeredis, which implements the real command
semantics (INCRBY, ZINCRBY, SCAN, ...). PostgreSQL is replaced by an
in-memory stand-in for the Database adapter that records how often each
query path is used.
"""

from typing import AsyncGenerator, Dict, List

import fakeredis
import httpx
import pytest

from services.shared import Candidate, Citizen
from services.tally_api.main import create_app
from services.tally_api.models import VoteForm
from services.tally_api.redis_client import RedisClient
from services.tally_api.tally import VoteTally

PARTIES = ["PartyX", "PartyY", "PartyZ", "PartyW"]
SEXES = ["M", "F"]


class FakeDatabase:
    """In-memory replacement for services.tally_api.database.Database."""

    def __init__(self, candidates: List[Candidate], citizens: List[Citizen]):
        self.candidates = list(candidates)
        self.citizens: Dict[str, Citizen] = {c.mynumber: c for c in citizens}
        self.candidate_queries = 0
        self.user_queries = 0
        self.votes_deleted = 0
        self.healthy = True

    async def get_candidates(self) -> List[Candidate]:
        self.candidate_queries += 1
        return list(self.candidates)

    async def get_user(self, mynumber: str):
        self.user_queries += 1
        return self.citizens.get(mynumber)

    async def get_users(self) -> List[Citizen]:
        return list(self.citizens.values())

    async def delete_votes(self) -> None:
        self.votes_deleted += 1

    async def check_health(self) -> bool:
        return self.healthy

    async def close(self):
        pass


@pytest.fixture
def sample_candidates() -> List[Candidate]:
    """Candidates spread over the four parties and both sexes."""
    return [
        Candidate(id=1, name="Alice", political_party="PartyX", sex="M"),
        Candidate(id=2, name="Bob", political_party="PartyY", sex="M"),
        Candidate(id=3, name="Carol", political_party="PartyX", sex="F"),
        Candidate(id=4, name="Dave", political_party="PartyZ", sex="M"),
        Candidate(id=5, name="Eve", political_party="PartyW", sex="F"),
    ]


@pytest.fixture
def sample_citizens() -> List[Citizen]:
    return [
        Citizen(mynumber="0001", name="Taro Yamada", address="Tokyo", vote_quota=10),
        Citizen(mynumber="0002", name="Hanako Sato", address="Osaka", vote_quota=5),
        Citizen(mynumber="0003", name="Jiro Suzuki", address="Kyoto", vote_quota=0),
    ]


@pytest.fixture
def database(sample_candidates, sample_citizens) -> FakeDatabase:
    return FakeDatabase(sample_candidates, sample_citizens)


@pytest.fixture
async def redis_client() -> AsyncGenerator[fakeredis.FakeAsyncRedis, None]:
    """Isolated in-process Redis for one test."""
    client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
def tally(redis_client, database) -> VoteTally:
    """Tally core over fakeredis, not yet reset."""
    return VoteTally(redis_client, database, parties=PARTIES, sexes=SEXES)


@pytest.fixture
async def initialized_tally(tally) -> VoteTally:
    """Tally core after one reset, ready to accept votes."""
    await tally.reset()
    return tally


@pytest.fixture
def vote():
    """Helper building a valid vote form for citizen 0001."""
    def _vote(**overrides) -> VoteForm:
        fields = {
            "mynumber": "0001",
            "name": "Taro Yamada",
            "address": "Tokyo",
            "vote_count": 3,
            "candidate": "Alice",
            "keyword": "economy",
        }
        fields.update(overrides)
        return VoteForm(**fields)

    return _vote


@pytest.fixture
def app(initialized_tally, redis_client, database):
    """FastAPI app wired to the in-process stores."""
    probe = RedisClient("redis://localhost:6379/0")
    probe.client = redis_client
    return create_app(tally=initialized_tally, redis_client=probe, database=database)


@pytest.fixture
async def api_client(app) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client calling the app in-process."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
