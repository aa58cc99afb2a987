"""Tests for the HTTP endpoints.

The app runs in-process over httpx's ASGI transport with fakeredis and the
in-memory database stand-in injected.
"""

import httpx
import pytest

from services.shared import VOTE_MESSAGES, VoteOutcome


def vote_payload(**overrides) -> dict:
    payload = {
        "mynumber": "0001",
        "name": "Taro Yamada",
        "address": "Tokyo",
        "vote_count": "3",
        "candidate": "Alice",
        "keyword": "economy",
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
class TestVoteEndpoint:
    """Tests for GET/POST /vote."""

    async def test_vote_form_lists_candidates(self, api_client: httpx.AsyncClient):
        response = await api_client.get("/vote")

        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        for name in ["Alice", "Bob", "Carol", "Dave", "Eve"]:
            assert name in response.text

    async def test_post_vote_success(self, api_client: httpx.AsyncClient, redis_client):
        response = await api_client.post("/vote", data=vote_payload())

        assert response.status_code == 200
        assert VOTE_MESSAGES[VoteOutcome.SUCCESS] in response.text
        assert await redis_client.get("results.candidates.1") == "3"

    @pytest.mark.parametrize("overrides, outcome", [
        ({"name": "Someone Else"}, VoteOutcome.INVALID_IDENTITY),
        ({"vote_count": "11"}, VoteOutcome.QUOTA_EXCEEDED),
        ({"candidate": ""}, VoteOutcome.CANDIDATE_BLANK),
        ({"candidate": "Mallory"}, VoteOutcome.INVALID_CANDIDATE),
        ({"keyword": ""}, VoteOutcome.KEYWORD_BLANK),
    ])
    async def test_post_vote_rejections(
        self,
        api_client: httpx.AsyncClient,
        redis_client,
        overrides: dict,
        outcome: VoteOutcome
    ):
        response = await api_client.post("/vote", data=vote_payload(**overrides))

        assert response.status_code == 200
        assert VOTE_MESSAGES[outcome] in response.text
        assert await redis_client.get("results.candidates.1") == "0"

    async def test_post_vote_missing_fields(self, api_client: httpx.AsyncClient):
        response = await api_client.post("/vote", data={"mynumber": "0001"})

        assert response.status_code == 200
        assert VOTE_MESSAGES[VoteOutcome.INVALID_IDENTITY] in response.text

    async def test_store_failure_is_server_error(self, app, api_client: httpx.AsyncClient, monkeypatch):
        async def broken(form):
            raise ConnectionError("redis down")

        monkeypatch.setattr(app.state.tally, "submit", broken)

        response = await api_client.post("/vote", data=vote_payload())

        assert response.status_code == 500


@pytest.mark.asyncio
class TestResultPages:
    """Tests for the result pages."""

    async def test_index(self, api_client: httpx.AsyncClient):
        await api_client.post("/vote", data=vote_payload(candidate="Dave", vote_count="4"))

        response = await api_client.get("/")

        assert response.status_code == 200
        assert response.text.index("Dave") < response.text.index("Alice")
        assert "PartyZ" in response.text

    async def test_candidate_page(self, api_client: httpx.AsyncClient):
        await api_client.post("/vote", data=vote_payload(keyword="taxes"))

        response = await api_client.get("/candidates/1")

        assert response.status_code == 200
        assert "Alice" in response.text
        assert "taxes" in response.text

    @pytest.mark.parametrize("candidate_id", ["404", "abc", "²", "-1"])
    async def test_unknown_candidate_redirects(self, api_client: httpx.AsyncClient, candidate_id: str):
        response = await api_client.get(f"/candidates/{candidate_id}")

        assert response.status_code == 302
        assert response.headers["location"] == "/"

    async def test_party_page(self, api_client: httpx.AsyncClient):
        await api_client.post("/vote", data=vote_payload(candidate="Carol", keyword="schools"))

        response = await api_client.get("/political_parties/PartyX")

        assert response.status_code == 200
        assert "Alice" in response.text
        assert "Carol" in response.text
        assert "schools" in response.text

    async def test_keywords_are_escaped(self, api_client: httpx.AsyncClient):
        await api_client.post("/vote", data=vote_payload(keyword="<script>x</script>"))

        response = await api_client.get("/candidates/1")

        assert "<script>x</script>" not in response.text
        assert "&lt;script&gt;" in response.text


@pytest.mark.asyncio
class TestAdminEndpoints:

    async def test_initialize_resets_results(self, api_client: httpx.AsyncClient, redis_client, database):
        await api_client.post("/vote", data=vote_payload())

        response = await api_client.get("/initialize")

        assert response.status_code == 200
        assert response.content == b""
        assert await redis_client.get("results.candidates.1") == "0"
        assert await redis_client.exists("users.votes.0001") == 0
        assert database.votes_deleted == 2

    async def test_liveness(self, api_client: httpx.AsyncClient):
        response = await api_client.get("/health")

        assert response.status_code == 200
        assert response.content == b""

    async def test_readiness(self, api_client: httpx.AsyncClient):
        response = await api_client.get("/api/v1/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["services"] == {"postgresql": "connected", "redis": "connected"}

    async def test_readiness_database_down(self, api_client: httpx.AsyncClient, database):
        database.healthy = False

        response = await api_client.get("/api/v1/health")

        assert response.status_code == 503
        assert response.json()["services"]["postgresql"] == "disconnected"

    async def test_metrics(self, api_client: httpx.AsyncClient):
        await api_client.post("/vote", data=vote_payload())

        response = await api_client.get("/metrics")

        assert response.status_code == 200
        assert "votes_submitted_total" in response.text
