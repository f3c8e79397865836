"""Tests for the HTTP API."""

import httpx
import pytest

from topic_arena.api import create_app, parse_items
from topic_arena.core.config import ArenaConfig, ImageConfig
from topic_arena.core.errors import InputValidationError
from topic_arena.services.images import ImageResolver
from topic_arena.services.storage import MemoryBackend, TournamentStore


def _offline(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("offline", request=request)


def _client(store: TournamentStore | None = None, enrich: bool = True) -> httpx.AsyncClient:
    resolver = ImageResolver(
        ImageConfig(),
        client=httpx.AsyncClient(transport=httpx.MockTransport(_offline)),
    )
    config = ArenaConfig(images=ImageConfig(enrich_generated=enrich))
    app = create_app(store or TournamentStore(MemoryBackend()), resolver, config)
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


ITEMS = [
    {"id": "a", "name": "Tea", "imageUrl": "https://img/tea.png"},
    {"id": "b", "name": "Coffee", "imageUrl": "https://img/coffee.png"},
    {"id": "c", "name": "Cocoa", "imageUrl": "https://img/cocoa.png"},
]


class TestCreateTournament:
    """Tests for POST /tournament."""

    async def test_create_with_items(self):
        """Test supplied items are used as given."""
        async with _client() as client:
            response = await client.post("/tournament", json={"topic": "Drinks", "items": ITEMS})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["persisted"] is True
        assert body["tournamentId"] == body["tournament"]["id"]
        items = body["tournament"]["items"]
        assert [i["id"] for i in items] == ["a", "b", "c"]
        assert items[0]["imageUrl"] == "https://img/tea.png"
        assert all(i["rating"] == 1500 for i in items)
        assert body["tournament"]["totalVotes"] == 0

    async def test_default_roster_enriched(self):
        """Test an omitted roster is generated and run through the resolver."""
        async with _client() as client:
            response = await client.post("/tournament", json={"topic": "Office Snacks"})

        items = response.json()["tournament"]["items"]
        assert len(items) == 16
        assert items[0]["name"] == "Chocolate Chip Cookies"
        assert all(i["imageSource"] == "pollinations" for i in items)

    async def test_default_roster_without_enrichment(self):
        """Test stock images are kept when enrichment is off."""
        async with _client(enrich=False) as client:
            response = await client.post("/tournament", json={"topic": "Movies", "items": []})

        items = response.json()["tournament"]["items"]
        assert all(i["imageSource"] == "unsplash" for i in items)

    async def test_unconfigured_store_degrades(self):
        """Test creation still succeeds, flagged as unpersisted."""
        async with _client(TournamentStore(None)) as client:
            response = await client.post("/tournament", json={"topic": "Drinks", "items": ITEMS})

        assert response.status_code == 200
        assert response.json()["persisted"] is False

    @pytest.mark.parametrize("body", [{}, {"topic": ""}, {"topic": 42}, {"topic": None}])
    async def test_bad_topic(self, body):
        """Test a missing or non-string topic is rejected."""
        async with _client() as client:
            response = await client.post("/tournament", json=body)
        assert response.status_code == 400
        assert response.json() == {"error": "Topic is required"}

    async def test_malformed_items(self):
        """Test malformed roster entries are rejected."""
        async with _client() as client:
            response = await client.post("/tournament", json={"topic": "X", "items": ["Tea"]})
        assert response.status_code == 400
        assert "error" in response.json()

    async def test_invalid_json(self):
        """Test a non-JSON body is rejected."""
        async with _client() as client:
            response = await client.post(
                "/tournament", content=b"not json", headers={"content-type": "application/json"}
            )
        assert response.status_code == 400


class TestGetTournament:
    """Tests for GET /tournament."""

    async def test_round_trip(self):
        """Test a created tournament can be fetched."""
        async with _client() as client:
            created = await client.post("/tournament", json={"topic": "Drinks", "items": ITEMS})
            tournament_id = created.json()["tournamentId"]
            response = await client.get("/tournament", params={"id": tournament_id})

        assert response.status_code == 200
        assert response.json() == created.json()["tournament"]

    async def test_missing_id(self):
        """Test the id parameter is required."""
        async with _client() as client:
            response = await client.get("/tournament")
        assert response.status_code == 400

    async def test_not_found(self):
        """Test unknown ids are 404."""
        async with _client() as client:
            response = await client.get("/tournament", params={"id": "nope"})
        assert response.status_code == 404

    async def test_unconfigured_store_not_found(self):
        """Test an unconfigured store reads as not found."""
        async with _client(TournamentStore(None)) as client:
            response = await client.get("/tournament", params={"id": "any"})
        assert response.status_code == 404


class TestVote:
    """Tests for POST /vote."""

    async def _create(self, client: httpx.AsyncClient) -> str:
        response = await client.post("/tournament", json={"topic": "Drinks", "items": ITEMS})
        return response.json()["tournamentId"]

    async def test_vote(self):
        """Test a vote returns new scores and updates the snapshot."""
        async with _client() as client:
            tournament_id = await self._create(client)
            response = await client.post(
                "/vote", json={"tournamentId": tournament_id, "winnerId": "a", "loserId": "b"}
            )
            snapshot = (await client.get("/tournament", params={"id": tournament_id})).json()

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "result": {"winnerId": "a", "loserId": "b", "winnerNewScore": 1516, "loserNewScore": 1484},
        }
        assert snapshot["totalVotes"] == 1
        assert snapshot["items"][0]["wins"] == 1
        assert snapshot["items"][1]["losses"] == 1

    @pytest.mark.parametrize(
        "body",
        [{"winnerId": "a", "loserId": "b"}, {"tournamentId": "x", "loserId": "b"}, {"tournamentId": "x"}],
    )
    async def test_missing_fields(self, body):
        """Test every field is required."""
        async with _client() as client:
            response = await client.post("/vote", json=body)
        assert response.status_code == 400

    async def test_unknown_item(self):
        """Test ids outside the roster are rejected."""
        async with _client() as client:
            tournament_id = await self._create(client)
            response = await client.post(
                "/vote", json={"tournamentId": tournament_id, "winnerId": "a", "loserId": "zzz"}
            )
        assert response.status_code == 400
        assert "zzz" in response.json()["error"]

    async def test_same_item(self):
        """Test a contender can't beat itself."""
        async with _client() as client:
            tournament_id = await self._create(client)
            response = await client.post(
                "/vote", json={"tournamentId": tournament_id, "winnerId": "a", "loserId": "a"}
            )
        assert response.status_code == 400

    async def test_tournament_not_found(self):
        """Test votes on unknown tournaments are 404."""
        async with _client() as client:
            response = await client.post(
                "/vote", json={"tournamentId": "nope", "winnerId": "a", "loserId": "b"}
            )
        assert response.status_code == 404


class TestLeaderboard:
    """Tests for GET /leaderboard."""

    async def test_sorted(self):
        """Test standings are sorted by rating."""
        async with _client() as client:
            created = await client.post("/tournament", json={"topic": "Drinks", "items": ITEMS})
            tournament_id = created.json()["tournamentId"]
            await client.post(
                "/vote", json={"tournamentId": tournament_id, "winnerId": "c", "loserId": "a"}
            )
            response = await client.get("/leaderboard", params={"id": tournament_id})

        body = response.json()
        assert [i["id"] for i in body["items"]] == ["c", "b", "a"]
        assert body["totalVotes"] == 1

    async def test_not_found(self):
        """Test unknown ids are 404."""
        async with _client() as client:
            response = await client.get("/leaderboard", params={"id": "nope"})
        assert response.status_code == 404


class TestParseItems:
    """Tests for roster validation."""

    def test_missing_ids_numbered(self):
        """Test entries without ids get their position."""
        drafts = parse_items([{"name": "Tea"}, {"name": "Coffee", "id": 7}])
        assert [d.id for d in drafts] == ["1", "7"]

    def test_duplicate_ids(self):
        """Test duplicate ids are rejected."""
        with pytest.raises(InputValidationError):
            parse_items([{"id": "a", "name": "Tea"}, {"id": "a", "name": "Coffee"}])

    def test_missing_name(self):
        """Test entries need a name."""
        with pytest.raises(InputValidationError):
            parse_items([{"id": "a"}])

    def test_not_a_list(self):
        """Test the roster must be a list."""
        with pytest.raises(InputValidationError):
            parse_items({"id": "a"})
