"""Tests for the tournament store and its key-value backends."""

import json
import tempfile
from pathlib import Path
from unittest.mock import AsyncMock

import httpx
import pytest

from topic_arena.core.config import StoreConfig
from topic_arena.core.errors import MissingFieldError, StoreCredentialsError
from topic_arena.models import ContenderDraft
from topic_arena.services.storage import (
    BackendError,
    DuckDBBackend,
    MemoryBackend,
    TournamentStore,
    UpstashBackend,
    create_backend,
)


def _drafts(count: int = 3) -> list[ContenderDraft]:
    return [
        ContenderDraft(id=str(i), name=f"Item {i}", image_url=f"https://img/{i}.png")
        for i in range(1, count + 1)
    ]


class FailingBackend:
    """Backend whose every call fails."""

    name = "failing"

    async def get(self, key):
        raise BackendError("unreachable")

    async def set(self, key, value):
        raise BackendError("unreachable")

    async def close(self):
        return None


class TestTournamentStoreCreate:
    """Tests for creating tournaments."""

    async def test_fresh_tournament_state(self):
        """Test every contender starts at 1500 with zero counters."""
        store = TournamentStore(MemoryBackend())
        tournament, _ = await store.create("Snacks", _drafts())

        assert tournament.topic == "Snacks"
        assert tournament.total_votes == 0
        assert [c.id for c in tournament.items] == ["1", "2", "3"]
        for item in tournament.items:
            assert item.rating == 1500
            assert item.wins == 0
            assert item.losses == 0
        assert tournament.created_at.tzinfo is not None

    async def test_unique_ids(self):
        """Test each creation gets its own id."""
        store = TournamentStore(MemoryBackend())
        first, _ = await store.create("Snacks", _drafts())
        second, _ = await store.create("Snacks", _drafts())
        assert first.id != second.id

    async def test_create_then_fetch(self):
        """Test a created tournament reads back identically."""
        store = TournamentStore(MemoryBackend())
        created, persisted = await store.create("Snacks", _drafts())

        fetched = await store.fetch(created.id)
        assert persisted is True
        assert fetched == created

    async def test_record_key_layout(self):
        """Test snapshots are stored under tournament:{id} with camelCase keys."""
        backend = MemoryBackend()
        store = TournamentStore(backend)
        created, _ = await store.create("Snacks", _drafts())

        raw = await backend.get(f"tournament:{created.id}")
        data = json.loads(raw)
        assert data["id"] == created.id
        assert data["totalVotes"] == 0
        assert data["items"][0]["imageUrl"] == "https://img/1.png"
        assert "createdAt" in data

    async def test_unconfigured_returns_unpersisted(self):
        """Test creation succeeds without a backend but isn't saved."""
        store = TournamentStore(None)
        tournament, persisted = await store.create("Snacks", _drafts())

        assert persisted is False
        assert tournament.total_votes == 0
        assert store.enabled is False
        assert await store.save(tournament) is False
        assert await store.fetch(tournament.id) is None

    async def test_failing_backend_degrades(self):
        """Test backend errors never escape creation."""
        store = TournamentStore(FailingBackend())
        tournament, persisted = await store.create("Snacks", _drafts())

        assert persisted is False
        assert len(tournament.items) == 3
        assert await store.save(tournament) is False


class TestTournamentStoreFetch:
    """Tests for fetching tournaments."""

    async def test_missing_returns_none(self):
        """Test unknown ids read as None."""
        store = TournamentStore(MemoryBackend())
        assert await store.fetch("nope") is None

    async def test_unavailable_returns_none(self):
        """Test a failing backend reads as None."""
        store = TournamentStore(FailingBackend())
        assert await store.fetch("any") is None

    async def test_corrupt_snapshot_returns_none(self):
        """Test undecodable snapshots read as None."""
        backend = MemoryBackend()
        await backend.set("tournament:bad", "{not json")
        store = TournamentStore(backend)
        assert await store.fetch("bad") is None

    async def test_legacy_elo_score_accepted(self):
        """Test snapshots storing eloScore instead of rating still load."""
        backend = MemoryBackend()
        snapshot = {
            "id": "old",
            "topic": "Movies",
            "items": [
                {"id": "1", "name": "Alien", "imageUrl": "", "eloScore": 1532, "wins": 1},
                {"id": "2", "name": "Heat", "imageUrl": "", "eloScore": 1468, "losses": 1},
            ],
            "createdAt": "2024-01-01T00:00:00Z",
            "totalVotes": 1,
        }
        await backend.set("tournament:old", json.dumps(snapshot))

        tournament = await TournamentStore(backend).fetch("old")
        assert tournament is not None
        assert [c.rating for c in tournament.items] == [1532, 1468]


class TestRecordVote:
    """Tests for read-modify-write vote recording."""

    async def test_vote_updates_snapshot(self):
        """Test one vote moves ratings, counters and total once."""
        store = TournamentStore(MemoryBackend())
        created, _ = await store.create("Snacks", _drafts())

        assert await store.record_vote(created.id, "1", "2", 1516, 1484) is True

        updated = await store.fetch(created.id)
        winner, loser, bystander = updated.items
        assert (winner.rating, winner.wins, winner.losses) == (1516, 1, 0)
        assert (loser.rating, loser.wins, loser.losses) == (1484, 0, 1)
        assert (bystander.rating, bystander.wins, bystander.losses) == (1500, 0, 0)
        assert updated.total_votes == 1

    async def test_missing_tournament_noop(self):
        """Test votes on unknown tournaments do nothing."""
        backend = MemoryBackend()
        backend.set = AsyncMock()
        store = TournamentStore(backend)

        assert await store.record_vote("nope", "1", "2", 1516, 1484) is False
        backend.set.assert_not_called()

    async def test_unknown_contender_noop(self):
        """Test votes naming a missing contender leave the snapshot unchanged."""
        store = TournamentStore(MemoryBackend())
        created, _ = await store.create("Snacks", _drafts())

        assert await store.record_vote(created.id, "1", "99", 1516, 1484) is False
        assert await store.fetch(created.id) == created

    async def test_unavailable_noop(self):
        """Test a failing backend swallows the vote."""
        store = TournamentStore(FailingBackend())
        assert await store.record_vote("any", "1", "2", 1516, 1484) is False

    async def test_leaderboard(self):
        """Test standings come back sorted by rating."""
        store = TournamentStore(MemoryBackend())
        created, _ = await store.create("Snacks", _drafts())
        await store.record_vote(created.id, "3", "1", 1516, 1484)

        standings = await store.leaderboard(created.id)
        assert [c.id for c in standings] == ["3", "2", "1"]
        assert await store.leaderboard("nope") == []


class TestDuckDBBackend:
    """Tests for the DuckDB key-value backend."""

    async def test_get_missing(self):
        """Test absent keys read as None."""
        with tempfile.TemporaryDirectory() as tmpdir:
            backend = DuckDBBackend(Path(tmpdir) / "arena.duckdb")
            assert await backend.get("missing") is None
            await backend.close()

    async def test_set_overwrite_get(self):
        """Test values round-trip and later writes replace earlier ones."""
        with tempfile.TemporaryDirectory() as tmpdir:
            backend = DuckDBBackend(Path(tmpdir) / "nested" / "arena.duckdb")
            await backend.set("k", "one")
            await backend.set("k", "two")
            assert await backend.get("k") == "two"
            await backend.close()

    async def test_store_over_duckdb(self):
        """Test the store persists across backend instances on the same file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            db_path = Path(tmpdir) / "arena.duckdb"
            first = TournamentStore(DuckDBBackend(db_path))
            created, _ = await first.create("Snacks", _drafts())
            await first.close()

            second = TournamentStore(DuckDBBackend(db_path))
            assert await second.fetch(created.id) == created
            await second.close()


class TestUpstashBackend:
    """Tests for the Upstash REST backend."""

    def _backend(self, handler) -> UpstashBackend:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return UpstashBackend("https://eu1.upstash.io/", "secret", client=client)

    async def test_commands_and_auth(self):
        """Test commands are POSTed as JSON arrays with a bearer token."""
        seen = []
        data: dict[str, str] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            command = json.loads(request.content)
            seen.append((request.url.host, request.headers["Authorization"], command))
            if command[0] == "SET":
                data[command[1]] = command[2]
                return httpx.Response(200, json={"result": "OK"})
            return httpx.Response(200, json={"result": data.get(command[1])})

        backend = self._backend(handler)
        await backend.set("tournament:a", "{}")
        assert await backend.get("tournament:a") == "{}"
        assert await backend.get("tournament:b") is None

        assert seen[0] == ("eu1.upstash.io", "Bearer secret", ["SET", "tournament:a", "{}"])
        await backend.close()

    async def test_error_payload(self):
        """Test Upstash error replies become BackendError."""
        backend = self._backend(lambda _: httpx.Response(200, json={"error": "WRONGPASS"}))
        with pytest.raises(BackendError):
            await backend.get("k")

    async def test_http_status_error(self):
        """Test non-2xx replies become BackendError."""
        backend = self._backend(lambda _: httpx.Response(401, json={"error": "Unauthorized"}))
        with pytest.raises(BackendError):
            await backend.set("k", "v")

    async def test_transport_error_retried_then_raised(self):
        """Test transport errors are retried once before giving up."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ConnectError("down", request=request)

        backend = self._backend(handler)
        with pytest.raises(BackendError):
            await backend.get("k")
        assert len(calls) == 2

    async def test_transient_error_recovers(self):
        """Test a single transport failure is absorbed by the retry."""
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            if len(attempts) == 1:
                raise httpx.ReadTimeout("slow", request=request)
            return httpx.Response(200, json={"result": "value"})

        backend = self._backend(handler)
        assert await backend.get("k") == "value"

    async def test_store_over_unreachable_upstash(self):
        """Test the store degrades when Upstash is down."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("down", request=request)

        store = TournamentStore(self._backend(handler))
        tournament, _ = await store.create("Snacks", _drafts())
        assert tournament.total_votes == 0
        assert await store.fetch(tournament.id) is None


class TestCreateBackend:
    """Tests for backend selection."""

    def test_auto_prefers_upstash(self):
        """Test both credentials select Upstash."""
        backend = create_backend(
            StoreConfig(upstash_url="https://eu1.upstash.io", upstash_token="t", duckdb_path="x")
        )
        assert isinstance(backend, UpstashBackend)

    def test_auto_duckdb(self):
        """Test a DuckDB path is used without Upstash credentials."""
        with tempfile.TemporaryDirectory() as tmpdir:
            backend = create_backend(StoreConfig(duckdb_path=str(Path(tmpdir) / "a.duckdb")))
            assert isinstance(backend, DuckDBBackend)

    def test_auto_memory(self):
        """Test memory is the last resort."""
        assert isinstance(create_backend(StoreConfig(upstash_url="only-url")), MemoryBackend)

    def test_none_is_unconfigured(self):
        """Test backend none leaves the store unconfigured."""
        assert create_backend(StoreConfig(backend="none")) is None

    def test_upstash_without_credentials(self):
        """Test explicit Upstash without credentials fails loudly."""
        with pytest.raises(StoreCredentialsError):
            create_backend(StoreConfig(backend="upstash", upstash_url="https://x.upstash.io"))

    def test_duckdb_without_path(self):
        """Test explicit DuckDB without a path fails loudly."""
        with pytest.raises(MissingFieldError):
            create_backend(StoreConfig(backend="duckdb"))
