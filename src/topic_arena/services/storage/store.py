"""Tournament persistence over a key-value backend that may be missing or down."""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import UTC, datetime

import structlog
from pydantic import ValidationError

from topic_arena.models import (
    INITIAL_RATING,
    Contender,
    ContenderDraft,
    Tournament,
    VoteOutcome,
)
from topic_arena.ranking.elo import apply_outcome, leaderboard

from .backends import BackendError, KeyValueBackend

logger = structlog.get_logger()

_DRAFT_FIELDS = {"id", "name", "image_url", "image_source", "image_source_url"}


def generate_tournament_id() -> str:
    """Return a fresh opaque tournament id."""
    return uuid.uuid4().hex[:12]


class TournamentStore:
    """Create, fetch and update tournaments, degrading instead of failing.

    Every backend failure is logged and absorbed:

    - ``create`` still returns the tournament, just unpersisted, so the
      caller can keep it in the client-side cache.
    - ``fetch`` returns None, which callers cannot tell apart from "no such
      tournament".
    - ``record_vote`` silently does nothing.

    ``record_vote`` is a plain read-modify-write. Two sessions voting on the
    same tournament at the same time can overwrite each other's update; that
    race is accepted rather than hidden behind locking the backend can't
    provide.
    """

    def __init__(self, backend: KeyValueBackend | None, key_prefix: str = "tournament:") -> None:
        """Initialize the store.

        Args:
            backend: Key-value backend, or None when unconfigured.
            key_prefix: Prefix for tournament record keys.
        """
        self.backend = backend
        self.key_prefix = key_prefix

    @property
    def enabled(self) -> bool:
        """Whether a backend is configured at all."""
        return self.backend is not None

    def _key(self, tournament_id: str) -> str:
        return f"{self.key_prefix}{tournament_id}"

    def new_tournament(self, topic: str, items: Sequence[ContenderDraft]) -> Tournament:
        """Build a fresh tournament without persisting it.

        Every contender starts at the initial rating with no wins or losses,
        whatever the drafts carried.
        """
        contenders = [
            Contender(
                **item.model_dump(include=_DRAFT_FIELDS),
                rating=INITIAL_RATING,
                wins=0,
                losses=0,
            )
            for item in items
        ]
        return Tournament(
            id=generate_tournament_id(),
            topic=topic,
            items=contenders,
            created_at=datetime.now(UTC),
            total_votes=0,
        )

    async def save(self, tournament: Tournament) -> bool:
        """Write a full snapshot.

        Returns:
            True if the backend accepted the write.
        """
        if self.backend is None:
            logger.warning("store_unconfigured", tournament_id=tournament.id)
            return False

        try:
            await self.backend.set(self._key(tournament.id), tournament.to_json())
        except BackendError as e:
            logger.error("store_write_failed", tournament_id=tournament.id, error=str(e))
            return False

        logger.debug("store_write", tournament_id=tournament.id, total_votes=tournament.total_votes)
        return True

    async def create(
        self, topic: str, items: Sequence[ContenderDraft]
    ) -> tuple[Tournament, bool]:
        """Create a tournament and try to persist it.

        Args:
            topic: Tournament topic.
            items: Initial roster.

        Returns:
            The new tournament, persisted or not, and whether the write landed.
        """
        tournament = self.new_tournament(topic, items)
        persisted = await self.save(tournament)
        logger.info(
            "tournament_created",
            tournament_id=tournament.id,
            contenders=len(tournament.items),
            persisted=persisted,
        )
        return tournament, persisted

    async def fetch(self, tournament_id: str) -> Tournament | None:
        """Load a tournament.

        Returns:
            The tournament, or None if it is absent, the backend is missing or
            unreachable, or the stored snapshot can't be decoded.
        """
        if self.backend is None:
            return None

        try:
            raw = await self.backend.get(self._key(tournament_id))
        except BackendError as e:
            logger.warning("store_read_failed", tournament_id=tournament_id, error=str(e))
            return None

        if raw is None:
            return None

        try:
            return Tournament.from_json(raw)
        except ValidationError as e:
            logger.warning("store_snapshot_invalid", tournament_id=tournament_id, error=str(e))
            return None

    async def record_vote(
        self,
        tournament_id: str,
        winner_id: str,
        loser_id: str,
        winner_new_rating: int,
        loser_new_rating: int,
    ) -> bool:
        """Apply one vote to the stored tournament.

        Args:
            tournament_id: Tournament to update.
            winner_id: Winning contender.
            loser_id: Losing contender.
            winner_new_rating: Winner's rating after the contest.
            loser_new_rating: Loser's rating after the contest.

        Returns:
            True if the updated snapshot was written, False on any no-op.
        """
        tournament = await self.fetch(tournament_id)
        if tournament is None:
            return False

        outcome = VoteOutcome(
            winner_id=winner_id,
            loser_id=loser_id,
            winner_new_score=winner_new_rating,
            loser_new_score=loser_new_rating,
        )
        if not apply_outcome(tournament, outcome):
            logger.warning(
                "vote_unknown_contender",
                tournament_id=tournament_id,
                winner_id=winner_id,
                loser_id=loser_id,
            )
            return False

        return await self.save(tournament)

    async def leaderboard(self, tournament_id: str) -> list[Contender]:
        """Contenders sorted by rating, or an empty list if not found."""
        tournament = await self.fetch(tournament_id)
        if tournament is None:
            return []
        return leaderboard(tournament.items)

    async def close(self) -> None:
        """Release the backend."""
        if self.backend is not None:
            await self.backend.close()
