"""Voting session: reconcile, vote, dual-write, pick the next pair."""

from __future__ import annotations

import random

import structlog

from topic_arena.core.errors import InputValidationError, InvalidVoteError
from topic_arena.models import Contender, Tournament, VoteOutcome
from topic_arena.ranking.elo import apply_outcome, leaderboard, process_vote
from topic_arena.services.match import next_pair, select_pair
from topic_arena.services.storage import LocalTournamentCache, TournamentStore, reconcile

logger = structlog.get_logger()


class ArenaSession:
    """One user's voting session on one tournament.

    Each vote is written to two independent sinks: the remote store (best
    effort, may be missing or down) and the local cache (the fallback that
    survives when the remote doesn't). There is no transaction spanning the
    two; on the next load ``reconcile`` decides which copy to trust.
    """

    def __init__(
        self,
        store: TournamentStore,
        cache: LocalTournamentCache,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the session.

        Args:
            store: Remote tournament store.
            cache: Client-side durable cache.
            rng: Random source for matchup selection.
        """
        self.store = store
        self.cache = cache
        self.rng = rng
        self.tournament: Tournament | None = None
        self.current_pair: tuple[Contender, Contender] | None = None
        self.votes_cast = 0

    def adopt(self, tournament: Tournament) -> bool:
        """Start voting on a tournament this process just created.

        Returns:
            True if the local cache accepted the tournament.
        """
        cached = self.cache.put(tournament)
        self.tournament = tournament
        self.current_pair = select_pair(tournament.items, rng=self.rng)
        return cached

    async def load(self, tournament_id: str) -> Tournament | None:
        """Load the most complete known copy of a tournament.

        Returns:
            The chosen snapshot, or None if neither the store nor the cache
            has it.
        """
        remote = await self.store.fetch(tournament_id)
        local = self.cache.get(tournament_id)
        chosen = reconcile(local, remote)

        if chosen is None:
            logger.info("tournament_not_found", tournament_id=tournament_id)
            self.tournament = None
            self.current_pair = None
            return None

        logger.info(
            "session_loaded",
            tournament_id=tournament_id,
            source="local" if chosen is local else "remote",
            total_votes=chosen.total_votes,
        )
        self.cache.merge_write(chosen)
        self.tournament = chosen
        self.current_pair = select_pair(chosen.items, rng=self.rng)
        return chosen

    async def vote(self, winner_id: str, loser_id: str) -> VoteOutcome:
        """Record one contest.

        Ratings are computed from this session's current copy. The remote
        store is updated first (its failure is absorbed), then the local copy
        and the cache.

        Raises:
            RuntimeError: If no tournament is loaded.
            InvalidVoteError: If either id is not in the roster.
            InputValidationError: If winner and loser are the same contender.
        """
        if self.tournament is None:
            msg = "No tournament loaded"
            raise RuntimeError(msg)

        tournament = self.tournament
        if winner_id == loser_id:
            msg = "Winner and loser must be different contenders"
            raise InputValidationError(msg)

        winner = tournament.find(winner_id)
        if winner is None:
            raise InvalidVoteError(tournament.id, winner_id)
        loser = tournament.find(loser_id)
        if loser is None:
            raise InvalidVoteError(tournament.id, loser_id)

        outcome = process_vote(winner_id, loser_id, winner.rating, loser.rating)

        remote_written = await self.store.record_vote(
            tournament.id,
            winner_id,
            loser_id,
            outcome.winner_new_score,
            outcome.loser_new_score,
        )
        apply_outcome(tournament, outcome)
        cached = self.cache.merge_write(tournament)
        self.votes_cast += 1

        logger.info(
            "vote_recorded",
            tournament_id=tournament.id,
            winner_id=winner_id,
            loser_id=loser_id,
            remote=remote_written,
            local=cached,
        )

        self.current_pair = next_pair(tournament.items, (winner, loser), rng=self.rng)
        return outcome

    def skip(self) -> tuple[Contender, Contender] | None:
        """Replace the current pair without voting on it."""
        if self.tournament is None:
            return None
        self.current_pair = next_pair(self.tournament.items, self.current_pair, rng=self.rng)
        return self.current_pair

    def leaderboard(self) -> list[Contender]:
        """Current standings of the loaded tournament."""
        if self.tournament is None:
            return []
        return leaderboard(self.tournament.items)
