"""Elo rating calculations for Topic Arena."""

from __future__ import annotations

import math
from collections.abc import Sequence

from topic_arena.models import Contender, Tournament, VoteOutcome

K_FACTOR = 32


def round_half_away(value: float) -> int:
    """Round to the nearest integer, ties away from zero.

    Python's ``round`` uses banker's rounding, which would turn 1516.5 into
    1516 instead of 1517.
    """
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def calculate_expected_win_chance(rating_a: float, rating_b: float) -> float:
    """Calculate expected win probability for player A against player B.

    Uses the standard Elo formula:
    E_A = 1 / (1 + 10^((R_B - R_A) / 400))

    Args:
        rating_a: Rating of player A.
        rating_b: Rating of player B.

    Returns:
        Probability that A wins (0.0 to 1.0).
    """
    return 1.0 / (1.0 + 10 ** ((rating_b - rating_a) / 400))


def rate(winner_rating: float, loser_rating: float, k_factor: float = K_FACTOR) -> tuple[int, int]:
    """Compute new ratings after a contest with a declared winner.

    Ratings are not clamped and can go negative over a long losing streak.

    Args:
        winner_rating: Current rating of the winner.
        loser_rating: Current rating of the loser.
        k_factor: Step size (fixed at 32 for every contest in the arena).

    Returns:
        Tuple of (new_winner_rating, new_loser_rating).
    """
    winner_expected = calculate_expected_win_chance(winner_rating, loser_rating)
    loser_expected = calculate_expected_win_chance(loser_rating, winner_rating)

    # Winner scores 1, loser scores 0
    new_winner = round_half_away(winner_rating + k_factor * (1 - winner_expected))
    new_loser = round_half_away(loser_rating + k_factor * (0 - loser_expected))
    return new_winner, new_loser


def process_vote(
    winner_id: str,
    loser_id: str,
    winner_rating: float,
    loser_rating: float,
) -> VoteOutcome:
    """Rate one contest and package the result.

    Args:
        winner_id: ID of the winning contender.
        loser_id: ID of the losing contender.
        winner_rating: Current rating of the winner.
        loser_rating: Current rating of the loser.

    Returns:
        VoteOutcome with both new scores.
    """
    new_winner, new_loser = rate(winner_rating, loser_rating)
    return VoteOutcome(
        winner_id=winner_id,
        loser_id=loser_id,
        winner_new_score=new_winner,
        loser_new_score=new_loser,
    )


def apply_outcome(tournament: Tournament, outcome: VoteOutcome) -> bool:
    """Apply a vote outcome to a tournament in place.

    Ratings, the winner's wins, the loser's losses and ``total_votes`` move
    together; nothing changes if either contender is missing.

    Returns:
        True if the outcome was applied.
    """
    winner = tournament.find(outcome.winner_id)
    loser = tournament.find(outcome.loser_id)
    if winner is None or loser is None:
        return False

    winner.rating = outcome.winner_new_score
    winner.wins += 1
    loser.rating = outcome.loser_new_score
    loser.losses += 1
    tournament.total_votes += 1
    return True


def leaderboard(items: Sequence[Contender]) -> list[Contender]:
    """Sort contenders by rating descending; ties keep roster order."""
    return sorted(items, key=lambda c: c.rating, reverse=True)
