"""Ranking module for Topic Arena.

Provides the Elo rating engine used for every pairwise vote.
"""

from topic_arena.ranking.elo import (
    K_FACTOR,
    apply_outcome,
    calculate_expected_win_chance,
    leaderboard,
    process_vote,
    rate,
    round_half_away,
)

__all__ = [
    "K_FACTOR",
    "apply_outcome",
    "calculate_expected_win_chance",
    "leaderboard",
    "process_vote",
    "rate",
    "round_half_away",
]
