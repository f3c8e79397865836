"""Random matchup selection for Topic Arena."""

from __future__ import annotations

import random
from collections.abc import Collection, Sequence
from typing import TypeVar

from topic_arena.models import Contender

MIN_PAIR_SIZE = 2

T = TypeVar("T", bound=Contender)


def select_pair(
    roster: Sequence[T],
    exclude: Collection[str] = frozenset(),
    rng: random.Random | None = None,
) -> tuple[T, T] | None:
    """Pick two distinct contenders to compare next.

    Sampling is uniform. Contenders whose ids are in ``exclude`` (usually the
    pair that was just voted on) are skipped as long as at least two others
    remain; otherwise the whole roster is used. Over many votes this
    approaches round-robin coverage without any bookkeeping.

    Args:
        roster: Contenders in the tournament.
        exclude: Contender ids to avoid if possible.
        rng: Random source. Pass a seeded ``random.Random`` for reproducible
            tests; defaults to a fresh, OS-seeded generator.

    Returns:
        Two distinct contenders, or None when the roster has fewer than two.
    """
    if len(roster) < MIN_PAIR_SIZE:
        return None

    rng = rng or random.Random()  # noqa: S311
    pool = [c for c in roster if c.id not in exclude] if exclude else list(roster)
    if len(pool) < MIN_PAIR_SIZE:
        pool = list(roster)

    first, second = rng.sample(pool, MIN_PAIR_SIZE)
    return first, second


def next_pair(
    roster: Sequence[T],
    previous: tuple[Contender, Contender] | None,
    rng: random.Random | None = None,
) -> tuple[T, T] | None:
    """Select the pair after ``previous``, avoiding an immediate repeat."""
    exclude = {previous[0].id, previous[1].id} if previous else frozenset()
    return select_pair(roster, exclude=exclude, rng=rng)
