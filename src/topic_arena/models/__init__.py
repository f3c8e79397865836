from .tournament import (
    INITIAL_RATING,
    Contender,
    ContenderDraft,
    ImageSource,
    ResolvedImage,
    Tournament,
    VoteOutcome,
)

__all__ = [
    "INITIAL_RATING",
    "Contender",
    "ContenderDraft",
    "ImageSource",
    "ResolvedImage",
    "Tournament",
    "VoteOutcome",
]
