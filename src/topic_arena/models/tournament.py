"""Tournament, contender and vote models.

Attributes are snake_case in Python and camelCase on the wire, so a snapshot
written by the HTTP layer, the remote store or the local cache reads back the
same everywhere.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from pydantic.alias_generators import to_camel

INITIAL_RATING = 1500

ImageSource = Literal[
    "wikipedia",
    "commons",
    "pollinations",
    "unsplash",
    "google",
    "placeholder",
    "unknown",
]


class ArenaModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump to a JSON-compatible dict using wire (camelCase) names."""
        return self.model_dump(by_alias=True, mode="json")


class ResolvedImage(ArenaModel):
    """An image reference plus where it came from."""

    model_config = ConfigDict(frozen=True)

    image_url: str
    image_source: ImageSource
    image_source_url: str | None = None


class ContenderDraft(ArenaModel):
    """A contender before it joins a tournament (no rating yet)."""

    id: str
    name: str
    image_url: str = ""
    image_source: ImageSource = "unknown"
    image_source_url: str | None = None

    def with_image(self, image: ResolvedImage) -> ContenderDraft:
        """Return a copy carrying the resolved image and its provenance."""
        return self.model_copy(
            update={
                "image_url": image.image_url,
                "image_source": image.image_source,
                "image_source_url": image.image_source_url,
            }
        )


class Contender(ContenderDraft):
    """A contender inside a tournament, with its running rating."""

    rating: int = INITIAL_RATING
    wins: int = 0
    losses: int = 0

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_score(cls, data: Any) -> Any:
        # Older snapshots stored the rating as "eloScore".
        if isinstance(data, dict) and "rating" not in data and "eloScore" in data:
            data = {**data, "rating": data["eloScore"]}
        return data

    @property
    def matches(self) -> int:
        return self.wins + self.losses


class Tournament(ArenaModel):
    """A topic, its ordered roster and the number of committed votes."""

    id: str
    topic: str
    items: list[Contender]
    created_at: datetime
    total_votes: int = 0

    @field_validator("items")
    @classmethod
    def validate_unique_ids(cls, v: list[Contender]) -> list[Contender]:
        seen: set[str] = set()
        for item in v:
            if item.id in seen:
                msg = f"Duplicate contender id: {item.id}"
                raise ValueError(msg)
            seen.add(item.id)
        return v

    def find(self, contender_id: str) -> Contender | None:
        """Look up a contender by id."""
        return next((item for item in self.items if item.id == contender_id), None)

    def to_json(self) -> str:
        """Serialize to the snapshot format shared by every store."""
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, raw: str | bytes) -> Tournament:
        """Parse a snapshot produced by ``to_json``."""
        return cls.model_validate_json(raw)


class VoteOutcome(ArenaModel):
    """Result of one contest, as returned to callers. Never stored by itself."""

    model_config = ConfigDict(frozen=True)

    winner_id: str
    loser_id: str
    winner_new_score: int
    loser_new_score: int
