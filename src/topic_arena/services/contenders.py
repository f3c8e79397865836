"""Built-in rosters used when a tournament is created without contenders."""

from __future__ import annotations

from urllib.parse import quote

from topic_arena.models import ContenderDraft

ROSTER_SIZE = 16

_UNSPLASH = "https://images.unsplash.com"

SNACK_ROSTER: list[tuple[str, str]] = [
    ("Chocolate Chip Cookies", "photo-1499636136210-6f4ee915583e"),
    ("Potato Chips", "photo-1566478989037-eec170784d0b"),
    ("Granola Bars", "photo-1606312619070-d48b4cbc5b52"),
    ("Mixed Nuts", "photo-1599599810769-bcde5a160d32"),
    ("Fresh Fruit", "photo-1619566636858-adf3ef46400b"),
    ("Pretzels", "photo-1599490659213-e2b9527bd087"),
    ("Popcorn", "photo-1578849278619-e73505e9610f"),
    ("Trail Mix", "photo-1520967824495-b529aeba26df"),
    ("Protein Bars", "photo-1607623814075-e51df1bdc82f"),
    ("Crackers & Cheese", "photo-1452195100486-9cc805987862"),
    ("Yogurt", "photo-1488477181946-6428a0291777"),
    ("Candy Bars", "photo-1582058091505-f87a2e55a40f"),
    ("Rice Cakes", "photo-1586201375761-83865001e31c"),
    ("Beef Jerky", "photo-1603894584373-5ac82b2ae398"),
    ("Veggie Sticks", "photo-1566385101042-1a0aa0c1268c"),
    ("Cookies & Cream", "photo-1558961363-fa8fdf82db35"),
]

MOVIE_ROSTER: list[tuple[str, str]] = [
    ("The Shawshank Redemption", "photo-1536440136628-849c177e76a1"),
    ("The Godfather", "photo-1478720568477-152d9b164e26"),
    ("The Dark Knight", "photo-1509347528160-9a9e33742cdb"),
    ("Pulp Fiction", "photo-1594908900066-3f47337549d8"),
    ("Forrest Gump", "photo-1485846234645-a62644f84728"),
    ("Inception", "photo-1440404653325-ab127d49abc1"),
    ("The Matrix", "photo-1574267432644-f610a4ab5f6c"),
    ("Interstellar", "photo-1446776653964-20c1d3a81b06"),
    ("Fight Club", "photo-1489599849927-2ee91cede3ba"),
    ("Goodfellas", "photo-1489599849927-2ee91cede3ba"),
    ("The Silence of the Lambs", "photo-1518676590629-3dcbd9c5a5c9"),
    ("Saving Private Ryan", "photo-1478720568477-152d9b164e26"),
    ("The Green Mile", "photo-1489599849927-2ee91cede3ba"),
    ("Gladiator", "photo-1478720568477-152d9b164e26"),
    ("The Departed", "photo-1489599849927-2ee91cede3ba"),
    ("The Prestige", "photo-1489599849927-2ee91cede3ba"),
]

_GENERIC_PHOTO = "photo-1557683316-973673baf926"


def _draft(index: int, name: str, image_url: str) -> ContenderDraft:
    return ContenderDraft(
        id=str(index),
        name=name,
        image_url=image_url,
        image_source="unsplash",
        image_source_url=_UNSPLASH,
    )


def default_contenders(topic: str) -> list[ContenderDraft]:
    """Pick a built-in roster for a topic.

    Snack and office topics get the snack roster, movie and film topics the
    movie roster; anything else gets numbered "{topic} Option n" entries.

    Args:
        topic: Tournament topic.

    Returns:
        Sixteen drafts with stock images tagged ``unsplash``.
    """
    topic_lower = topic.lower()

    roster: list[tuple[str, str]] | None = None
    if "snack" in topic_lower or "office" in topic_lower:
        roster = SNACK_ROSTER
    elif "movie" in topic_lower or "film" in topic_lower:
        roster = MOVIE_ROSTER

    if roster is not None:
        return [
            _draft(i, name, f"{_UNSPLASH}/{photo}?w=400")
            for i, (name, photo) in enumerate(roster, 1)
        ]

    return [
        _draft(
            i,
            f"{topic} Option {i}",
            f"{_UNSPLASH}/{_GENERIC_PHOTO}?w=400&q=80&auto=format&fit=crop"
            f"&txt={quote(f'{topic} {i}', safe='')}",
        )
        for i in range(1, ROSTER_SIZE + 1)
    ]
