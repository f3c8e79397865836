"""Client-side durable mirror of tournament state.

All tournaments live in one JSON object (id -> snapshot) serialized under a
single well-known key of a ``StorageArea``, the same way a browser keeps it in
``localStorage``. Reads and writes are best effort: an unreadable area, a
full quota or a corrupt blob is logged and treated as "nothing cached" or
"write had no effect".
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

import structlog
from pydantic import ValidationError

from topic_arena.core.config import DEFAULT_CACHE_KEY
from topic_arena.models import Tournament

logger = structlog.get_logger()


class StorageUnavailableError(OSError):
    """The storage area cannot be used at all."""


class QuotaExceededError(OSError):
    """A write would push the storage area past its byte quota."""


class StorageArea(Protocol):
    """Synchronous string key-value area, shaped like ``localStorage``."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...


class MemoryStorageArea:
    """In-memory storage area with an optional byte quota."""

    def __init__(self, max_bytes: int | None = None) -> None:
        self.max_bytes = max_bytes
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self.max_bytes is not None and len(value.encode("utf-8")) > self.max_bytes:
            raise QuotaExceededError(f"Value for {key} exceeds {self.max_bytes} bytes")
        self._items[key] = value


class FileStorageArea:
    """Storage area keeping one file per key inside a directory.

    Writes go to a temporary file that is then renamed over the target, so a
    crash mid-write leaves the previous blob intact.
    """

    def __init__(self, directory: Path, max_bytes: int | None = None) -> None:
        """Initialize the storage area.

        Args:
            directory: Directory holding the key files (created on first write).
            max_bytes: Optional per-value quota.
        """
        self.directory = directory
        self.max_bytes = max_bytes

    def _path(self, key: str) -> Path:
        safe_key = "".join(ch if ch.isalnum() or ch in "-_." else "_" for ch in key)
        return self.directory / f"{safe_key}.json"

    def get_item(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        encoded = value.encode("utf-8")
        if self.max_bytes is not None and len(encoded) > self.max_bytes:
            raise QuotaExceededError(f"Value for {key} exceeds {self.max_bytes} bytes")

        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(encoded)
            Path(tmp_name).replace(self._path(key))
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def reconcile(local: Tournament | None, remote: Tournament | None) -> Tournament | None:
    """Choose between a local and a remote snapshot of the same tournament.

    The local copy wins only when it has strictly more votes, meaning it has
    applied votes the remote never durably received. Otherwise the remote
    copy wins when present, and the local copy is the last resort.

    This is a vote-count heuristic, not a merge: remote-only votes are lost
    when the remote count ties or exceeds the local one while actually
    lagging in time.
    """
    if local is not None and remote is not None:
        return local if local.total_votes > remote.total_votes else remote
    return remote if remote is not None else local


class LocalTournamentCache:
    """Best-effort mirror of full tournament snapshots keyed by id."""

    def __init__(self, area: StorageArea | None, key: str = DEFAULT_CACHE_KEY) -> None:
        """Initialize the cache.

        Args:
            area: Storage area, or None where no durable storage exists.
            key: Well-known key holding the serialized id -> snapshot map.
        """
        self.area = area
        self.key = key

    def _read_all(self) -> dict[str, Any]:
        if self.area is None:
            raise StorageUnavailableError("No storage area configured")

        stored = self.area.get_item(self.key)
        if not stored:
            return {}
        data = json.loads(stored)
        if not isinstance(data, dict):
            raise ValueError(f"Cache blob under {self.key} is not an object")
        return data

    def _write(self, tournament: Tournament, event: str) -> bool:
        try:
            tournaments = self._read_all()
            tournaments[tournament.id] = tournament.to_wire()
            self.area.set_item(self.key, json.dumps(tournaments))
        except (OSError, ValueError) as e:
            logger.warning(event, tournament_id=tournament.id, error=str(e))
            return False
        return True

    def put(self, tournament: Tournament) -> bool:
        """Store a snapshot.

        Returns:
            True if the write landed.
        """
        return self._write(tournament, "local_cache_put_failed")

    def merge_write(self, tournament: Tournament) -> bool:
        """Overwrite the stored snapshot for this tournament's id."""
        return self._write(tournament, "local_cache_update_failed")

    def get(self, tournament_id: str) -> Tournament | None:
        """Load a snapshot, or None if absent or unreadable."""
        try:
            raw = self._read_all().get(tournament_id)
            if raw is None:
                return None
            return Tournament.model_validate(raw)
        except (OSError, ValueError) as e:
            logger.warning("local_cache_get_failed", tournament_id=tournament_id, error=str(e))
            return None

    def all(self) -> list[Tournament]:
        """Every readable snapshot, skipping entries that fail validation."""
        try:
            entries = self._read_all()
        except (OSError, ValueError) as e:
            logger.warning("local_cache_list_failed", error=str(e))
            return []

        tournaments = []
        for tournament_id, raw in entries.items():
            try:
                tournaments.append(Tournament.model_validate(raw))
            except ValidationError as e:
                logger.warning("local_cache_entry_invalid", tournament_id=tournament_id, error=str(e))
        return tournaments
