from .backends import (
    BackendError,
    DuckDBBackend,
    KeyValueBackend,
    MemoryBackend,
    UpstashBackend,
    create_backend,
)
from .local_cache import (
    FileStorageArea,
    LocalTournamentCache,
    MemoryStorageArea,
    QuotaExceededError,
    StorageArea,
    reconcile,
)
from .store import TournamentStore

__all__ = [
    "BackendError",
    "DuckDBBackend",
    "FileStorageArea",
    "KeyValueBackend",
    "LocalTournamentCache",
    "MemoryBackend",
    "MemoryStorageArea",
    "QuotaExceededError",
    "StorageArea",
    "TournamentStore",
    "UpstashBackend",
    "create_backend",
    "reconcile",
]
