"""Key-value backends behind the tournament store.

Every backend speaks the same small async get/set contract and reports any
failure as ``BackendError`` so callers have a single thing to absorb.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import duckdb
import httpx
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from topic_arena.core.config import ENV_UPSTASH_TOKEN, ENV_UPSTASH_URL, StoreConfig, env_summary
from topic_arena.core.errors import MissingFieldError, StoreCredentialsError

logger = structlog.get_logger()


class BackendError(Exception):
    """A backend could not complete a read or write."""


@runtime_checkable
class KeyValueBackend(Protocol):
    """Async string key-value store."""

    name: str

    async def get(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""
        ...

    async def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""
        ...

    async def close(self) -> None:
        """Release any resources."""
        ...


class MemoryBackend:
    """Process-scoped dict backend.

    Nothing is shared between processes and everything is lost on restart;
    durable callers must use another backend or the client cache.
    """

    name = "memory"

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def close(self) -> None:
        return None


class DuckDBBackend:
    """Single-table key-value store in a local DuckDB file."""

    name = "duckdb"

    def __init__(self, db_path: Path) -> None:
        """Initialize the database file.

        Args:
            db_path: Path to DuckDB database file.
        """
        self.db_path = db_path
        self._init_db()

    def _init_db(self) -> None:
        """Create the records table if it doesn't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = duckdb.connect(str(self.db_path))
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS records (
                    record_key VARCHAR PRIMARY KEY,
                    value VARCHAR NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """
            )
        finally:
            conn.close()

    async def get(self, key: str) -> str | None:
        def _get() -> str | None:
            conn = duckdb.connect(str(self.db_path))
            try:
                result = conn.execute(
                    "SELECT value FROM records WHERE record_key = ?", [key]
                ).fetchone()
                return result[0] if result else None
            finally:
                conn.close()

        try:
            return await asyncio.to_thread(_get)
        except duckdb.Error as e:
            raise BackendError(f"DuckDB read failed for {key}: {e}") from e

    async def set(self, key: str, value: str) -> None:
        def _set() -> None:
            conn = duckdb.connect(str(self.db_path))
            try:
                conn.execute(
                    """
                    INSERT OR REPLACE INTO records (record_key, value, updated_at)
                    VALUES (?, ?, CURRENT_TIMESTAMP)
                    """,
                    [key, value],
                )
            finally:
                conn.close()

        try:
            await asyncio.to_thread(_set)
        except duckdb.Error as e:
            raise BackendError(f"DuckDB write failed for {key}: {e}") from e

    async def close(self) -> None:
        return None


class UpstashBackend:
    """Upstash Redis over its REST protocol.

    Commands are POSTed as JSON arrays (``["GET", key]``) and answered with
    ``{"result": ...}`` or ``{"error": ...}``.
    """

    name = "upstash"

    def __init__(
        self,
        url: str,
        token: str,
        timeout: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the REST client.

        Args:
            url: REST endpoint, e.g. ``https://eu1-foo.upstash.io``.
            token: REST bearer token.
            timeout: Per-request timeout in seconds.
            client: Optional preconfigured client (tests inject a mock transport).
        """
        self.url = url.rstrip("/")
        self._token = token
        self.client = client or httpx.AsyncClient(timeout=timeout)

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=1),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _post(self, command: list[str]) -> httpx.Response:
        response = await self.client.post(
            self.url,
            headers={"Authorization": f"Bearer {self._token}"},
            json=command,
        )
        response.raise_for_status()
        return response

    async def _command(self, *args: str) -> Any:
        try:
            response = await self._post(list(args))
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise BackendError(f"Upstash {args[0]} failed: {e}") from e

        if not isinstance(data, dict):
            raise BackendError(f"Upstash {args[0]} returned an unexpected payload")
        if data.get("error"):
            raise BackendError(f"Upstash {args[0]} error: {data['error']}")
        return data.get("result")

    async def get(self, key: str) -> str | None:
        result = await self._command("GET", key)
        if result is None or isinstance(result, str):
            return result
        raise BackendError(f"Upstash GET returned non-string value for {key}")

    async def set(self, key: str, value: str) -> None:
        await self._command("SET", key, value)

    async def close(self) -> None:
        await self.client.aclose()


def create_backend(
    config: StoreConfig,
    client: httpx.AsyncClient | None = None,
) -> KeyValueBackend | None:
    """Create the backend selected by configuration.

    Args:
        config: Store configuration.
        client: Optional HTTP client for the Upstash backend.

    Returns:
        A backend, or None when the store is deliberately unconfigured.

    Raises:
        StoreCredentialsError: Upstash requested without both credentials.
        MissingFieldError: DuckDB requested without a path.
    """
    logger.info(
        "store_env",
        url=env_summary(ENV_UPSTASH_URL, config.upstash_url),
        token=env_summary(ENV_UPSTASH_TOKEN, config.upstash_token),
        backend=config.backend,
    )

    choice = config.backend
    if choice == "auto":
        if config.has_upstash_credentials:
            choice = "upstash"
        elif config.duckdb_path:
            choice = "duckdb"
        else:
            choice = "memory"

    backend: KeyValueBackend | None
    if choice == "none":
        backend = None
    elif choice == "memory":
        backend = MemoryBackend()
    elif choice == "duckdb":
        if not config.duckdb_path:
            raise MissingFieldError("store.duckdb_path", "store configuration")
        backend = DuckDBBackend(Path(config.duckdb_path))
    else:
        if not config.has_upstash_credentials:
            raise StoreCredentialsError
        backend = UpstashBackend(
            config.upstash_url or "",
            config.upstash_token or "",
            timeout=config.timeout,
            client=client,
        )

    logger.info("store_backend_selected", backend=backend.name if backend else None)
    return backend
