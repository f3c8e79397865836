"""Configuration schemas and loading for Topic Arena."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Literal
from urllib.parse import urlparse

import yaml
from pydantic import BaseModel, Field, field_validator

DEFAULT_USER_AGENT = "topic-arena/0.1 (https://github.com/topic-arena/topic-arena)"
DEFAULT_CACHE_KEY = "blind_ranking_tournaments"

ENV_UPSTASH_URL = "UPSTASH_REDIS_REST_URL"
ENV_UPSTASH_TOKEN = "UPSTASH_REDIS_REST_TOKEN"
ENV_POLLINATIONS_KEY = "POLLINATIONS_API_KEY"
ENV_DUCKDB_PATH = "TOPIC_ARENA_DUCKDB_PATH"
ENV_CACHE_DIR = "TOPIC_ARENA_CACHE_DIR"


def strip_wrapping_quotes(value: str) -> str:
    """Trim a value and drop one pair of wrapping quotes.

    Deploy dashboards often store quotes literally, unlike dotenv files.
    """
    trimmed = value.strip()
    if len(trimmed) >= 2 and trimmed[0] == trimmed[-1] and trimmed[0] in {'"', "'"}:
        return trimmed[1:-1].strip()
    return trimmed


def is_valid_url(value: str) -> bool:
    """Return True for absolute URLs with a scheme and host."""
    parsed = urlparse(value)
    return bool(parsed.scheme and parsed.netloc)


def env_summary(name: str, value: str | None) -> str:
    """Describe the shape of an environment value without revealing it.

    Args:
        name: Variable name.
        value: Raw value, or None when unset.

    Returns:
        A one-line summary safe to log.
    """
    if not value:
        return f"{name}=<missing>"

    trimmed = value.strip()
    normalized = strip_wrapping_quotes(value)
    starts_quote = trimmed[:1] in {'"', "'"}
    ends_quote = trimmed[-1:] in {'"', "'"}
    wrapped = starts_quote and ends_quote and trimmed[0] == trimmed[-1] and len(trimmed) >= 2
    whitespace = bool(re.search(r"\s", value))

    url_validity = ""
    if "URL" in name.upper():
        url_validity = (
            f" urlValid(trimmed)={is_valid_url(trimmed)}"
            f" urlValid(normalized)={is_valid_url(normalized)}"
        )

    return (
        f"{name}=<set len={len(value)} wrappedQuotes={wrapped} startsQuote={starts_quote} "
        f"endsQuote={ends_quote} whitespace={whitespace}{url_validity}>"
    )


class StoreConfig(BaseModel):
    """Remote tournament store configuration.

    Attributes:
        backend: Which key-value backend to use. "auto" picks Upstash when both
            credentials are present, DuckDB when a path is set, otherwise the
            in-process memory backend. "none" leaves the store unconfigured.
        upstash_url: Upstash Redis REST endpoint.
        upstash_token: Upstash Redis REST token.
        duckdb_path: Path to a DuckDB file used as a local key-value store.
        timeout: Per-request timeout in seconds.
        key_prefix: Prefix for tournament records.
    """

    backend: Literal["auto", "memory", "duckdb", "upstash", "none"] = "auto"
    upstash_url: str | None = None
    upstash_token: str | None = None
    duckdb_path: str | None = None
    timeout: float = Field(default=5.0, gt=0)
    key_prefix: str = "tournament:"

    @property
    def has_upstash_credentials(self) -> bool:
        return bool(self.upstash_url and self.upstash_token)


class ImageConfig(BaseModel):
    """Image resolution configuration."""

    enrich_generated: bool = True
    timeout: float = Field(default=6.5, gt=0)
    concurrency: int = Field(default=4, ge=1)
    thumbnail_size: int = Field(default=800, ge=1)
    commons_width: int = Field(default=800, ge=1)
    pollinations_size: int = Field(default=1024, ge=1)
    pollinations_api_key: str | None = None
    user_agent: str = DEFAULT_USER_AGENT

    @field_validator("user_agent")
    @classmethod
    def validate_user_agent(cls, v: str) -> str:
        if not v.strip():
            msg = "user_agent cannot be empty"
            raise ValueError(msg)
        return v.strip()


class CacheConfig(BaseModel):
    """Client-side durable cache configuration."""

    directory: str = "./.topic_arena"
    key: str = DEFAULT_CACHE_KEY
    max_bytes: int | None = Field(default=5_000_000, ge=1)


class ArenaConfig(BaseModel):
    """Complete application configuration."""

    store: StoreConfig = Field(default_factory=StoreConfig)
    images: ImageConfig = Field(default_factory=ImageConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    seed: int | None = None

    def apply_env(self, environ: Mapping[str, str] | None = None) -> ArenaConfig:
        """Overlay environment variables onto this config (in place).

        Only variables that are set and non-blank override file values.
        """
        env = os.environ if environ is None else environ

        def _read(name: str) -> str | None:
            raw = env.get(name)
            if raw is None:
                return None
            value = strip_wrapping_quotes(raw)
            return value or None

        if url := _read(ENV_UPSTASH_URL):
            self.store.upstash_url = url
        if token := _read(ENV_UPSTASH_TOKEN):
            self.store.upstash_token = token
        if duckdb_path := _read(ENV_DUCKDB_PATH):
            self.store.duckdb_path = duckdb_path
        if api_key := _read(ENV_POLLINATIONS_KEY):
            self.images.pollinations_api_key = api_key
        if cache_dir := _read(ENV_CACHE_DIR):
            self.cache.directory = cache_dir
        return self


def load_config(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> ArenaConfig:
    """Load configuration from an optional YAML file plus the environment.

    Args:
        path: Path to YAML configuration file. None uses defaults.
        environ: Environment mapping (defaults to os.environ).

    Returns:
        Validated ArenaConfig instance.

    Raises:
        FileNotFoundError: If a path is given and the file doesn't exist.
        pydantic.ValidationError: If config is invalid.
    """
    data: dict = {}
    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            msg = f"Configuration file not found: {config_path}"
            raise FileNotFoundError(msg)

        with config_path.open() as f:
            data = yaml.safe_load(f) or {}

    return ArenaConfig.model_validate(data).apply_env(environ)
