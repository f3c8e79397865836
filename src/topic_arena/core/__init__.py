"""Core configuration and utilities for Topic Arena."""

from topic_arena.core.config import (
    ArenaConfig,
    CacheConfig,
    ImageConfig,
    StoreConfig,
    env_summary,
    load_config,
    strip_wrapping_quotes,
)
from topic_arena.core.errors import (
    ConfigurationError,
    InputValidationError,
    InvalidVoteError,
    MissingFieldError,
    StoreCredentialsError,
)
from topic_arena.core.progress import ResolutionProgress

__all__ = [
    "ArenaConfig",
    "CacheConfig",
    "ImageConfig",
    "ResolutionProgress",
    "StoreConfig",
    "env_summary",
    "load_config",
    "strip_wrapping_quotes",
    "ConfigurationError",
    "InputValidationError",
    "InvalidVoteError",
    "MissingFieldError",
    "StoreCredentialsError",
]
