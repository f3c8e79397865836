"""Custom exceptions for configuration and request validation errors."""

from __future__ import annotations


class ConfigurationError(Exception):
    """Base exception for configuration errors with optional suggestions."""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"[Configuration Error] {self.message}"
        if self.suggestion:
            msg += f"\n[Suggestion] {self.suggestion}"
        return msg


class MissingFieldError(ConfigurationError):
    """Error when a required configuration field is missing."""

    def __init__(self, field: str, config_path: str) -> None:
        super().__init__(
            f"Missing required field '{field}' in {config_path}",
            "Add the field to your configuration.",
        )


class StoreCredentialsError(ConfigurationError):
    """Error when the remote store is selected without credentials."""

    def __init__(self) -> None:
        super().__init__(
            "Upstash backend selected but credentials are incomplete",
            "Set UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN, "
            "or use backend: auto.",
        )


class InputValidationError(ValueError):
    """Malformed or missing request input, rejected before reaching the core."""


class InvalidVoteError(InputValidationError):
    """A vote names a contender that is not part of the tournament roster."""

    def __init__(self, tournament_id: str, contender_id: str) -> None:
        self.tournament_id = tournament_id
        self.contender_id = contender_id
        super().__init__(f"Invalid item ID '{contender_id}' for tournament {tournament_id}")
