"""HTTP boundary: tournament creation, lookup and voting."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated, Any

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from topic_arena import __version__
from topic_arena.core.config import ArenaConfig
from topic_arena.core.errors import InputValidationError, InvalidVoteError
from topic_arena.models import ContenderDraft, Tournament
from topic_arena.ranking.elo import leaderboard, process_vote
from topic_arena.services.contenders import default_contenders
from topic_arena.services.images import ImageResolver
from topic_arena.services.storage import TournamentStore

logger = structlog.get_logger()


class NotFoundError(LookupError):
    """Requested tournament is absent or the store could not be read."""


def get_store(request: Request) -> TournamentStore:
    return request.app.state.store


def get_resolver(request: Request) -> ImageResolver:
    return request.app.state.resolver


def get_config(request: Request) -> ArenaConfig:
    return request.app.state.config


StoreDep = Annotated[TournamentStore, Depends(get_store)]
ResolverDep = Annotated[ImageResolver, Depends(get_resolver)]
ConfigDep = Annotated[ArenaConfig, Depends(get_config)]


async def _read_body(request: Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except ValueError as e:
        raise InputValidationError("Request body must be JSON") from e
    if not isinstance(body, dict):
        raise InputValidationError("Request body must be a JSON object")
    return body


def _require_string(body: dict[str, Any], field: str) -> str:
    value = body.get(field)
    if not isinstance(value, str) or not value:
        raise InputValidationError(f"Missing required field: {field}")
    return value


def parse_items(raw: Any) -> list[ContenderDraft]:
    """Validate a caller-supplied roster.

    Entries without an id get their 1-based position as id.

    Raises:
        InputValidationError: If the roster or one of its entries is malformed.
    """
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise InputValidationError("items must be a list")

    drafts = []
    for index, entry in enumerate(raw, 1):
        if not isinstance(entry, dict):
            raise InputValidationError(f"items[{index - 1}] must be an object")
        data = dict(entry)
        if data.get("id") in (None, ""):
            data["id"] = str(index)
        elif not isinstance(data["id"], str):
            data["id"] = str(data["id"])
        try:
            drafts.append(ContenderDraft.model_validate(data))
        except ValidationError as e:
            raise InputValidationError(f"items[{index - 1}] is invalid: {e.errors()[0]['msg']}") from e

    ids = [draft.id for draft in drafts]
    if len(ids) != len(set(ids)):
        raise InputValidationError("items contain duplicate ids")
    return drafts


def create_app(
    store: TournamentStore,
    resolver: ImageResolver,
    config: ArenaConfig | None = None,
) -> FastAPI:
    """Build the API around already-constructed services.

    Args:
        store: Remote tournament store.
        resolver: Image resolver used to enrich generated rosters.
        config: Application configuration.

    Returns:
        Configured FastAPI application. Services are closed on shutdown.
    """

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        await resolver.close()
        await store.close()

    app = FastAPI(
        title="Topic Arena API",
        description="Pairwise voting tournaments with Elo ratings",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.store = store
    app.state.resolver = resolver
    app.state.config = config or ArenaConfig()

    @app.middleware("http")
    async def log_requests(request: Request, call_next):  # noqa: ANN001, ANN202
        """Log every request and its status."""
        logger.info("http_request", method=request.method, path=request.url.path)
        response = await call_next(request)
        logger.info("http_response", path=request.url.path, status=response.status_code)
        return response

    @app.exception_handler(InputValidationError)
    async def handle_input_error(_request: Request, exc: InputValidationError) -> JSONResponse:
        logger.info("request_rejected", error=str(exc))
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(NotFoundError)
    async def handle_not_found(_request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"error": str(exc)})

    async def _load(store: TournamentStore, tournament_id: str) -> Tournament:
        tournament = await store.fetch(tournament_id)
        if tournament is None:
            raise NotFoundError("Tournament not found")
        return tournament

    @app.post("/tournament")
    async def create_tournament(
        request: Request,
        store: StoreDep,
        resolver: ResolverDep,
        config: ConfigDep,
    ) -> dict[str, Any]:
        body = await _read_body(request)
        topic = body.get("topic")
        if not topic or not isinstance(topic, str):
            raise InputValidationError("Topic is required")

        items = parse_items(body.get("items"))
        if not items:
            items = default_contenders(topic)
            if config.images.enrich_generated:
                items = await resolver.resolve_many(topic, items)

        tournament, persisted = await store.create(topic, items)
        return {
            "success": True,
            "tournamentId": tournament.id,
            "tournament": tournament.to_wire(),
            "persisted": persisted,
        }

    @app.get("/tournament")
    async def get_tournament(store: StoreDep, id: str | None = None) -> dict[str, Any]:  # noqa: A002
        if not id:
            raise InputValidationError("Missing required parameter: id")
        tournament = await _load(store, id)
        return tournament.to_wire()

    @app.post("/vote")
    async def vote(request: Request, store: StoreDep) -> dict[str, Any]:
        body = await _read_body(request)
        tournament_id = _require_string(body, "tournamentId")
        winner_id = _require_string(body, "winnerId")
        loser_id = _require_string(body, "loserId")

        tournament = await _load(store, tournament_id)
        winner = tournament.find(winner_id)
        loser = tournament.find(loser_id)
        if winner is None:
            raise InvalidVoteError(tournament_id, winner_id)
        if loser is None:
            raise InvalidVoteError(tournament_id, loser_id)
        if winner_id == loser_id:
            raise InputValidationError("Winner and loser must be different contenders")

        outcome = process_vote(winner_id, loser_id, winner.rating, loser.rating)
        recorded = await store.record_vote(
            tournament_id,
            winner_id,
            loser_id,
            outcome.winner_new_score,
            outcome.loser_new_score,
        )
        logger.info("vote_processed", tournament_id=tournament_id, recorded=recorded)
        return {"success": True, "result": outcome.to_wire()}

    @app.get("/leaderboard")
    async def get_leaderboard(store: StoreDep, id: str | None = None) -> dict[str, Any]:  # noqa: A002
        if not id:
            raise InputValidationError("Missing required parameter: id")
        tournament = await _load(store, id)
        return {
            "tournamentId": tournament.id,
            "topic": tournament.topic,
            "totalVotes": tournament.total_votes,
            "items": [item.to_wire() for item in leaderboard(tournament.items)],
        }

    return app
