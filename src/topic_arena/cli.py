"""CLI for Topic Arena."""

from __future__ import annotations

import asyncio
import logging
import random
from pathlib import Path
from typing import Annotated

import structlog
import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.prompt import Prompt
from rich.table import Table

from topic_arena import __version__
from topic_arena.core.config import ArenaConfig, load_config
from topic_arena.core.errors import ConfigurationError
from topic_arena.core.progress import ResolutionProgress
from topic_arena.models import Contender, ContenderDraft, Tournament
from topic_arena.services.contenders import default_contenders
from topic_arena.services.images import ImageResolver
from topic_arena.services.session import ArenaSession
from topic_arena.services.storage import (
    FileStorageArea,
    LocalTournamentCache,
    TournamentStore,
    create_backend,
)

# Configure structlog
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

app = typer.Typer(
    name="topic-arena",
    help="Topic Arena - rank anything through pairwise votes and Elo ratings",
    add_completion=False,
)
console = Console()

ConfigOption = Annotated[
    Path | None, typer.Option("--config", "-c", help="Path to config YAML file")
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-V", help="Verbose output")]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"topic-arena v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
) -> None:
    """Topic Arena CLI."""


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load(config_path: Path | None, verbose: bool) -> ArenaConfig:
    """Load .env, then configuration, exiting with status 1 on errors."""
    _configure_logging(verbose)
    load_dotenv()
    try:
        return load_config(config_path)
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except ValidationError as e:
        console.print(f"[red]Invalid configuration:[/red] {e}")
        raise typer.Exit(1) from e


def _build_store(config: ArenaConfig) -> TournamentStore:
    try:
        backend = create_backend(config.store)
    except ConfigurationError as e:
        console.print(f"[red]{e}")
        raise typer.Exit(1) from e
    return TournamentStore(backend, key_prefix=config.store.key_prefix)


def _build_cache(config: ArenaConfig) -> LocalTournamentCache:
    area = FileStorageArea(Path(config.cache.directory), max_bytes=config.cache.max_bytes)
    return LocalTournamentCache(area, key=config.cache.key)


def _standings_table(tournament: Tournament, items: list[Contender]) -> Table:
    table = Table(title=f"{tournament.topic} ({tournament.total_votes} votes)")
    table.add_column("#", justify="right")
    table.add_column("Contender")
    table.add_column("Rating", justify="right")
    table.add_column("W", justify="right")
    table.add_column("L", justify="right")
    table.add_column("Matches", justify="right")
    table.add_column("Image source")
    for rank, item in enumerate(items, 1):
        table.add_row(
            str(rank),
            item.name,
            str(item.rating),
            str(item.wins),
            str(item.losses),
            str(item.matches),
            item.image_source,
        )
    return table


@app.command()
def create(
    topic: Annotated[str, typer.Argument(help="Tournament topic")],
    items: Annotated[
        list[str] | None,
        typer.Option("--item", "-i", help="Contender name (repeat for each contender)"),
    ] = None,
    images: Annotated[
        bool, typer.Option("--images/--no-images", help="Resolve contender images")
    ] = True,
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Create a tournament from a topic and an optional roster.

    Args:
        topic: Tournament topic.
        items: Contender names. The built-in roster is used when omitted.
        images: Whether to look up images for the contenders.
        config_path: Path to YAML configuration file.
        verbose: Enable verbose logging.
    """
    config = _load(config_path, verbose)
    rng = random.Random(config.seed) if config.seed is not None else None  # noqa: S311
    store = _build_store(config)
    session = ArenaSession(store, _build_cache(config), rng=rng)

    drafts: list[ContenderDraft]
    if items:
        drafts = [ContenderDraft(id=str(i), name=name) for i, name in enumerate(items, 1)]
    else:
        drafts = default_contenders(topic)
        console.print(f"[yellow]No contenders given, using the built-in roster for {topic!r}[/yellow]")

    async def _run() -> tuple[Tournament, bool]:
        resolver = ImageResolver(config.images)
        try:
            enriched = drafts
            if images and (items or config.images.enrich_generated):
                enriched = await ResolutionProgress(console).track(
                    len(drafts),
                    lambda on_item: resolver.resolve_many(topic, drafts, on_item=on_item),
                )
            return await store.create(topic, enriched)
        finally:
            await resolver.close()
            await store.close()

    tournament, persisted = asyncio.run(_run())
    cached = session.adopt(tournament)

    console.print(f"[bold green]Created tournament[/bold green] {tournament.id}")
    console.print(f"  Topic: {tournament.topic}")
    console.print(f"  Contenders: {len(tournament.items)}")
    console.print(f"  Persisted remotely: {persisted}")
    console.print(f"  Cached locally: {cached}")
    if session.current_pair is not None:
        left, right = session.current_pair
        console.print(f"  First matchup: {left.name} vs {right.name}")


@app.command()
def show(
    tournament_id: Annotated[str, typer.Argument(help="Tournament id")],
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Show the leaderboard of a tournament."""
    config = _load(config_path, verbose)
    session = ArenaSession(_build_store(config), _build_cache(config))

    async def _run() -> Tournament | None:
        try:
            return await session.load(tournament_id)
        finally:
            await session.store.close()

    tournament = asyncio.run(_run())
    if tournament is None:
        console.print(f"[red]Tournament not found:[/red] {tournament_id}")
        raise typer.Exit(1)

    console.print(_standings_table(tournament, session.leaderboard()))


@app.command("list")
def list_tournaments(
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """List tournaments held in the local cache, newest first."""
    config = _load(config_path, verbose)
    tournaments = sorted(_build_cache(config).all(), key=lambda t: t.created_at, reverse=True)
    if not tournaments:
        console.print(f"[yellow]No cached tournaments in {config.cache.directory}[/yellow]")
        return

    table = Table(title="Cached tournaments")
    table.add_column("ID")
    table.add_column("Topic")
    table.add_column("Contenders", justify="right")
    table.add_column("Votes", justify="right")
    table.add_column("Created")
    for tournament in tournaments:
        table.add_row(
            tournament.id,
            tournament.topic,
            str(len(tournament.items)),
            str(tournament.total_votes),
            tournament.created_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


@app.command()
def vote(
    tournament_id: Annotated[str, typer.Argument(help="Tournament id")],
    rounds: Annotated[
        int | None, typer.Option("--rounds", "-n", help="Stop after this many votes")
    ] = None,
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Vote interactively on pairs of contenders.

    Pick 1 or 2 for the contender you prefer, s to skip the pair, q to stop.
    """
    config = _load(config_path, verbose)
    rng = random.Random(config.seed) if config.seed is not None else None  # noqa: S311
    session = ArenaSession(_build_store(config), _build_cache(config), rng=rng)

    async def _run() -> None:
        try:
            tournament = await session.load(tournament_id)
            if tournament is None:
                console.print(f"[red]Tournament not found:[/red] {tournament_id}")
                raise typer.Exit(1)

            console.print(f"[bold]{tournament.topic}[/bold]: which do you prefer?\n")
            while session.current_pair is not None:
                if rounds is not None and session.votes_cast >= rounds:
                    break
                left, right = session.current_pair
                console.print(f"  [cyan]1[/cyan] {left.name}")
                console.print(f"  [cyan]2[/cyan] {right.name}")
                choice = Prompt.ask("Your pick", choices=["1", "2", "s", "q"], default="q")
                if choice == "q":
                    break
                if choice == "s":
                    session.skip()
                    continue

                winner, loser = (left, right) if choice == "1" else (right, left)
                outcome = await session.vote(winner.id, loser.id)
                console.print(
                    f"  {winner.name} {outcome.winner_new_score} / "
                    f"{loser.name} {outcome.loser_new_score}\n"
                )
        finally:
            await session.store.close()

    asyncio.run(_run())

    if session.tournament is not None:
        console.print(f"[green]Recorded {session.votes_cast} vote(s)[/green]")
        console.print(_standings_table(session.tournament, session.leaderboard()))


@app.command()
def serve(
    host: Annotated[str, typer.Option("--host", help="Bind address")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", "-p", help="Bind port")] = 8000,
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Serve the HTTP API with uvicorn."""
    import uvicorn

    from topic_arena.api import create_app

    config = _load(config_path, verbose)
    api = create_app(_build_store(config), ImageResolver(config.images), config)
    console.print(f"[bold green]Serving Topic Arena API[/bold green] on http://{host}:{port}")
    uvicorn.run(api, host=host, port=port, log_level="debug" if verbose else "info")


@app.command()
def info(config_path: ConfigOption = None) -> None:
    """Show configuration summary and example commands."""
    config = _load(config_path, verbose=False)

    console.print("[bold]Topic Arena[/bold]")
    console.print(f"Version: {__version__}\n")

    console.print("[bold]Configuration:[/bold]")
    console.print(f"  Store backend: {config.store.backend}")
    console.print(f"  Upstash credentials: {config.store.has_upstash_credentials}")
    console.print(f"  DuckDB path: {config.store.duckdb_path or '-'}")
    console.print(f"  Cache directory: {config.cache.directory}")
    console.print(f"  Enrich generated rosters: {config.images.enrich_generated}")
    console.print(f"  Image concurrency: {config.images.concurrency}\n")

    console.print("[bold]Example Commands:[/bold]")
    console.print("  # Built-in roster with images")
    console.print('  topic-arena create "Best office snacks"\n')

    console.print("  # Your own contenders")
    console.print('  topic-arena create "Pizza toppings" -i Pepperoni -i Mushroom -i Pineapple\n')

    console.print("  # Vote, then see the standings")
    console.print("  topic-arena vote <tournament-id>")
    console.print("  topic-arena show <tournament-id>")
    console.print("  topic-arena list\n")

    console.print("  # Run the HTTP API")
    console.print("  topic-arena serve --port 8000")


if __name__ == "__main__":
    app()
