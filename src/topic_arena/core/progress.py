"""Progress tracking utilities for long-running arena operations."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TypeVar

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
)

T = TypeVar("T")


class ResolutionProgress:
    """Progress bar for batch image resolution.

    Wraps an operation that accepts an ``on_item`` callback and advances the
    bar once per finished item, whatever order items complete in.
    """

    def __init__(self, console: Console | None = None) -> None:
        """Initialize progress tracker.

        Args:
            console: Optional console instance. If None, creates a new one.
        """
        self.console = console or Console()

    async def track(
        self,
        total: int,
        operation: Callable[[Callable[[str], None]], Awaitable[T]],
        description: str = "Resolving images",
    ) -> T:
        """Run an operation while displaying per-item progress.

        Args:
            total: Number of items the operation will report.
            operation: Async callable receiving the per-item callback.
            description: Description of the operation.

        Returns:
            Whatever the operation returns.
        """
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=self.console,
        ) as progress:
            task = progress.add_task(f"[cyan]{description}...", total=total)

            def _advance(label: str) -> None:
                progress.update(task, advance=1, description=f"[cyan]{description}: {label}")

            return await operation(_advance)
