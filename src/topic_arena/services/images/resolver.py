"""Image resolution chain: Wikipedia, then Commons, then a generated image."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import TypeVar

import httpx
import structlog

from topic_arena.core.config import ImageConfig
from topic_arena.models import ContenderDraft, ResolvedImage

from .wikimedia import (
    POLLINATIONS_BASE,
    WikimediaClient,
    WikipediaHit,
    build_pollinations_url,
    unique_strings,
)

logger = structlog.get_logger()

D = TypeVar("D", bound=ContenderDraft)


@dataclass
class ResolutionContext:
    """State shared by the providers during one resolution.

    Attributes:
        queries: Search terms, most specific last.
        wikipedia_hit: First Wikipedia hit seen, kept for its Wikidata id even
            when it had no image.
    """

    queries: list[str]
    wikipedia_hit: WikipediaHit | None = None


Provider = Callable[[str, str, ResolutionContext], Awaitable[ResolvedImage | None]]


class ImageResolver:
    """Resolve a contender name to an image, never failing.

    Providers are tried in order until one returns an image; when none does,
    a Pollinations prompt URL is built locally. Results are memoized by
    (name, topic) for the lifetime of the resolver. The memo is never
    evicted and is not shared with other processes.
    """

    def __init__(
        self,
        config: ImageConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            config: Image configuration (timeouts, sizes, concurrency).
            client: Optional HTTP client; tests inject a mock transport.
        """
        self.config = config or ImageConfig()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=self.config.timeout,
            follow_redirects=True,
            headers={
                "Accept": "application/json",
                "Api-User-Agent": self.config.user_agent,
                "User-Agent": self.config.user_agent,
            },
        )
        self.wikimedia = WikimediaClient(self.client)
        self.providers: list[Provider] = [self._from_wikipedia, self._from_commons]
        self._cache: dict[str, ResolvedImage] = {}

    @staticmethod
    def cache_key(name: str, topic: str) -> str:
        return f"{name.strip().lower()}|{topic.strip().lower()}"

    async def resolve(self, name: str, topic: str) -> ResolvedImage:
        """Resolve one name within a topic.

        Args:
            name: Contender name.
            topic: Tournament topic, used to disambiguate searches.

        Returns:
            A usable image reference with its provenance.
        """
        key = self.cache_key(name, topic)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        context = ResolutionContext(
            queries=unique_strings([name, f"{name} {topic}" if topic.strip() else None])
        )
        resolved = None
        for provider in self.providers:
            resolved = await provider(name, topic, context)
            if resolved is not None:
                break

        if resolved is None:
            resolved = self.generated_image(name)

        self._cache[key] = resolved
        logger.debug("image_resolved", name=name, topic=topic, source=resolved.image_source)
        return resolved

    async def _from_wikipedia(
        self, _name: str, _topic: str, context: ResolutionContext
    ) -> ResolvedImage | None:
        for query in context.queries:
            hit = await self.wikimedia.search_wikipedia(query, self.config.thumbnail_size)
            if hit is None:
                continue
            context.wikipedia_hit = context.wikipedia_hit or hit
            if hit.image_url:
                return ResolvedImage(
                    image_url=hit.image_url,
                    image_source="wikipedia",
                    image_source_url=hit.page_url,
                )
        return None

    async def _from_commons(
        self, _name: str, _topic: str, context: ResolutionContext
    ) -> ResolvedImage | None:
        wikidata_id = context.wikipedia_hit.wikidata_id if context.wikipedia_hit else None
        if not wikidata_id:
            for query in context.queries:
                wikidata_id = await self.wikimedia.search_wikidata_id(query)
                if wikidata_id:
                    break
        if not wikidata_id:
            return None

        commons = await self.wikimedia.commons_image_for(wikidata_id, self.config.commons_width)
        if commons is None:
            return None
        image_url, file_page_url = commons
        return ResolvedImage(
            image_url=image_url,
            image_source="commons",
            image_source_url=file_page_url,
        )

    def generated_image(self, prompt: str) -> ResolvedImage:
        """Final fallback: a generative-image URL for the prompt."""
        return ResolvedImage(
            image_url=build_pollinations_url(
                prompt,
                size=self.config.pollinations_size,
                api_key=self.config.pollinations_api_key,
            ),
            image_source="pollinations",
            image_source_url=f"{POLLINATIONS_BASE}/",
        )

    async def resolve_many(
        self,
        topic: str,
        items: Sequence[D],
        concurrency: int | None = None,
        on_item: Callable[[str], None] | None = None,
    ) -> list[D]:
        """Resolve images for a roster with a fixed pool of workers.

        Each worker pulls the next unprocessed item until none remain. The
        output keeps the input order whatever order lookups finish in.

        Args:
            topic: Tournament topic.
            items: Contender drafts to enrich.
            concurrency: Pool size (defaults to the configured value).
            on_item: Called with each item's name once it is resolved.

        Returns:
            Copies of the drafts carrying the resolved images.
        """
        limit = concurrency or self.config.concurrency
        results: list[D | None] = [None] * len(items)
        next_index = 0

        async def worker() -> None:
            nonlocal next_index
            while True:
                current = next_index
                next_index += 1
                if current >= len(items):
                    return
                item = items[current]
                resolved = await self.resolve(item.name, topic)
                results[current] = item.with_image(resolved)
                if on_item is not None:
                    on_item(item.name)

        pool_size = max(1, min(limit, len(items)))
        await asyncio.gather(*(worker() for _ in range(pool_size)))
        logger.info("images_resolved", topic=topic, items=len(items), workers=pool_size)
        return [r for r in results if r is not None]

    async def close(self) -> None:
        """Close the HTTP client if this resolver created it."""
        if self._owns_client:
            await self.client.aclose()
