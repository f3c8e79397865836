"""Wikipedia, Wikidata and Commons lookups plus image URL builders."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx
import structlog

logger = structlog.get_logger()

WIKIPEDIA_API = "https://en.wikipedia.org/w/api.php"
WIKIDATA_API = "https://www.wikidata.org/w/api.php"
COMMONS_BASE = "https://commons.wikimedia.org"
POLLINATIONS_BASE = "https://image.pollinations.ai"

# Characters encodeURIComponent leaves alone on top of quote()'s defaults
_URI_COMPONENT_SAFE = "!*'()"


def encode_component(value: str) -> str:
    """Percent-encode a single URL path or query component.

    Characters UTF-8 can't encode (lone surrogates from undecodable argv or
    file names) are replaced rather than raised on.
    """
    return quote(value, safe=_URI_COMPONENT_SAFE, errors="replace")


def unique_strings(values: Iterable[str | None]) -> list[str]:
    """Trim values and drop blanks and case-insensitive duplicates, keeping order."""
    out: list[str] = []
    seen: set[str] = set()
    for value in values:
        text = (value or "").strip()
        if not text or text.lower() in seen:
            continue
        seen.add(text.lower())
        out.append(text)
    return out


def normalize_file_name(file_name: str) -> str:
    return file_name.replace(" ", "_")


def build_commons_image_url(file_name: str, width: int) -> str:
    """URL that redirects to a resized rendition of a Commons file."""
    normalized = encode_component(normalize_file_name(file_name))
    return f"{COMMONS_BASE}/wiki/Special:FilePath/{normalized}?width={width}"


def build_commons_file_page_url(file_name: str) -> str:
    normalized = encode_component(normalize_file_name(file_name))
    return f"{COMMONS_BASE}/wiki/File:{normalized}"


def build_pollinations_url(prompt: str, size: int = 1024, api_key: str | None = None) -> str:
    """Build a generative-image URL for a text prompt.

    The image is produced when the URL is first loaded, so building it never
    fails even if the service later does.
    """
    query = encode_component(prompt.strip() or "image")
    url = f"{POLLINATIONS_BASE}/prompt/{query}?width={size}&height={size}&nologo=true"
    key = (api_key or "").strip()
    if key:
        encoded_key = encode_component(key)
        url += f"&apikey={encoded_key}&key={encoded_key}"
    return url


@dataclass(frozen=True)
class WikipediaHit:
    """Best search hit on English Wikipedia.

    Attributes:
        title: Article title.
        page_url: Canonical article URL, if reported.
        wikidata_id: Linked Wikidata item (e.g. "Q42"), if any.
        image_url: Original or thumbnail lead image, if any.
    """

    title: str
    page_url: str | None = None
    wikidata_id: str | None = None
    image_url: str | None = None


def _first(value: Any) -> Any:
    return value[0] if isinstance(value, list) and value else None


def _get(data: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


class WikimediaClient:
    """Read-only lookups against the Wikimedia APIs.

    Any transport error, non-2xx response or undecodable body yields None;
    nothing here raises for upstream trouble.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self.client = client

    async def _get_json(self, url: str, params: dict[str, str]) -> Any:
        try:
            response = await self.client.get(url, params=params)
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.debug("wikimedia_request_failed", url=url, error=str(e))
            return None

    async def search_wikipedia(self, query: str, thumb_size: int = 800) -> WikipediaHit | None:
        """Return the top Wikipedia search hit for a query."""
        params = {
            "action": "query",
            "format": "json",
            "formatversion": "2",
            "generator": "search",
            "gsrsearch": query,
            "gsrlimit": "1",
            "redirects": "1",
            "prop": "pageimages|info|pageprops",
            "inprop": "url",
            "piprop": "thumbnail|original",
            "pithumbsize": str(thumb_size),
        }
        data = await self._get_json(WIKIPEDIA_API, params)
        page = _first(_get(data, "query", "pages"))
        if not isinstance(page, dict):
            return None

        image_url = _get(page, "original", "source") or _get(page, "thumbnail", "source")
        return WikipediaHit(
            title=str(page.get("title", "")),
            page_url=page.get("fullurl"),
            wikidata_id=_get(page, "pageprops", "wikibase_item"),
            image_url=image_url if isinstance(image_url, str) and image_url else None,
        )

    async def search_wikidata_id(self, query: str) -> str | None:
        """Return the id of the top Wikidata entity matching a query."""
        params = {
            "action": "wbsearchentities",
            "format": "json",
            "language": "en",
            "uselang": "en",
            "search": query,
            "limit": "1",
        }
        data = await self._get_json(WIKIDATA_API, params)
        entity_id = _get(_first(_get(data, "search")), "id")
        return entity_id if isinstance(entity_id, str) and entity_id else None

    async def commons_image_for(self, wikidata_id: str, width: int = 800) -> tuple[str, str] | None:
        """Look up the P18 (image) claim of a Wikidata entity.

        Returns:
            Tuple of (image_url, file_page_url), or None without a usable claim.
        """
        params = {
            "action": "wbgetentities",
            "format": "json",
            "ids": wikidata_id,
            "props": "claims",
        }
        data = await self._get_json(WIKIDATA_API, params)
        claim = _first(_get(data, "entities", wikidata_id, "claims", "P18"))
        file_name = _get(claim, "mainsnak", "datavalue", "value")
        if not isinstance(file_name, str) or not file_name.strip():
            return None
        return build_commons_image_url(file_name, width), build_commons_file_page_url(file_name)
