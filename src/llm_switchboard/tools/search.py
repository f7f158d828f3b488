"""
Web-search capabilities backing the ``web_search`` skill.

Both backends go through the shared `Transport`, so they get the same
timeouts, retries and error mapping as the LLM adapters.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from llm_switchboard.errors import MalformedResponseError
from llm_switchboard.transport import HTTPXTransport, Transport

__all__ = ["SearchResult", "SearchCapability", "TavilySearch", "SerpAPISearch"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SearchResult:
    title: str
    url: str
    snippet: str


class SearchCapability(Protocol):
    async def search(self, query: str, max_results: int) -> list[SearchResult]:
        ...


class _HTTPSearch:
    def __init__(self, api_key: str, *, transport: Optional[Transport] = None) -> None:
        self.api_key = api_key
        self._owns_transport = transport is None
        self.transport: Transport = transport or HTTPXTransport(logger=logger)

    async def aclose(self) -> None:
        if self._owns_transport:
            aclose = getattr(self.transport, "aclose", None)
            if aclose is not None:
                await aclose()


class TavilySearch(_HTTPSearch):
    """Tavily search API (``POST /search``)."""

    url = "https://api.tavily.com/search"

    async def search(self, query: str, max_results: int) -> list[SearchResult]:
        logger.debug("Tavily search %r (max_results=%d)", query, max_results)
        raw = await self.transport.request(
            "POST",
            self.url,
            json={
                "api_key": self.api_key,
                "query": query,
                "search_depth": "basic",
                "max_results": max_results,
            },
        )
        results = _list_field(raw, "results")
        return [
            SearchResult(
                title=item.get("title") or "",
                url=item.get("url") or "",
                snippet=item.get("content") or "",
            )
            for item in results
        ]


class SerpAPISearch(_HTTPSearch):
    """SerpAPI Google engine (``GET /search.json``)."""

    url = "https://serpapi.com/search.json"

    async def search(self, query: str, max_results: int) -> list[SearchResult]:
        logger.debug("SerpAPI search %r (max_results=%d)", query, max_results)
        raw = await self.transport.request(
            "GET",
            self.url,
            params={
                "api_key": self.api_key,
                "q": query,
                "engine": "google",
                "num": str(max_results),
            },
        )
        # organic_results is absent when Google found nothing
        results = _list_field(raw, "organic_results", required=False)
        return [
            SearchResult(
                title=item.get("title") or "",
                url=item.get("link") or "",
                snippet=item.get("snippet") or "",
            )
            for item in results[:max_results]
        ]


def _list_field(raw: Any, key: str, *, required: bool = True) -> list[dict[str, Any]]:
    if not isinstance(raw, dict):
        raise MalformedResponseError(f"Expected a JSON object, got {type(raw).__name__}")
    value = raw.get(key)
    if value is None and not required:
        return []
    if not isinstance(value, list):
        raise MalformedResponseError(f"Search response has no {key!r} list")
    return [item for item in value if isinstance(item, dict)]
