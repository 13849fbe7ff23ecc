from __future__ import annotations

from typing import Any

from tavily import AsyncTavilyClient

from webresearch.config import settings
from webresearch.models.research import SearchResult
from webresearch.tools.search_backend import SearchBackend


class TavilySearch(SearchBackend):
    """Tavily search through the official async client."""

    name = "tavily"

    def __init__(self, api_key: str | None = None, *, search_depth: str = "basic"):
        self.api_key = api_key if api_key is not None else settings.tavily_api_key
        self.search_depth = search_depth

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def search(self, query: str, max_results: int = 10) -> list[SearchResult]:
        self._require_configured()
        client = AsyncTavilyClient(api_key=self.api_key)

        kwargs: dict[str, Any] = {
            "query": query,
            "search_depth": self.search_depth,
            "max_results": max_results,
            "timeout": int(settings.search_timeout_seconds),
        }
        response = await client.search(**kwargs)

        results: list[SearchResult] = []
        for idx, r in enumerate(response.get("results", [])):
            url = r.get("url")
            if not url:
                continue
            score = r.get("score")
            results.append(
                SearchResult(
                    title=r.get("title") or "Untitled",
                    url=url,
                    snippet=r.get("content", ""),
                    source=self.name,
                    position=idx + 1,
                    # Tavily scores are 0..1
                    relevance_score=(
                        max(0, min(100, round(float(score) * 100))) if score is not None else None
                    ),
                )
            )
        return results[:max_results]
