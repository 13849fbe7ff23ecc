from __future__ import annotations

from typing import Any

from webresearch.config import settings
from webresearch.models.research import SearchResult
from webresearch.tools.search_backend import SearchBackend, rank_score

BRAVE_SEARCH_URL = "https://api.search.brave.com/res/v1/web/search"
BRAVE_MAX_COUNT = 20


class BraveSearch(SearchBackend):
    """Brave Web Search API."""

    name = "brave"

    def __init__(self, api_key: str | None = None):
        self.api_key = api_key if api_key is not None else settings.brave_api_key

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def search(self, query: str, max_results: int = 10) -> list[SearchResult]:
        self._require_configured()
        params: dict[str, Any] = {
            "q": query,
            "count": min(max_results, BRAVE_MAX_COUNT),
        }
        response = await self._get(
            BRAVE_SEARCH_URL,
            params=params,
            headers={
                "Accept": "application/json",
                "X-Subscription-Token": self.api_key,
            },
        )
        payload = response.json()

        raw_results = (payload.get("web") or {}).get("results", []) or []
        mapped: list[SearchResult] = []
        for idx, item in enumerate(raw_results[:max_results]):
            url = item.get("url")
            if not url:
                continue
            snippets = item.get("extra_snippets", []) or []
            description = item.get("description", "") or ""
            snippet = description.strip() or " ".join(snippets).strip()
            mapped.append(
                SearchResult(
                    title=item.get("title") or "Untitled",
                    url=url,
                    snippet=snippet,
                    source=self.name,
                    position=idx + 1,
                    relevance_score=rank_score(idx),
                )
            )
        return mapped
