from __future__ import annotations

from webresearch.config import settings
from webresearch.models.research import SearchResult
from webresearch.tools.search_backend import SearchBackend, rank_score

GOOGLE_CSE_URL = "https://www.googleapis.com/customsearch/v1"
GOOGLE_MAX_NUM = 10  # API limit per request


class GoogleSearch(SearchBackend):
    """Google Custom Search JSON API (needs an API key and an engine id)."""

    name = "google"

    def __init__(self, api_key: str | None = None, search_engine_id: str | None = None):
        self.api_key = api_key if api_key is not None else settings.google_api_key
        self.search_engine_id = (
            search_engine_id if search_engine_id is not None else settings.google_search_engine_id
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.search_engine_id)

    async def search(self, query: str, max_results: int = 10) -> list[SearchResult]:
        self._require_configured()
        response = await self._get(
            GOOGLE_CSE_URL,
            params={
                "key": self.api_key,
                "cx": self.search_engine_id,
                "q": query,
                "num": max(1, min(max_results, GOOGLE_MAX_NUM)),
            },
        )
        items = response.json().get("items") or []

        results: list[SearchResult] = []
        for idx, item in enumerate(items):
            link = item.get("link")
            if not link:
                continue
            results.append(
                SearchResult(
                    title=item.get("title") or "Untitled",
                    url=link,
                    snippet=item.get("snippet") or "",
                    source=self.name,
                    position=idx + 1,
                    relevance_score=rank_score(idx),
                )
            )
        return results[:max_results]
