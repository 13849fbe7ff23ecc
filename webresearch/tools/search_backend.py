from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import httpx

from webresearch.config import settings
from webresearch.models.research import SearchResult


class SearchBackendError(RuntimeError):
    """A search backend could not serve a query (transport, auth, config)."""


class SearchBackend(ABC):
    """Contract every search provider implements.

    ``search`` returns an empty list when the provider simply has no hits and
    raises for transport or authentication failures, so that callers can tell
    the two apart and fall back to another provider.
    """

    name: str = ""

    @property
    def is_configured(self) -> bool:
        return True

    @abstractmethod
    async def search(self, query: str, max_results: int = 10) -> list[SearchResult]:
        raise NotImplementedError

    def _require_configured(self) -> None:
        if not self.is_configured:
            raise SearchBackendError(f"{self.name} search backend is not configured")

    async def _get(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        merged = {"User-Agent": settings.search_user_agent}
        merged.update(headers or {})
        async with httpx.AsyncClient(
            timeout=timeout or settings.search_timeout_seconds,
            follow_redirects=True,
        ) as client:
            response = await client.get(url, params=params, headers=merged)
            response.raise_for_status()
            return response

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r}>"


def rank_score(index: int, *, top: int = 95, step: int = 3, floor: int = 50) -> int:
    """Position-based relevance for providers that do not expose a score."""
    return max(floor, top - index * step)
