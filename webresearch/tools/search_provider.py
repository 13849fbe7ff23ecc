from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Sequence

from loguru import logger

from webresearch.config import settings
from webresearch.models.research import SearchEngineOverrides, SearchResult
from webresearch.services.logger import log_search_call
from webresearch.tools.brave_search import BraveSearch
from webresearch.tools.duckduckgo_search import DuckDuckGoHtmlSearch, DuckDuckGoSearch
from webresearch.tools.google_search import GoogleSearch
from webresearch.tools.jina_search import JinaSearch
from webresearch.tools.search_backend import SearchBackend, SearchBackendError
from webresearch.tools.tavily_search import TavilySearch


@dataclass
class SearchResponse:
    results: list[SearchResult]
    provider: str | None
    fallback_from: str | None = None
    fallback_reason: str | None = None
    errors: dict[str, str] = field(default_factory=dict)


BackendFactory = Callable[[dict[str, str]], SearchBackend]

BACKEND_FACTORIES: dict[str, BackendFactory] = {
    "duckduckgo": lambda creds: DuckDuckGoSearch(),
    "duckduckgo_html": lambda creds: DuckDuckGoHtmlSearch(),
    "brave": lambda creds: BraveSearch(api_key=creds.get("brave_api_key")),
    "google": lambda creds: GoogleSearch(
        api_key=creds.get("google_api_key"),
        search_engine_id=creds.get("google_search_engine_id"),
    ),
    "tavily": lambda creds: TavilySearch(api_key=creds.get("tavily_api_key")),
    "jina": lambda creds: JinaSearch(api_key=creds.get("jina_api_key")),
}


def get_backends(
    overrides: SearchEngineOverrides | None = None,
    *,
    engines: Sequence[str] | None = None,
) -> list[SearchBackend]:
    """Build the ordered backend list from configuration.

    Per-session credentials in ``overrides`` take precedence over settings.
    """
    names = list(engines) if engines is not None else settings.search_engine_list
    creds = overrides.credentials() if overrides else {}

    backends: list[SearchBackend] = []
    for name in names:
        factory = BACKEND_FACTORIES.get(name)
        if factory is None:
            raise ValueError(f"Unsupported search engine: {name}")
        backends.append(factory(creds))
    return backends


def order_backends(backends: Sequence[SearchBackend], preferred: str | None) -> list[SearchBackend]:
    """Move the preferred backend (if present) to the front, keeping the rest in order."""
    ordered = list(backends)
    if not preferred:
        return ordered
    key = preferred.lower().strip()
    head = [b for b in ordered if b.name == key]
    return head + [b for b in ordered if b.name != key]


async def search_multiple_engines(
    query: str,
    max_results: int = 10,
    *,
    backends: Sequence[SearchBackend] | None = None,
    preferred_engine: str | None = None,
    enable_fallback: bool | None = None,
) -> SearchResponse:
    """Try backends in order and return the first non-empty result set.

    Any exception or empty answer falls through to the next backend. Raises
    ``SearchBackendError`` only when every attempted backend failed (or none
    is configured); an all-empty round returns an empty response instead.
    """
    if backends is None:
        backends = get_backends()
    if preferred_engine is None:
        preferred_engine = settings.preferred_search_engine
    if enable_fallback is None:
        enable_fallback = settings.search_fallback_enabled

    candidates = [b for b in order_backends(backends, preferred_engine) if b.is_configured]
    if not enable_fallback:
        candidates = candidates[:1]
    if not candidates:
        raise SearchBackendError("No search backend is configured")

    errors: dict[str, str] = {}
    first_name = candidates[0].name
    first_reason: str | None = None
    attempted = 0

    for backend in candidates:
        attempted += 1
        started = time.monotonic()
        try:
            results = await backend.search(query, max_results)
        except Exception as e:
            reason = str(e) or type(e).__name__
            errors[backend.name] = reason
            log_search_call(
                backend.name,
                query,
                duration_ms=int((time.monotonic() - started) * 1000),
                status="error",
                error=reason,
            )
            if first_reason is None:
                first_reason = reason
            continue

        log_search_call(
            backend.name,
            query,
            result_count=len(results),
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        if results:
            fell_back = backend.name != first_name
            return SearchResponse(
                results=results[:max_results],
                provider=backend.name,
                fallback_from=first_name if fell_back else None,
                fallback_reason=(first_reason or f"{first_name} returned zero results") if fell_back else None,
                errors=errors,
            )
        if first_reason is None:
            first_reason = f"{backend.name} returned zero results"

    if len(errors) == attempted:
        detail = "; ".join(f"{name}: {msg}" for name, msg in errors.items())
        raise SearchBackendError(f"All search backends failed for {query!r}: {detail}")

    logger.info(f"No results from any search backend for {query!r}")
    return SearchResponse(results=[], provider=None, errors=errors)


def results_to_dicts(results: list[SearchResult]) -> list[dict]:
    return [
        {
            "title": r.title,
            "url": r.url,
            "snippet": r.snippet,
            "source": r.source,
            "position": r.position,
            "relevance_score": r.relevance_score,
        }
        for r in results
    ]
