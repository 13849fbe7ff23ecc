"""Blocking-style helpers on top of the orchestrator: run to completion, quick search."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Mapping

from loguru import logger

from webresearch.agents.orchestrator import ResearchOrchestrator
from webresearch.models.research import (
    ExtractedContent,
    ResearchConfig,
    ResearchContext,
    ResearchProgress,
    ResearchSession,
    SearchEngineOverrides,
    SearchResult,
    utcnow,
)
from webresearch.services.event_bus import EventCallback
from webresearch.tools import search_provider
from webresearch.tools.content_extractor import ContentExtractor

MAX_SUMMARY_SOURCES = 12


class ResearchTimeoutError(TimeoutError):
    """The caller's deadline expired before the session finished.

    The session has already been stopped when this is raised.
    """

    def __init__(self, session_id: str, progress: ResearchProgress | None):
        super().__init__(f"Research session {session_id} did not finish in time")
        self.session_id = session_id
        self.progress = progress


@dataclass
class ResearchOutcome:
    session: ResearchSession
    context: ResearchContext | None
    summary: str | None

    @property
    def has_content(self) -> bool:
        return self.context is not None and bool(self.context.relevant_content)


async def run_research(
    query: str,
    overrides: ResearchConfig | Mapping[str, Any] | None = None,
    *,
    orchestrator: ResearchOrchestrator,
    max_wait_seconds: float = 120.0,
    poll_interval: float = 0.5,
    on_progress: EventCallback | None = None,
) -> ResearchOutcome:
    """Start a session and poll until it is terminal or the deadline passes."""
    session = orchestrator.start_research(query, overrides)
    unsubscribe = orchestrator.on_progress(session.id, on_progress) if on_progress else None
    deadline = time.monotonic() + max_wait_seconds

    try:
        while not session.is_terminal:
            if time.monotonic() >= deadline:
                progress = orchestrator.get_progress(session.id)
                orchestrator.stop_research(session.id)
                logger.warning(f"Research session {session.id} timed out after {max_wait_seconds}s")
                raise ResearchTimeoutError(session.id, progress)
            await asyncio.sleep(poll_interval)
            session = orchestrator.get_session(session.id) or session
    finally:
        if unsubscribe is not None:
            unsubscribe()

    context = orchestrator.generate_research_context(session.id)
    summary = None
    if context is not None and context.relevant_content:
        summary = format_research_summary(session, context)
    return ResearchOutcome(session=session, context=context, summary=summary)


def format_research_summary(session: ResearchSession, context: ResearchContext) -> str:
    sources = "\n".join(
        f"{i}. {source}" for i, source in enumerate(context.sources[:MAX_SUMMARY_SOURCES], start=1)
    )
    return (
        f'WEB SEARCH RESULTS for "{session.original_query}":\n\n'
        "RESEARCH SUMMARY:\n"
        f"- Searches performed: {len(session.searches)}\n"
        f"- Total results found: {session.total_results}\n"
        f"- Pages extracted: {len(session.extracted_content)}\n"
        f"- Research confidence: {context.confidence}%\n"
        f"- Status: {session.status.value}\n\n"
        f"RELEVANT CONTENT:\n{context.relevant_content}\n\n"
        f"SOURCES:\n{sources}\n\n"
        f"Search completed at {utcnow().isoformat()}"
    )


def format_quick_results(query: str, results: list[SearchResult]) -> str:
    lines = "\n\n".join(
        f"{i}. {r.title}\n   {r.snippet}\n   Source: {r.url} ({r.source})"
        for i, r in enumerate(results, start=1)
    )
    return f'QUICK WEB SEARCH RESULTS for "{query}":\n\n{lines}\n\nSearch completed at {utcnow().isoformat()}'


async def quick_search(
    query: str,
    num_results: int = 5,
    preferred_engine: str | None = None,
    *,
    backends=None,
) -> dict[str, Any]:
    """One multi-engine search, no session, no extraction.

    Raises ``SearchBackendError`` when every backend failed.
    """
    if backends is None:
        backends = search_provider.get_backends(SearchEngineOverrides(preferred_engine=preferred_engine))
    response = await search_provider.search_multiple_engines(
        query,
        num_results,
        backends=backends,
        preferred_engine=preferred_engine,
    )
    return {
        "query": query,
        "provider": response.provider,
        "fallback_from": response.fallback_from,
        "results_count": len(response.results),
        "results": search_provider.results_to_dicts(response.results),
        "summary": format_quick_results(query, response.results) if response.results else None,
    }


async def extract_urls(
    urls: list[str],
    max_urls: int = 5,
    *,
    extractor: ContentExtractor,
) -> list[ExtractedContent]:
    """Fetch a caller-supplied URL list, best pages first.

    Invalid and non-article URLs are dropped before fetching. Failed pages
    are kept in the result with ``success=False``.
    """
    selected = extractor.prioritize_urls(urls)[: max(1, max_urls)]
    skipped = len(dict.fromkeys(urls)) - len(selected)
    if skipped:
        logger.info(f"Skipping {skipped} URL(s) that were filtered out or over the limit")
    if not selected:
        return []
    return await extractor.extract_multiple(selected, max_concurrency=len(selected))
