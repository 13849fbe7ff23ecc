"""Research session orchestrator.

Owns the session table and runs one asyncio task per session through the
pipeline ``cleaning -> searching -> extracting -> analyzing`` before resolving
it to ``completed``, ``insufficient_results`` or ``failed``.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import Any, AsyncIterator, Callable, Mapping, Sequence

from loguru import logger

from webresearch.agents import relevance
from webresearch.agents.query_enhancer import enhance_query
from webresearch.agents.strategy_generator import determine_search_type, generate_search_strategies
from webresearch.config import settings
from webresearch.models.events import ResearchEvent
from webresearch.models.research import (
    STATUS_ORDER,
    ExtractedContent,
    ResearchConfig,
    ResearchContext,
    ResearchProgress,
    ResearchSession,
    SearchQuery,
    SearchStrategy,
    SessionStatus,
    utcnow,
)
from webresearch.services import streaming
from webresearch.services.event_bus import EventBroadcaster, EventCallback
from webresearch.services.logger import log_research_step
from webresearch.services.session_store import SessionStore
from webresearch.tools import search_provider
from webresearch.tools.content_extractor import ContentExtractor, WebContentExtractor
from webresearch.tools.search_backend import SearchBackend, SearchBackendError

# Early exit once any of these is reached (after min_searches)
ENOUGH_RELEVANT_WITH_VOLUME = 3
ENOUGH_TOTAL_RESULTS = 10
ENOUGH_EXTRACTED = 3
ENOUGH_RELEVANT = 6

MAX_CONTEXT_RESULTS = 15
MIN_CONTEXT_WORDS = 100
CONTEXT_CHARS_PER_PAGE = 3000
CONFIDENCE_FULL_AT = 6
CONFIDENCE_FLOOR = 20

EXPECTED_DURATION_MS = 90_000
PHASE_COUNT = 5

STEP_LABELS = {
    SessionStatus.INITIALIZING: "Initializing research",
    SessionStatus.CLEANING: "Optimizing search query",
    SessionStatus.EXTRACTING: "Extracting detailed content",
    SessionStatus.ANALYZING: "Analyzing and synthesizing results",
    SessionStatus.COMPLETED: "Research completed",
    SessionStatus.INSUFFICIENT_RESULTS: "Research completed with limited results",
    SessionStatus.FAILED: "Research failed",
}

PHASE_STEPS = {
    SessionStatus.INITIALIZING: 0.0,
    SessionStatus.CLEANING: 1.0,
    SessionStatus.EXTRACTING: 3.0,
    SessionStatus.ANALYZING: 4.0,
}


def default_research_config() -> ResearchConfig:
    return ResearchConfig(
        max_searches=settings.research_max_searches,
        max_results_per_search=settings.research_max_results_per_search,
        max_content_extractions=settings.research_max_content_extractions,
        timeout_ms=settings.research_timeout_ms,
        relevance_threshold=settings.research_relevance_threshold,
        min_searches=settings.research_min_searches,
    )


class ResearchOrchestrator:
    def __init__(
        self,
        backends: Sequence[SearchBackend] | None = None,
        extractor: ContentExtractor | None = None,
        store: SessionStore | None = None,
        broadcaster: EventBroadcaster | None = None,
        defaults: ResearchConfig | None = None,
    ):
        self.backends = list(backends) if backends is not None else None
        self.extractor = extractor or WebContentExtractor()
        self.store = store or SessionStore()
        self.broadcaster = broadcaster or EventBroadcaster()
        self.defaults = defaults or default_research_config()
        self._tasks: dict[str, asyncio.Task] = {}
        self._current_query: dict[str, str] = {}

    # --- Public API ---

    def start_research(
        self,
        query: str,
        overrides: ResearchConfig | Mapping[str, Any] | None = None,
    ) -> ResearchSession:
        """Create a session and schedule its pipeline on the running loop.

        Returns immediately; poll ``get_progress`` or subscribe for events.
        """
        if not query or not query.strip():
            raise ValueError("Research query must not be empty")
        if isinstance(overrides, ResearchConfig):
            config = overrides
        else:
            config = ResearchConfig.from_overrides(overrides, defaults=self.defaults)

        loop = asyncio.get_running_loop()
        session = ResearchSession(
            id=str(uuid.uuid4()),
            original_query=query,
            query=query.strip(),
            config=config,
        )
        self.store.add(session)
        log_research_step(session.id, "session", "started", {"query": query[:100]})

        task = loop.create_task(self._conduct_research(session), name=f"research-{session.id}")
        self._tasks[session.id] = task
        task.add_done_callback(lambda _t, sid=session.id: self._tasks.pop(sid, None))
        return session

    def get_session(self, session_id: str) -> ResearchSession | None:
        return self.store.get(session_id)

    def get_all_sessions(self) -> list[ResearchSession]:
        return self.store.values()

    def get_progress(self, session_id: str) -> ResearchProgress | None:
        session = self.store.get(session_id)
        if session is None:
            return None
        return self._snapshot(session)

    def stop_research(self, session_id: str) -> None:
        """Cancel a running session. No-op for unknown or finished sessions."""
        session = self.store.get(session_id)
        task = self._tasks.get(session_id)
        if task is not None and not task.done():
            task.cancel()
        if session is None or session.is_terminal:
            return

        session.error = "Research stopped"
        self._transition(session, SessionStatus.FAILED)
        log_research_step(session_id, "session", "stopped")
        self._publish(streaming.error(session_id, "Research stopped"))

    def generate_research_context(self, session_id: str) -> ResearchContext | None:
        session = self.store.get(session_id)
        if session is None:
            return None
        if session.total_results == 0 and not session.is_terminal:
            return None

        threshold = session.config.relevance_threshold
        sources: list[str] = []

        extracted_blocks = []
        for item in session.extracted_content:
            if item.success and item.word_count > MIN_CONTEXT_WORDS:
                extracted_blocks.append(
                    f"EXTRACTED CONTENT:\n{item.title}\n{item.content[:CONTEXT_CHARS_PER_PAGE]}..."
                )
                sources.append(item.url)

        candidates = [
            result
            for search in session.searches
            for result in search.results
            if relevance.is_relevant(result, threshold)
        ]
        candidates.sort(key=lambda r: r.relevance_score or 0, reverse=True)
        result_blocks = []
        for result in candidates[:MAX_CONTEXT_RESULTS]:
            result_blocks.append(
                f"SEARCH RESULT:\n{result.title}\n{result.snippet}\n"
                f"Source: {result.url}\nRelevance: {result.relevance_score}%"
            )
            sources.append(result.url)

        content = "\n\n---\n\n".join(extracted_blocks)
        if result_blocks:
            if content:
                content += "\n\n=== ADDITIONAL SEARCH RESULTS ===\n\n"
            content += "\n\n---\n\n".join(result_blocks)

        confidence = round(
            min(100, max(CONFIDENCE_FLOOR, session.relevant_results / CONFIDENCE_FULL_AT * 100))
        )
        return ResearchContext(
            session_id=session.id,
            query=session.query,
            relevant_content=content,
            sources=tuple(dict.fromkeys(sources)),
            confidence=confidence,
            last_updated=session.end_time or utcnow(),
        )

    def get_most_recent_context(self) -> ResearchContext | None:
        finished = [
            s
            for s in self.store.values()
            if s.status in (SessionStatus.COMPLETED, SessionStatus.INSUFFICIENT_RESULTS)
            and s.end_time is not None
        ]
        if not finished:
            return None
        latest = max(finished, key=lambda s: s.end_time)
        return self.generate_research_context(latest.id)

    def subscribe(self, session_id: str, callback: EventCallback) -> Callable[[], None]:
        return self.broadcaster.subscribe(session_id, callback)

    def on_progress(self, session_id: str, callback: EventCallback) -> Callable[[], None]:
        return self.broadcaster.on_progress(session_id, callback)

    async def stream_events(self, session_id: str) -> AsyncIterator[ResearchEvent]:
        """Yield a session's events until it finishes.

        A session that already finished yields its final event once.
        """
        session = self.store.get(session_id)
        if session is None:
            raise KeyError(session_id)
        if session.is_terminal:
            yield self._final_event(session)
            return
        async for event in self.broadcaster.stream(session_id):
            yield event

    async def wait_closed(self) -> None:
        tasks = list(self._tasks.values())
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # --- Pipeline ---

    async def _conduct_research(self, session: ResearchSession) -> None:
        config = session.config
        try:
            self._transition(session, SessionStatus.CLEANING)
            enhanced = enhance_query(session.query)
            if enhanced != session.query:
                logger.info(f"Enhanced query: {session.query!r} -> {enhanced!r}")
                session.query = enhanced
            # Planning happens inside cleaning; status never steps back to initializing
            strategies = generate_search_strategies(session.query)
            log_research_step(
                session.id, "strategies", "generated", {"names": [s.name for s in strategies]}
            )

            self._transition(session, SessionStatus.SEARCHING)
            await self._run_searches(session, strategies)

            if config.enable_content_extraction and session.total_results > 0:
                self._transition(session, SessionStatus.EXTRACTING)
                await self._run_extraction(session)

            self._transition(session, SessionStatus.ANALYZING)
            session.context_summary = self._generate_context_summary(session)
            session.relevant_results = relevance.count_relevant_results(
                session.searches, config.relevance_threshold
            )

            final = (
                SessionStatus.COMPLETED
                if session.relevant_results > 0
                else SessionStatus.INSUFFICIENT_RESULTS
            )
            if not self._transition(session, final):
                return
            log_research_step(
                session.id,
                "session",
                final.value,
                {
                    "searches": len(session.searches),
                    "total_results": session.total_results,
                    "relevant_results": session.relevant_results,
                    "extracted": len(session.extracted_content),
                },
            )
            self._publish(self._final_event(session))
        except Exception as e:
            logger.exception(f"Research failed for session {session.id}")
            if session.is_terminal:
                return
            session.error = str(e) or type(e).__name__
            self._transition(session, SessionStatus.FAILED)
            self._publish(streaming.error(session.id, session.error))
        finally:
            self._current_query.pop(session.id, None)

    async def _run_searches(self, session: ResearchSession, strategies: list[SearchStrategy]) -> None:
        config = session.config
        overrides = config.search_engine_overrides
        if self.backends is not None:
            backends = self.backends
        else:
            backends = search_provider.get_backends(overrides)
        preferred = (overrides.preferred_engine if overrides else None) or settings.preferred_search_engine

        for strategy in strategies[: config.max_searches]:
            queries = list(strategy.query_templates)
            if config.enable_follow_up_searches:
                queries.extend(strategy.follow_up_queries)

            for query in queries:
                if len(session.searches) >= config.max_searches:
                    return

                self._current_query[session.id] = query
                cap = min(strategy.max_results, config.max_results_per_search)
                results = []
                provider = None
                error = None
                try:
                    response = await search_provider.search_multiple_engines(
                        query,
                        cap,
                        backends=backends,
                        preferred_engine=preferred,
                    )
                    results = response.results
                    provider = response.provider
                except SearchBackendError as e:
                    logger.warning(f"Search failed for {query!r}, counting as zero results: {e}")
                    error = str(e)

                scored = relevance.score_results(results, query)
                session.searches.append(
                    SearchQuery(
                        id=str(uuid.uuid4()),
                        query=query,
                        search_type=determine_search_type(strategy.name, query),
                        strategy=strategy,
                        results=tuple(scored),
                        result_count=len(scored),
                        provider=provider,
                        error=error,
                    )
                )
                session.total_results += len(scored)
                session.relevant_results = relevance.count_relevant_results(
                    session.searches, config.relevance_threshold
                )
                self._publish(streaming.progress(self._snapshot(session)))

                if len(session.searches) >= max(1, config.min_searches) and self._has_enough_results(session):
                    logger.info(
                        f"Session {session.id}: enough results after {len(session.searches)} searches"
                    )
                    return

    async def _run_extraction(self, session: ResearchSession) -> None:
        config = session.config
        urls = [
            result.url
            for search in session.searches
            for result in search.results
            if relevance.is_relevant(result, config.relevance_threshold)
        ]
        selected = self.extractor.prioritize_urls(urls)[: config.max_content_extractions]
        if not selected:
            return

        self._current_query[session.id] = f"Extracting {len(selected)} pages"
        extracted: list[ExtractedContent] = await self.extractor.extract_multiple(
            selected, max_concurrency=config.max_content_extractions
        )
        session.extracted_content.extend(item for item in extracted if item.success)
        log_research_step(
            session.id,
            "extraction",
            "completed",
            {"requested": len(selected), "succeeded": len(session.extracted_content)},
        )

    def _has_enough_results(self, session: ResearchSession) -> bool:
        relevant = session.relevant_results
        extracted = sum(1 for item in session.extracted_content if item.success)
        return (
            (relevant >= ENOUGH_RELEVANT_WITH_VOLUME and session.total_results >= ENOUGH_TOTAL_RESULTS)
            or extracted >= ENOUGH_EXTRACTED
            or relevant >= ENOUGH_RELEVANT
        )

    def _generate_context_summary(self, session: ResearchSession) -> str:
        lines = [
            f'Research Summary for: "{session.query}"',
            f"Total searches performed: {len(session.searches)}",
            f"Total results found: {session.total_results}",
            f"Content extracted from: {len(session.extracted_content)} pages",
        ]
        if session.extracted_content:
            lines.append("\nKey Sources:")
            for index, item in enumerate(session.extracted_content, start=1):
                if item.success and item.word_count > 50:
                    lines.append(f"{index}. {item.title} ({item.word_count} words)")
                    lines.append(f"   {item.url}")
        return "\n".join(lines)

    # --- State and events ---

    def _transition(self, session: ResearchSession, status: SessionStatus) -> bool:
        """Move ``session`` to ``status``; refuses to leave a terminal state or go backwards."""
        if session.is_terminal:
            logger.debug(f"Session {session.id} already {session.status}; ignoring {status}")
            return False
        if status in STATUS_ORDER and STATUS_ORDER.index(status) < STATUS_ORDER.index(session.status):
            logger.warning(f"Session {session.id}: refusing {session.status} -> {status}")
            return False

        session.status = status
        if status.is_terminal:
            session.end_time = utcnow()
        log_research_step(session.id, status.value, "entered")
        self._publish(streaming.progress(self._snapshot(session)))
        return True

    def _snapshot(self, session: ResearchSession) -> ResearchProgress:
        status = session.status
        searches = len(session.searches)
        max_searches = session.config.max_searches

        if status.is_terminal:
            step = float(PHASE_COUNT)
        elif status == SessionStatus.SEARCHING:
            fraction = min(1.0, searches / max_searches) if max_searches > 0 else 1.0
            step = 2 + 0.8 * fraction
        else:
            step = PHASE_STEPS[status]

        if status == SessionStatus.SEARCHING:
            label = (
                f"Performing search {searches}/{max_searches}..."
                if searches
                else "Starting web search..."
            )
        else:
            label = STEP_LABELS[status]

        if status.is_terminal:
            remaining = 0
        else:
            elapsed_ms = (utcnow() - session.start_time).total_seconds() * 1000
            remaining = int(max(0, EXPECTED_DURATION_MS - elapsed_ms))

        return ResearchProgress(
            session_id=session.id,
            current_step=label,
            progress=round(step / PHASE_COUNT * 100),
            status=status,
            results_found=session.total_results,
            content_extracted=len(session.extracted_content),
            current_query=self._current_query.get(session.id),
            estimated_time_remaining_ms=remaining,
        )

    def _final_event(self, session: ResearchSession) -> ResearchEvent:
        if session.status == SessionStatus.FAILED:
            return streaming.error(session.id, session.error or "Research failed")
        return streaming.done(
            session.id,
            self.generate_research_context(session.id),
            limited=session.status != SessionStatus.COMPLETED,
        )

    def _publish(self, event: ResearchEvent) -> None:
        self.broadcaster.publish(event)
