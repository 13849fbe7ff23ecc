from __future__ import annotations

import asyncio

import pytest

from tests.fakes import FakeBackend, FakeExtractor, make_result
from webresearch.agents.orchestrator import ResearchOrchestrator
from webresearch.models.research import (
    ResearchConfig,
    ResearchContext,
    ResearchSession,
    SessionStatus,
    utcnow,
)
from webresearch.services import research_runner
from webresearch.services.research_runner import ResearchTimeoutError, run_research
from webresearch.tools.search_backend import SearchBackendError


class HangingBackend(FakeBackend):
    async def search(self, query, max_results=10):
        self.calls.append((query, max_results))
        await asyncio.sleep(60)
        return []


def _orchestrator(backends):
    return ResearchOrchestrator(
        backends=backends,
        extractor=FakeExtractor(),
        defaults=ResearchConfig(max_content_extractions=2),
    )


@pytest.mark.asyncio
async def test_run_research_returns_summary():
    orchestrator = _orchestrator([FakeBackend("fake", [make_result(i) for i in range(1, 6)])])
    progress = []

    outcome = await run_research(
        "tulips", orchestrator=orchestrator, poll_interval=0.01, on_progress=progress.append
    )

    assert outcome.session.status == SessionStatus.COMPLETED
    assert outcome.has_content
    assert outcome.summary.startswith('WEB SEARCH RESULTS for "tulips"')
    assert "- Status: completed" in outcome.summary
    assert "1. https://example.com/page-1" in outcome.summary
    assert progress
    assert orchestrator.broadcaster.subscriber_count(outcome.session.id) == 0


@pytest.mark.asyncio
async def test_run_research_without_results_has_no_summary():
    orchestrator = _orchestrator([FakeBackend("fake", [])])
    outcome = await run_research("tulips", orchestrator=orchestrator, poll_interval=0.01)

    assert outcome.session.status == SessionStatus.INSUFFICIENT_RESULTS
    assert outcome.summary is None
    assert not outcome.has_content


@pytest.mark.asyncio
async def test_deadline_stops_the_session():
    backend = HangingBackend("slow")
    orchestrator = _orchestrator([backend])

    with pytest.raises(ResearchTimeoutError) as excinfo:
        await run_research("tulips", orchestrator=orchestrator, max_wait_seconds=0.05, poll_interval=0.01)

    session = orchestrator.get_session(excinfo.value.session_id)
    assert session.status == SessionStatus.FAILED
    assert session.end_time is not None
    assert excinfo.value.progress is not None
    await orchestrator.wait_closed()


def test_summary_lists_at_most_twelve_sources():
    session = ResearchSession(id="s", original_query="q", query="q", config=ResearchConfig())
    session.status = SessionStatus.COMPLETED
    context = ResearchContext(
        session_id="s",
        query="q",
        relevant_content="content",
        sources=tuple(f"https://example.com/{i}" for i in range(20)),
        confidence=50,
        last_updated=utcnow(),
    )

    summary = research_runner.format_research_summary(session, context)

    assert "12. https://example.com/11" in summary
    assert "13. " not in summary
    assert "- Research confidence: 50%" in summary


@pytest.mark.asyncio
async def test_quick_search_formats_results():
    backend = FakeBackend("duckduckgo", [make_result(1), make_result(2)])
    result = await research_runner.quick_search("tulips", 5, backends=[backend])

    assert result["results_count"] == 2
    assert result["provider"] == "duckduckgo"
    assert result["summary"].startswith('QUICK WEB SEARCH RESULTS for "tulips"')
    assert "Source: https://example.com/page-1 (fake)" in result["summary"]


@pytest.mark.asyncio
async def test_quick_search_propagates_backend_failure():
    backend = FakeBackend("duckduckgo", error=RuntimeError("down"))
    with pytest.raises(SearchBackendError):
        await research_runner.quick_search("tulips", backends=[backend])


@pytest.mark.asyncio
async def test_extract_urls_skips_unusable_urls():
    extractor = FakeExtractor()
    pages = await research_runner.extract_urls(
        ["not-a-url", "https://www.youtube.com/watch?v=x"], extractor=extractor
    )
    assert pages == []
    assert extractor.requested == []
