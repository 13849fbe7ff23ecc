from __future__ import annotations

import json

from fastapi import APIRouter, Depends, HTTPException
from sse_starlette.sse import EventSourceResponse

from webresearch.agents.orchestrator import ResearchOrchestrator
from webresearch.api.deps import get_orchestrator
from webresearch.models.research import ResearchSession
from webresearch.models.schemas import (
    ContextResponse,
    ExtractedContentResponse,
    ExtractedPageResponse,
    ExtractRequest,
    ExtractResponse,
    ProgressResponse,
    QuickSearchRequest,
    QuickSearchResponse,
    ResearchRequest,
    ResearchStartResponse,
    SearchQueryResponse,
    SearchResultResponse,
    SessionDetailResponse,
    SessionSummaryResponse,
    StopResponse,
)
from webresearch.services import logger as log_service
from webresearch.services import research_runner
from webresearch.tools.search_backend import SearchBackendError

router = APIRouter(prefix="/api/research", tags=["research"])
search_router = APIRouter(prefix="/api/search", tags=["search"])
extract_router = APIRouter(prefix="/api/extract", tags=["extract"])


def _require_session(orchestrator: ResearchOrchestrator, session_id: str) -> ResearchSession:
    session = orchestrator.get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _session_detail(session: ResearchSession) -> SessionDetailResponse:
    searches = [
        SearchQueryResponse(
            id=q.id,
            query=q.query,
            search_type=q.search_type.value,
            strategy_name=q.strategy.name,
            result_count=q.result_count,
            provider=q.provider,
            error=q.error,
            timestamp=q.timestamp,
            results=[SearchResultResponse.model_validate(r) for r in q.results],
        )
        for q in session.searches
    ]
    return SessionDetailResponse(
        **SessionSummaryResponse.model_validate(session).model_dump(),
        searches=searches,
        extracted_content=[
            ExtractedContentResponse.model_validate(c) for c in session.extracted_content
        ],
        context_summary=session.context_summary,
    )


@router.post("", response_model=ResearchStartResponse)
async def start_research(
    request: ResearchRequest,
    orchestrator: ResearchOrchestrator = Depends(get_orchestrator),
):
    """Start a research session. Returns the session_id to poll or stream."""
    try:
        session = orchestrator.start_research(request.query, request.config_overrides())
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    log_service.log_event(
        event_type="research_started",
        message="Research started",
        session_id=session.id,
        query=request.query[:100],
    )
    return ResearchStartResponse(session_id=session.id, status=session.status.value)


@router.get("", response_model=list[SessionSummaryResponse])
async def list_sessions(orchestrator: ResearchOrchestrator = Depends(get_orchestrator)):
    return [SessionSummaryResponse.model_validate(s) for s in orchestrator.get_all_sessions()]


@router.get("/recent", response_model=ContextResponse)
async def most_recent_context(orchestrator: ResearchOrchestrator = Depends(get_orchestrator)):
    context = orchestrator.get_most_recent_context()
    if context is None:
        raise HTTPException(status_code=404, detail="No completed research available")
    return ContextResponse.model_validate(context)


@router.get("/{session_id}", response_model=SessionDetailResponse)
async def get_session(
    session_id: str,
    orchestrator: ResearchOrchestrator = Depends(get_orchestrator),
):
    return _session_detail(_require_session(orchestrator, session_id))


@router.get("/{session_id}/progress", response_model=ProgressResponse)
async def get_progress(
    session_id: str,
    orchestrator: ResearchOrchestrator = Depends(get_orchestrator),
):
    progress = orchestrator.get_progress(session_id)
    if progress is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return ProgressResponse.model_validate(progress)


@router.get("/{session_id}/context", response_model=ContextResponse)
async def get_context(
    session_id: str,
    orchestrator: ResearchOrchestrator = Depends(get_orchestrator),
):
    _require_session(orchestrator, session_id)
    context = orchestrator.generate_research_context(session_id)
    if context is None:
        raise HTTPException(status_code=404, detail="No context available yet")
    return ContextResponse.model_validate(context)


@router.get("/{session_id}/stream")
async def stream_research(
    session_id: str,
    orchestrator: ResearchOrchestrator = Depends(get_orchestrator),
):
    """SSE endpoint that streams progress until the session finishes."""
    _require_session(orchestrator, session_id)

    async def event_generator():
        async for event in orchestrator.stream_events(session_id):
            yield {
                "event": event.event.value,
                "data": json.dumps(event.payload(), default=str),
            }

    return EventSourceResponse(event_generator())


@router.delete("/{session_id}", response_model=StopResponse)
async def stop_research(
    session_id: str,
    orchestrator: ResearchOrchestrator = Depends(get_orchestrator),
):
    _require_session(orchestrator, session_id)
    orchestrator.stop_research(session_id)
    session = _require_session(orchestrator, session_id)
    return StopResponse(session_id=session_id, status=session.status.value)


@search_router.post("/quick", response_model=QuickSearchResponse)
async def quick_search(request: QuickSearchRequest):
    try:
        result = await research_runner.quick_search(
            request.query,
            request.num_results,
            request.preferred_engine,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except SearchBackendError as e:
        log_service.log_event(
            event_type="quick_search_failed",
            message="Quick search failed",
            query=request.query[:100],
            error=str(e),
        )
        raise HTTPException(status_code=502, detail=str(e)) from e
    return QuickSearchResponse(**result)


@extract_router.post("", response_model=ExtractResponse)
async def extract_content(
    request: ExtractRequest,
    orchestrator: ResearchOrchestrator = Depends(get_orchestrator),
):
    """Fetch full text for caller-supplied URLs, outside of any session."""
    pages = await research_runner.extract_urls(
        request.urls, request.max_urls, extractor=orchestrator.extractor
    )
    successful = sum(1 for page in pages if page.success)
    log_service.log_event(
        event_type="content_extracted",
        message="Extracted pages on request",
        requested=len(request.urls),
        successful=successful,
    )
    return ExtractResponse(
        total_urls=len(pages),
        successful=successful,
        failed=len(pages) - successful,
        results=[ExtractedPageResponse.model_validate(page) for page in pages],
    )
