from __future__ import annotations

from webresearch.agents.orchestrator import ResearchOrchestrator

_orchestrator: ResearchOrchestrator | None = None


def get_orchestrator() -> ResearchOrchestrator:
    """Process-wide orchestrator shared by all routes."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = ResearchOrchestrator()
    return _orchestrator


async def shutdown_orchestrator() -> None:
    global _orchestrator
    if _orchestrator is None:
        return
    for session in _orchestrator.get_all_sessions():
        if not session.is_terminal:
            _orchestrator.stop_research(session.id)
    await _orchestrator.wait_closed()
    _orchestrator = None
