from __future__ import annotations

from webresearch.models.events import EventType, ResearchEvent
from webresearch.models.research import ResearchContext, ResearchProgress, context_to_dict


def progress(snapshot: ResearchProgress) -> ResearchEvent:
    """Emit a point-in-time progress snapshot."""
    return ResearchEvent(
        event=EventType.PROGRESS,
        session_id=snapshot.session_id,
        percent=snapshot.progress,
        data=snapshot.to_dict(),
    )


def done(session_id: str, context: ResearchContext | None, *, limited: bool) -> ResearchEvent:
    return ResearchEvent(
        event=EventType.DONE,
        session_id=session_id,
        percent=100,
        data={
            "context": context_to_dict(context),
            "status": "limited" if limited else "success",
        },
    )


def error(session_id: str, message: str) -> ResearchEvent:
    return ResearchEvent(
        event=EventType.ERROR,
        session_id=session_id,
        percent=100,
        data={"error": message},
    )
