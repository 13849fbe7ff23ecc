from __future__ import annotations

import asyncio
import threading
from collections import defaultdict
from typing import AsyncIterator, Callable

from loguru import logger

from webresearch.models.events import EventType, ResearchEvent

EventCallback = Callable[[ResearchEvent], None]


class EventBroadcaster:
    """Per-session fan-out of research events.

    Every subscriber sees every event published for its session. A callback
    that raises is logged and skipped; it never affects the publisher or the
    other subscribers.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[EventCallback]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, session_id: str, callback: EventCallback) -> Callable[[], None]:
        """Register ``callback``; returns a function that unregisters it."""
        with self._lock:
            self._subscribers[session_id].append(callback)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(session_id)
                if callbacks and callback in callbacks:
                    callbacks.remove(callback)
                if callbacks is not None and not callbacks:
                    self._subscribers.pop(session_id, None)

        return unsubscribe

    def on_progress(self, session_id: str, callback: EventCallback) -> Callable[[], None]:
        def progress_only(event: ResearchEvent) -> None:
            if event.event == EventType.PROGRESS:
                callback(event)

        return self.subscribe(session_id, progress_only)

    def subscriber_count(self, session_id: str) -> int:
        with self._lock:
            return len(self._subscribers.get(session_id, ()))

    def publish(self, event: ResearchEvent) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get(event.session_id, ()))
        for callback in callbacks:
            try:
                callback(event)
            except Exception:
                logger.exception(
                    f"Research event subscriber failed for session {event.session_id} ({event.event.value})"
                )

    async def stream(self, session_id: str) -> AsyncIterator[ResearchEvent]:
        """Yield events for a session until its ``done`` or ``error`` event."""
        queue: asyncio.Queue[ResearchEvent] = asyncio.Queue()
        unsubscribe = self.subscribe(session_id, queue.put_nowait)
        try:
            while True:
                event = await queue.get()
                yield event
                if event.is_terminal:
                    break
        finally:
            unsubscribe()
