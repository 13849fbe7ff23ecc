from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Mapping


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStatus(StrEnum):
    INITIALIZING = "initializing"
    CLEANING = "cleaning"
    SEARCHING = "searching"
    EXTRACTING = "extracting"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    INSUFFICIENT_RESULTS = "insufficient_results"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {SessionStatus.COMPLETED, SessionStatus.INSUFFICIENT_RESULTS, SessionStatus.FAILED}
)

# Forward order of the pipeline; FAILED is reachable from any non-terminal state.
STATUS_ORDER = (
    SessionStatus.INITIALIZING,
    SessionStatus.CLEANING,
    SessionStatus.SEARCHING,
    SessionStatus.EXTRACTING,
    SessionStatus.ANALYZING,
)


class SearchType(StrEnum):
    GENERAL = "general"
    TECHNICAL = "technical"
    ERROR_LOOKUP = "error_lookup"
    DOCUMENTATION = "documentation"
    FORUM_DISCUSSION = "forum_discussion"
    PEOPLE_PROFILE = "people_profile"
    WINDOWS_SPECIFIC = "windows_specific"
    LINUX_SPECIFIC = "linux_specific"


@dataclass(frozen=True, slots=True)
class SearchResult:
    """One candidate hit returned by a search backend."""

    title: str
    url: str
    snippet: str
    source: str
    position: int = 0
    relevance_score: int | None = None
    timestamp: datetime = field(default_factory=utcnow)


@dataclass(frozen=True, slots=True)
class SearchStrategy:
    name: str
    description: str
    query_templates: tuple[str, ...]
    follow_up_queries: tuple[str, ...] = ()
    max_results: int = 10
    content_extraction: bool = True


@dataclass(frozen=True, slots=True)
class SearchQuery:
    id: str
    query: str
    search_type: SearchType
    strategy: SearchStrategy
    results: tuple[SearchResult, ...] = ()
    result_count: int = 0
    provider: str | None = None
    error: str | None = None
    timestamp: datetime = field(default_factory=utcnow)


@dataclass(frozen=True, slots=True)
class ExtractedContent:
    url: str
    title: str
    content: str
    word_count: int
    success: bool
    error: str | None = None
    extracted_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True, slots=True)
class SearchEngineOverrides:
    """Per-session backend preference and credentials."""

    preferred_engine: str | None = None
    brave_api_key: str | None = None
    google_api_key: str | None = None
    google_search_engine_id: str | None = None
    tavily_api_key: str | None = None
    jina_api_key: str | None = None

    def credentials(self) -> dict[str, str]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "preferred_engine" and getattr(self, f.name)
        }


@dataclass(frozen=True, slots=True)
class ResearchConfig:
    max_searches: int = 5
    max_results_per_search: int = 15
    max_content_extractions: int = 6
    timeout_ms: int = 120000
    enable_content_extraction: bool = True
    enable_follow_up_searches: bool = True
    relevance_threshold: int = 15
    min_searches: int = 1
    search_engine_overrides: SearchEngineOverrides | None = None

    @classmethod
    def from_overrides(
        cls,
        overrides: Mapping[str, Any] | None = None,
        *,
        defaults: ResearchConfig | None = None,
    ) -> ResearchConfig:
        """Merge caller-supplied values over engine defaults.

        ``None`` values are ignored so partial configs can be passed straight
        through from optional request fields.
        """
        base = defaults or cls()
        if not overrides:
            return base

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ValueError(f"Unknown research config option(s): {', '.join(unknown)}")

        values = {f.name: getattr(base, f.name) for f in fields(cls)}
        for key, value in overrides.items():
            if value is None:
                continue
            if key == "search_engine_overrides" and isinstance(value, Mapping):
                value = SearchEngineOverrides(**value)
            values[key] = value

        for key in ("max_searches", "max_results_per_search", "max_content_extractions", "min_searches"):
            if int(values[key]) < 0:
                raise ValueError(f"{key} must be >= 0")
        return cls(**values)


@dataclass(slots=True)
class ResearchSession:
    """Mutable state of one research request, owned by the orchestrator."""

    id: str
    original_query: str
    query: str
    config: ResearchConfig
    status: SessionStatus = SessionStatus.INITIALIZING
    start_time: datetime = field(default_factory=utcnow)
    end_time: datetime | None = None
    searches: list[SearchQuery] = field(default_factory=list)
    extracted_content: list[ExtractedContent] = field(default_factory=list)
    total_results: int = 0
    relevant_results: int = 0
    context_summary: str | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


@dataclass(frozen=True, slots=True)
class ResearchContext:
    session_id: str
    query: str
    relevant_content: str
    sources: tuple[str, ...]
    confidence: int
    last_updated: datetime


@dataclass(frozen=True, slots=True)
class ResearchProgress:
    session_id: str
    current_step: str
    progress: int
    status: SessionStatus
    results_found: int
    content_extracted: int
    current_query: str | None = None
    estimated_time_remaining_ms: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "current_step": self.current_step,
            "progress": self.progress,
            "status": self.status.value,
            "current_query": self.current_query,
            "results_found": self.results_found,
            "content_extracted": self.content_extracted,
            "estimated_time_remaining_ms": self.estimated_time_remaining_ms,
        }


def context_to_dict(context: ResearchContext | None) -> dict[str, Any] | None:
    if context is None:
        return None
    return {
        "session_id": context.session_id,
        "query": context.query,
        "relevant_content": context.relevant_content,
        "sources": list(context.sources),
        "confidence": context.confidence,
        "last_updated": context.last_updated.isoformat(),
    }
