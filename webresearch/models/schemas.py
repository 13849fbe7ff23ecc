from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# --- Requests ---


class SearchEngineOverridesRequest(BaseModel):
    preferred_engine: str | None = None
    brave_api_key: str | None = None
    google_api_key: str | None = None
    google_search_engine_id: str | None = None
    tavily_api_key: str | None = None
    jina_api_key: str | None = None


class ResearchRequest(BaseModel):
    query: str = Field(min_length=1)
    max_searches: int | None = Field(default=None, ge=0)
    max_results_per_search: int | None = Field(default=None, ge=0)
    max_content_extractions: int | None = Field(default=None, ge=0)
    timeout_ms: int | None = Field(default=None, ge=0)
    enable_content_extraction: bool | None = None
    enable_follow_up_searches: bool | None = None
    relevance_threshold: int | None = Field(default=None, ge=0, le=100)
    min_searches: int | None = Field(default=None, ge=0)
    search_engine_overrides: SearchEngineOverridesRequest | None = None

    def config_overrides(self) -> dict:
        return self.model_dump(exclude={"query"}, exclude_none=True)


class QuickSearchRequest(BaseModel):
    query: str = Field(min_length=1)
    num_results: int = Field(default=5, ge=1, le=20)
    preferred_engine: str | None = None


class ExtractRequest(BaseModel):
    urls: list[str] = Field(min_length=1, max_length=10)
    max_urls: int = Field(default=5, ge=1, le=10)


# --- Responses ---


class ResearchStartResponse(BaseModel):
    session_id: str
    status: str


class SearchResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    title: str
    url: str
    snippet: str
    source: str
    position: int
    relevance_score: int | None


class SearchQueryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    query: str
    search_type: str
    strategy_name: str
    result_count: int
    provider: str | None
    error: str | None
    timestamp: datetime
    results: list[SearchResultResponse]


class ExtractedContentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    url: str
    title: str
    word_count: int
    success: bool
    error: str | None
    extracted_at: datetime


class ExtractedPageResponse(ExtractedContentResponse):
    content: str


class ExtractResponse(BaseModel):
    total_urls: int
    successful: int
    failed: int
    results: list[ExtractedPageResponse]


class SessionSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    original_query: str
    query: str
    status: str
    start_time: datetime
    end_time: datetime | None
    total_results: int
    relevant_results: int
    error: str | None


class SessionDetailResponse(SessionSummaryResponse):
    searches: list[SearchQueryResponse]
    extracted_content: list[ExtractedContentResponse]
    context_summary: str | None


class ProgressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    session_id: str
    current_step: str
    progress: int
    status: str
    current_query: str | None
    results_found: int
    content_extracted: int
    estimated_time_remaining_ms: int | None


class ContextResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    session_id: str
    query: str
    relevant_content: str
    sources: list[str]
    confidence: int
    last_updated: datetime


class QuickSearchResponse(BaseModel):
    query: str
    provider: str | None
    fallback_from: str | None
    results_count: int
    results: list[dict]
    summary: str | None


class StopResponse(BaseModel):
    session_id: str
    status: str
