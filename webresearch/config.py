from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Search backends, tried in this order unless a preferred engine is set
    search_engines: str = "duckduckgo,brave,google,tavily,jina,duckduckgo_html"
    preferred_search_engine: str = "duckduckgo"
    search_fallback_enabled: bool = True
    search_timeout_seconds: float = 10.0
    search_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 WebResearch/1.0"
    )

    # Provider credentials (a backend without its key is skipped)
    brave_api_key: str = ""
    google_api_key: str = ""
    google_search_engine_id: str = ""
    tavily_api_key: str = ""
    jina_api_key: str = ""

    # Content extraction
    extractor_timeout_seconds: float = 30.0
    extractor_max_content_chars: int = 4000
    extractor_requests_per_minute: int = 15
    extractor_batch_size: int = 3
    extractor_batch_delay_seconds: float = 1.0

    # Research defaults, overridable per session
    research_max_searches: int = 5
    research_max_results_per_search: int = 15
    research_max_content_extractions: int = 6
    research_timeout_ms: int = 120000
    research_relevance_threshold: int = 15
    research_min_searches: int = 1

    # Session table
    session_store_max_sessions: int = 256
    session_store_max_age_seconds: int = 3600

    # App
    cors_origins: str = "http://localhost:3000"
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_dir: str = "logs"
    log_to_file: bool = True

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]

    @property
    def search_engine_list(self) -> list[str]:
        return [e.strip().lower() for e in self.search_engines.split(",") if e.strip()]


settings = Settings()
