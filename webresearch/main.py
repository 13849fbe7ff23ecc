from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from webresearch.agents.orchestrator import ResearchOrchestrator
from webresearch.api.deps import get_orchestrator, shutdown_orchestrator
from webresearch.api.routes import research
from webresearch.config import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Search engines in fallback order: {', '.join(settings.search_engine_list)}")
    yield
    # Stop whatever is still running so no task outlives the loop
    await shutdown_orchestrator()


app = FastAPI(
    title="WebResearch",
    description="Multi-engine web research sessions with content extraction",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for router in (research.router, research.search_router, research.extract_router):
    app.include_router(router)


@app.get("/api/health")
async def health(orchestrator: ResearchOrchestrator = Depends(get_orchestrator)):
    sessions = orchestrator.get_all_sessions()
    return {
        "status": "ok",
        "service": "webresearch",
        "sessions": len(sessions),
        "running": sum(1 for s in sessions if not s.is_terminal),
    }
