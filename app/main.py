import logging

# Log configuration (before other imports)
# ruff: noqa: E402
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    force=True
)

from contextlib import asynccontextmanager  # noqa: E402
from typing import Optional  # noqa: E402

from fastapi import FastAPI  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402

from app.api.base import api_router  # noqa: E402
from app.config import get_timer_settings  # noqa: E402
from app.db.session import dispose_engine  # noqa: E402
from app.features.timer import SqlAlchemyLocalStore, TimerEngine  # noqa: E402
from app.infra.supabase import get_supabase_client  # noqa: E402
from app.infra.supabase.repositories import RepositoryFactory  # noqa: E402

logger = logging.getLogger(__name__)


def build_timer_engine(repositories: RepositoryFactory) -> tuple[TimerEngine, SqlAlchemyLocalStore]:
    """Wire the engine from TIMER_* settings"""
    settings = get_timer_settings()
    if not settings.user_id:
        raise ValueError("TIMER_USER_ID must be set")

    local_store = SqlAlchemyLocalStore.from_url(settings.state_db_url)
    engine = TimerEngine(
        sessions=repositories.time_sessions,
        tasks=repositories.tasks,
        local_store=local_store,
        user_id=settings.user_id,
        tick_interval_seconds=settings.tick_interval_seconds,
        sync_interval_seconds=settings.sync_interval_seconds,
        state_key=settings.state_key,
    )
    return engine, local_store


def create_app(
    timer_engine: Optional[TimerEngine] = None,
    repositories: Optional[RepositoryFactory] = None,
) -> FastAPI:
    """
    Build the API application.

    Passing an engine and repositories skips wiring from the environment.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        local_store = None
        repos = repositories
        engine = timer_engine

        if repos is None:
            repos = RepositoryFactory(get_supabase_client())
        if engine is None:
            engine, local_store = build_timer_engine(repos)

        app.state.repositories = repos
        app.state.timer_engine = engine
        await engine.startup()
        try:
            yield
        finally:
            await engine.shutdown()
            if local_store is not None:
                dispose_engine(local_store.engine)
            app.state.timer_engine = None

    app = FastAPI(
        title="Task Timer Backend API",
        description="Timer and work-session tracking for tasks",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Specify your frontend URL in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include all API routes
    app.include_router(api_router)

    @app.get("/")
    def read_root():
        return {
            "message": "Task Timer Backend API",
            "docs": "/docs",
            "version": "1.0.0"
        }

    return app


app = create_app()
