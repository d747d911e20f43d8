"""FastAPI application factory with lifespan management."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from autoflow.config import config
from autoflow.core.engine import WorkflowEngine
from autoflow.version import __version__

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    # ── Startup ──
    logger.info(f"autoflow v{__version__} starting...")

    if getattr(app.state, "engine", None) is None:
        # 1. Database
        from autoflow.db.database import init_db, async_session
        await init_db()
        app.state.async_session = async_session

        # 2. Repository adapters: workflow source, credit store, log sink
        from autoflow.db.repository import SessionRepository
        repo = SessionRepository(async_session)

        # 3. Handler registry + engine
        from autoflow.callbacks import LoggingCallback
        from autoflow.handlers.registry import build_default_registry
        app.state.engine = WorkflowEngine(
            registry=build_default_registry(config),
            credit_store=repo,
            log_sink=repo,
            workflow_source=repo,
            callbacks=[LoggingCallback()],
            settings=config,
        )

    engine: WorkflowEngine = app.state.engine
    logger.info(f"autoflow v{__version__} ready, handlers: {', '.join(engine.registry.list_types())}")

    yield

    # ── Shutdown ──
    logger.info("autoflow shutting down, waiting for background runs...")
    await engine.drain()


def create_app(engine: Optional[WorkflowEngine] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        engine: Pre-wired WorkflowEngine. When None, the lifespan builds one
                backed by the configured database.
    """
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="autoflow",
        description="Graph-based workflow automation engine.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.engine = engine

    from autoflow.api.routes import conditions, executions, health
    app.include_router(executions.router, prefix="/v1")
    app.include_router(conditions.router, prefix="/v1")
    app.include_router(health.router, prefix="/v1")

    return app


app = create_app()
