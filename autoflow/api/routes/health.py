"""GET /v1/health: Health check with real service probes."""

import logging
from fastapi import APIRouter, Request
from autoflow.api.schemas import HealthResponse
from autoflow.version import __version__

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Check health of the engine and, when wired, the database."""
    engine = getattr(request.app.state, "engine", None)
    services: dict[str, bool] = {"api": True, "engine": engine is not None}

    async_session = getattr(request.app.state, "async_session", None)
    if async_session is not None:
        services["database"] = False
        try:
            async with async_session() as session:
                from sqlalchemy import text
                await session.execute(text("SELECT 1"))
            services["database"] = True
        except Exception as exc:
            logger.warning(f"[health] DB check failed: {exc}")

    overall = "ok" if all(services.values()) else "degraded"
    return HealthResponse(status=overall, version=__version__, services=services)
