"""Value engine FastAPI application.

Read-only view over model runs and bet recommendations. Runs themselves are
executed by the Celery beat schedule or the CLI.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from valueengine import __version__
from valueengine.api.routes import health, recommendations, runs
from valueengine.config import configure_logging, get_settings

settings = get_settings()
configure_logging(settings.log_level)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("starting_valueengine", version=__version__)
    yield
    logger.info("shutting_down_valueengine")


app = FastAPI(
    title="Value Engine",
    description="Fair prices, edges and risk-tiered bet recommendations",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(recommendations.router)
app.include_router(runs.router)


@app.exception_handler(500)
async def server_error_handler(request: Request, exc):
    """Custom 500 handler."""
    logger.error("server_error", path=request.url.path, error=str(exc))
    return JSONResponse({"detail": "Internal server error"}, status_code=500)
