"""
livedash API — Application entry point.

Bootstraps FastAPI, wires up middleware, registers route groups and logs
the service lifecycle. The snapshot cache and stream channel are created
empty at import time (core/hub.py) and live as long as the process.

Run:
    uvicorn livedash.main:app --host 0.0.0.0 --port 8000

Extension points:
  - Add new route groups with app.include_router() below
  - Add new middleware in the middleware block
  - Change startup behaviour in the lifespan context manager
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from livedash.core.config import settings
from livedash.core.hub import get_distribution
from livedash.core.rate_limit import limiter
from livedash.routes.health import router as health_router
from livedash.routes.snapshots import router as snapshots_router
from livedash.routes.stream import router as stream_router
from livedash.routes.upstream import router as upstream_router
from livedash.services.distribution import DistributionChannel

# ─── Logging ───────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ─── Lifespan ──────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Log startup and shutdown.

    Nothing to open or close: the cache is in-memory and upstream calls
    open their own short-lived HTTP clients.
    """
    logger.info("Starting livedash API (env: %s)", settings.environment)
    logger.info("Upstream stats server: %s", settings.stats_server_base_url)
    logger.info("Stream endpoint: %s", get_distribution().endpoint())
    yield
    logger.info("Shutting down livedash API")


# ─── App ───────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="livedash API",
    description=(
        "Live broadcast audience statistics: latest snapshots, proxied "
        "discovery/historical queries and a WebSocket update stream."
    ),
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
)


# ─── Rate limiting ─────────────────────────────────────────────────────────────
# Routes opt-in with @limiter.limit(...) + request: Request parameter.
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ─── Middleware ─────────────────────────────────────────────────────────────────
# CORS: dashboards on other origins read the computed JSON.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type"],
)


# ─── Routes ────────────────────────────────────────────────────────────────────
app.include_router(health_router, prefix="/health", tags=["health"])
app.include_router(snapshots_router)
app.include_router(stream_router)
# Last: "/{service}/historical.json" would shadow more specific paths
app.include_router(upstream_router)


@app.get("/", tags=["root"])
async def root(distribution: DistributionChannel = Depends(get_distribution)):
    """API root — basic metadata."""
    return {
        "name": "livedash API",
        "version": "0.1.0",
        "status": "running",
        "environment": settings.environment,
        "stream": distribution.endpoint(),
        "docs": "/docs",
    }
