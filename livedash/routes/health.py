"""
Health check endpoint.

Used by:
  - Docker HEALTHCHECK instruction
  - Load balancers / orchestrators
  - The dashboard, to tell "API down" from "no data ingested yet"

Returns liveness plus how many scopes are cached and how many stream
clients are connected.
"""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from livedash.core.config import settings
from livedash.core.hub import get_cache, get_distribution
from livedash.services.distribution import DistributionChannel
from livedash.services.snapshot_cache import SnapshotCache

logger = logging.getLogger(__name__)
router = APIRouter()


class HealthResponse(BaseModel):
    status: str  # Always "ok" if the API process is alive
    version: str
    environment: str
    scopes: int  # cached snapshots
    subscribers: int  # connected stream clients


@router.get("", response_model=HealthResponse, summary="API health check")
async def health_check(
    cache: SnapshotCache = Depends(get_cache),
    distribution: DistributionChannel = Depends(get_distribution),
) -> HealthResponse:
    """
    Returns the liveness status of the API.

    An empty cache is still healthy: it only means the upstream producer
    has not pushed anything since start-up.
    """
    return HealthResponse(
        status="ok",
        version="0.1.0",
        environment=settings.environment,
        scopes=len(cache),
        subscribers=distribution.subscriber_count,
    )
