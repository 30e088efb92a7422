"""
snapshots.py — Latest-snapshot reads and ingestion.

Routes:
  GET  /latest.json              — cached overview record (null until first ingest)
  GET  /latest/{scope}.json      — cached record for one channel (null on miss)
  POST /api/v1/ingest/{scope}    — store one raw observation for a scope
  POST /api/v1/ingest            — store several at once: {scope: payload, ...}

A cache miss is "no data yet", not an error: the dashboard renders its
placeholder state when it gets null.

Ingestion is an async route on purpose: it runs on the event loop thread,
which is where stream subscriber queues live.
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from livedash.core.hub import get_cache, get_distribution, get_ingestor
from livedash.models.dashboard import IngestAck
from livedash.services.distribution import DistributionChannel
from livedash.services.ingestion import StatsIngestor
from livedash.services.snapshot_cache import OVERVIEW_SCOPE, SnapshotCache

logger = logging.getLogger(__name__)

router = APIRouter(tags=["snapshots"])


def _snapshot_response(cache: SnapshotCache, scope: str) -> JSONResponse:
    record = cache.get(scope)
    return JSONResponse(content=record.to_payload() if record is not None else None)


# ── Reads ─────────────────────────────────────────────────────────────────────

@router.get("/latest.json")
async def latest_overview(cache: SnapshotCache = Depends(get_cache)):
    """Current cross-channel overview snapshot."""
    return _snapshot_response(cache, OVERVIEW_SCOPE)


@router.get("/latest/{scope}.json")
async def latest_for_scope(scope: str, cache: SnapshotCache = Depends(get_cache)):
    return _snapshot_response(cache, scope)


# ── Ingestion ─────────────────────────────────────────────────────────────────

@router.post("/api/v1/ingest/{scope}")
async def ingest_one(
    scope: str,
    payload: dict[str, Any] = Body(...),
    ingestor: StatsIngestor = Depends(get_ingestor),
):
    """
    Parse, cache and broadcast one upstream observation.

    Returns the record as stored, so the producer can see what defaults
    were applied.
    """
    record = ingestor.ingest(scope, payload)
    return JSONResponse(content=record.to_payload())


@router.post("/api/v1/ingest", response_model=IngestAck)
async def ingest_many(
    payloads: dict[str, dict[str, Any]] = Body(...),
    ingestor: StatsIngestor = Depends(get_ingestor),
    distribution: DistributionChannel = Depends(get_distribution),
) -> IngestAck:
    """Ingest a batch keyed by scope, in the order given."""
    for scope, payload in payloads.items():
        ingestor.ingest(scope, payload)
    logger.info("Ingested %d scope(s)", len(payloads))
    return IngestAck(ingested=list(payloads), subscribers=distribution.subscriber_count)
