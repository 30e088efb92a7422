"""
stream.py — Live snapshot stream and dashboard bootstrap.

Routes:
  GET  /api/v1/dashboard   — stream endpoint + dashboard display settings
  WS   <stream_path>       — pushes a StatsRecord JSON frame on every cache update
                             (default /api/v1/stream; ?scope=bbc_one&scope=overview
                             narrows the feed)

Each connection runs two tasks:
  - sender:   drains the subscriber queue into the socket
  - receiver: waits for the client to go away (incoming frames are ignored)
Both run in one anyio task group: whichever finishes first cancels the
other, and the subscriber is removed when the handler exits.

No replay on connect: clients fetch GET /latest.json once, then rely on pushes.
"""

import logging

import anyio
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status

from livedash.core.config import settings
from livedash.core.hub import get_distribution
from livedash.models.dashboard import DashboardConfig
from livedash.services.distribution import DistributionChannel, Subscriber

logger = logging.getLogger(__name__)

router = APIRouter(tags=["stream"])


@router.get("/api/v1/dashboard", response_model=DashboardConfig)
async def dashboard_config(
    distribution: DistributionChannel = Depends(get_distribution),
) -> DashboardConfig:
    return DashboardConfig(
        stream_endpoint=distribution.endpoint(),
        logo_template=settings.dashboard_logo_template,
        logo_missing=settings.dashboard_logo_missing,
        programme_uri=settings.dashboard_programme_uri,
        programme_picture_uri=settings.dashboard_programme_picture_uri,
        initial_services=settings.dashboard_initial_services,
    )


# ── WebSocket stream ──────────────────────────────────────────────────────────

async def _send_updates(websocket: WebSocket, subscriber: Subscriber, scope: anyio.CancelScope) -> None:
    try:
        while True:
            message = await subscriber.queue.get()
            if message is None:
                # Dropped by the channel (too slow); the client should reconnect
                await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER)
                return
            await websocket.send_text(message)
    except WebSocketDisconnect:
        logger.info("Stream client disconnected")
    except Exception as exc:
        logger.warning("Stream connection error: %s", exc)
    finally:
        scope.cancel()


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            logger.info("Stream client disconnected")
            return


@router.websocket(settings.stream_path)
async def stats_stream(
    websocket: WebSocket,
    distribution: DistributionChannel = Depends(get_distribution),
):
    """
    Push every snapshot update to this client.

    Frame format: one StatsRecord per text frame, in wire shape
    (see models/stats.py).
    """
    scopes = websocket.query_params.getlist("scope")
    subscriber = None
    try:
        # Subscribe before accepting so no update is missed once the client is connected
        subscriber = distribution.subscribe(scopes or None)
        await websocket.accept()

        async with anyio.create_task_group() as tasks:
            tasks.start_soon(_send_updates, websocket, subscriber, tasks.cancel_scope)
            await _wait_for_disconnect(websocket)
            tasks.cancel_scope.cancel()
    finally:
        if subscriber is not None:
            distribution.unsubscribe(subscriber)
