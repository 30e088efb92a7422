"""
upstream.py — Proxied queries to the upstream stats server.

Routes:
  GET /discovery.json               — list of all available TV and radio services
  GET /{service}/historical.json    — 60 minutes of data for one service, 1-minute groups

The cache only knows the present; these go straight to the upstream
server, which is the source of truth for history. On success the body and
content type are relayed verbatim. On failure the caller gets
{"error": "..."} with 502/504 (see services/upstream.py).

Both routes are rate-limited per client IP (settings.proxy_rate_limit).
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from livedash.core.config import settings
from livedash.core.hub import get_gateway
from livedash.core.rate_limit import limiter
from livedash.services.upstream import UpstreamGateway, UpstreamResponse

router = APIRouter(tags=["upstream"])


def _relay(result: UpstreamResponse) -> Response:
    return Response(
        content=result.body,
        status_code=result.status_code,
        media_type=result.content_type,
    )


@router.get("/discovery.json")
@limiter.limit(settings.proxy_rate_limit)
async def discovery(request: Request, gateway: UpstreamGateway = Depends(get_gateway)):
    return _relay(await gateway.discovery())


@router.get("/{service}/historical.json")
@limiter.limit(settings.proxy_rate_limit)
async def historical(
    request: Request,
    service: str,
    gateway: UpstreamGateway = Depends(get_gateway),
):
    return _relay(await gateway.historical(service))
