"""
UpstreamGateway — Forwards on-demand queries to the upstream stats server.

The snapshot cache only holds the latest record per scope. Anything
else (the list of known services, the last 60 minutes of a channel) is
asked of the upstream stats HTTP server on demand.

Graceful degradation: forward() never raises. Transport errors, timeouts,
upstream error statuses and unparseable JSON all come back as an
UpstreamResponse carrying {"error": "..."} and an error status, so routes
can relay the result as-is.

  timeout (whole call bounded) → 504
  connection / protocol error  → 502
  upstream non-2xx             → 502
  JSON content type, bad body  → 502
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json; charset=utf-8"


@dataclass(frozen=True)
class UpstreamResponse:
    """Result of a forwarded request: relayed body on success, error envelope otherwise."""

    status_code: int
    body: bytes
    content_type: str
    ok: bool

    @classmethod
    def failure(cls, status_code: int, diagnostic: str) -> "UpstreamResponse":
        return cls(
            status_code=status_code,
            body=json.dumps({"error": diagnostic}).encode("utf-8"),
            content_type=JSON_CONTENT_TYPE,
            ok=False,
        )

    def json(self):
        return json.loads(self.body)


def _is_json(content_type: str) -> bool:
    return "json" in content_type.split(";", 1)[0].lower()


class UpstreamGateway:
    """
    Thin async wrapper around the upstream stats HTTP server.

    A new httpx.AsyncClient is opened per call so a stuck upstream cannot
    poison a shared connection pool. `transport` lets tests plug in an
    httpx.MockTransport.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def forward(self, method: str, path: str) -> UpstreamResponse:
        """
        Issue `method path` against the upstream server.

        Args:
            method: HTTP method, passed through unchanged.
            path:   Absolute path, passed through unchanged ("/discovery.json").

        Returns:
            UpstreamResponse — upstream body and content type verbatim on
            success, JSON error envelope otherwise.
        """
        url = f"{self.base_url}{path}"

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                # httpx timeouts are per phase; this one bounds the whole exchange
                async with asyncio.timeout(self.timeout):
                    response = await client.request(method.upper(), url)
                response.raise_for_status()
            except (httpx.TimeoutException, TimeoutError) as exc:
                logger.warning("Upstream %s %s timed out after %.1fs", method.upper(), path, self.timeout)
                return UpstreamResponse.failure(504, f"upstream timeout: {exc!r}")
            except httpx.HTTPStatusError as exc:
                logger.warning(
                    "Upstream %s %s returned %s — %s",
                    method.upper(), path, exc.response.status_code, exc.response.text[:200],
                )
                return UpstreamResponse.failure(
                    502, f"upstream returned HTTP {exc.response.status_code} for {path}"
                )
            except httpx.HTTPError as exc:
                logger.warning("Upstream %s %s failed: %r", method.upper(), path, exc)
                return UpstreamResponse.failure(502, f"upstream request failed: {exc!r}")

        content_type = response.headers.get("content-type", JSON_CONTENT_TYPE)
        if _is_json(content_type):
            try:
                json.loads(response.content)
            except ValueError as exc:
                logger.warning("Upstream %s %s sent invalid JSON: %s", method.upper(), path, exc)
                return UpstreamResponse.failure(502, f"invalid JSON from upstream: {exc}")

        return UpstreamResponse(
            status_code=response.status_code,
            body=response.content,
            content_type=content_type,
            ok=True,
        )

    async def discovery(self) -> UpstreamResponse:
        """List of all available TV and radio services."""
        return await self.forward("get", "/discovery.json")

    async def historical(self, service: str) -> UpstreamResponse:
        """60 minutes of data for one service, in 1-minute groups."""
        return await self.forward("get", f"/{quote(service, safe='')}/historical.json")
