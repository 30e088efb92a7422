"""
test_upstream_gateway.py — UpstreamGateway forwarding and error envelope.

The upstream server is an httpx.MockTransport; no network access.
"""

import asyncio
import json

import httpx

from livedash.services.upstream import UpstreamGateway


def _gateway(handler, timeout=1.0):
    return UpstreamGateway("http://stats.test:8080/", timeout=timeout, transport=httpx.MockTransport(handler))


class TestForwardSuccess:

    async def test_body_and_content_type_relayed_verbatim(self):
        body = b'{"services": ["bbc_one"]}'

        def handler(request):
            return httpx.Response(200, content=body, headers={"content-type": "application/json"})

        result = await _gateway(handler).forward("get", "/discovery.json")

        assert result.ok is True
        assert result.status_code == 200
        assert result.body == body
        assert result.content_type == "application/json"

    async def test_method_and_path_passed_through(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["url"] = str(request.url)
            return httpx.Response(200, json=[])

        await _gateway(handler).forward("get", "/bbc_one/historical.json")

        assert seen == {"method": "GET", "url": "http://stats.test:8080/bbc_one/historical.json"}

    async def test_non_json_body_relayed(self):
        def handler(request):
            return httpx.Response(200, text="plain", headers={"content-type": "text/plain"})

        result = await _gateway(handler).forward("get", "/discovery.json")
        assert result.ok
        assert result.body == b"plain"

    async def test_convenience_wrappers(self):
        paths = []

        def handler(request):
            paths.append(request.url.path)
            return httpx.Response(200, json={})

        gateway = _gateway(handler)
        await gateway.discovery()
        await gateway.historical("radio_one")

        assert paths == ["/discovery.json", "/radio_one/historical.json"]

    async def test_service_id_is_quoted_into_path(self):
        seen = {}

        def handler(request):
            seen["raw_path"] = request.url.raw_path
            seen["query"] = request.url.query
            return httpx.Response(200, json=[])

        await _gateway(handler).historical("bbc_one?debug")

        assert seen["query"] == b""
        assert seen["raw_path"] == b"/bbc_one%3Fdebug/historical.json"


class TestForwardFailure:

    async def test_connection_error_becomes_envelope(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = await _gateway(handler).forward("get", "/discovery.json")

        assert result.ok is False
        assert result.status_code == 502
        assert result.content_type.startswith("application/json")
        assert "connection refused" in result.json()["error"]

    async def test_timeout_becomes_504(self):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        result = await _gateway(handler).forward("get", "/discovery.json")

        assert result.status_code == 504
        assert "timeout" in result.json()["error"]

    async def test_whole_request_bounded_by_timeout(self):
        async def dribbling(request):
            await asyncio.sleep(1.0)
            return httpx.Response(200, json={})

        result = await _gateway(dribbling, timeout=0.05).forward("get", "/discovery.json")

        assert result.ok is False
        assert result.status_code == 504
        assert "timeout" in result.json()["error"]

    async def test_upstream_error_status_becomes_envelope(self):
        def handler(request):
            return httpx.Response(500, text="kaboom")

        result = await _gateway(handler).forward("get", "/bbc_one/historical.json")

        assert result.ok is False
        assert result.status_code == 502
        assert "500" in result.json()["error"]

    async def test_invalid_json_becomes_envelope(self):
        def handler(request):
            return httpx.Response(200, content=b"{not json", headers={"content-type": "application/json"})

        result = await _gateway(handler).forward("get", "/discovery.json")

        assert result.status_code == 502
        assert set(result.json()) == {"error"}

    async def test_envelope_is_only_error_key(self):
        def handler(request):
            raise httpx.ConnectError("nope", request=request)

        result = await _gateway(handler).forward("get", "/discovery.json")
        assert set(json.loads(result.body)) == {"error"}
