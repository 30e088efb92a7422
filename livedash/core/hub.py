"""
Process-wide wiring of the snapshot cache, push channel, upstream gateway
and ingestor.

Architecture decision: a single Hub instance, created empty at import time
and kept for the life of the process (no teardown). FastAPI's dependency
injection (get_cache, get_distribution, ...) gives routes clean access
without importing the singleton directly.

Tests replace `hub` with a fresh build_hub() result (see tests/conftest.py).
"""

import logging
from typing import Optional

import httpx

from livedash.core.config import Settings, settings
from livedash.services.distribution import DistributionChannel, build_endpoint
from livedash.services.ingestion import StatsIngestor
from livedash.services.snapshot_cache import SnapshotCache
from livedash.services.upstream import UpstreamGateway

logger = logging.getLogger(__name__)


class Hub:
    """Holds the long-lived service objects shared by every request."""

    def __init__(
        self,
        cache: SnapshotCache,
        distribution: DistributionChannel,
        gateway: UpstreamGateway,
        ingestor: StatsIngestor,
    ) -> None:
        self.cache = cache
        self.distribution = distribution
        self.gateway = gateway
        self.ingestor = ingestor


def build_hub(
    config: Settings = settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Hub:
    """Create an empty cache and wire the push channel to every cache write."""
    cache = SnapshotCache()
    distribution = DistributionChannel(
        endpoint_url=build_endpoint(
            config.stream_scheme, config.stream_host, config.stream_port, config.stream_path
        ),
        queue_size=config.subscriber_queue_size,
    )
    cache.add_listener(distribution.publish)

    gateway = UpstreamGateway(
        config.stats_server_base_url,
        timeout=config.upstream_timeout_seconds,
        transport=transport,
    )
    ingestor = StatsIngestor(
        cache,
        derive_overview=config.derive_overview,
        tokens=config.broadcaster_tokens,
    )
    return Hub(cache, distribution, gateway, ingestor)


# Module-level singleton: app code reaches it through the getters below
hub = build_hub()


def get_cache() -> SnapshotCache:
    return hub.cache


def get_distribution() -> DistributionChannel:
    return hub.distribution


def get_gateway() -> UpstreamGateway:
    return hub.gateway


def get_ingestor() -> StatsIngestor:
    return hub.ingestor
