"""
distribution.py — Live push of snapshot updates to dashboard clients.

Every SnapshotCache.put() ends up in publish(), which serialises the record
once and drops the JSON text into each subscriber's bounded asyncio.Queue
with put_nowait(). Nothing here awaits, so ingestion never waits on a
slow browser. A subscriber whose queue is full (or already closed) is
dropped and will have to reconnect.

The WebSocket route owns the other end of each queue (see routes/stream.py).

No replay: a new client reads GET /latest.json once, then relies on pushes.
"""

import asyncio
import json
import logging
from collections.abc import Iterable
from typing import Optional

from livedash.models.stats import StatsRecord

logger = logging.getLogger(__name__)


class Subscriber:
    """One connected dashboard client: an outbound queue and an optional scope filter."""

    def __init__(self, maxsize: int, scopes: Optional[Iterable[str]] = None) -> None:
        # None is the end-of-stream marker queued by close()
        self.queue: asyncio.Queue[Optional[str]] = asyncio.Queue(maxsize=maxsize)
        self.scopes: Optional[frozenset[str]] = frozenset(scopes) if scopes else None
        self.closed = False

    def wants(self, scope: str) -> bool:
        return self.scopes is None or scope in self.scopes

    def offer(self, message: str) -> bool:
        """Queue a message without blocking. False means the subscriber is gone or too slow."""
        if self.closed:
            return False
        try:
            self.queue.put_nowait(message)
        except asyncio.QueueFull:
            return False
        return True

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self.queue.full():
            # Too slow anyway: lose the oldest frame to make room for the marker
            self.queue.get_nowait()
        self.queue.put_nowait(None)


class DistributionChannel:
    """Fan-out of cache updates to every subscribed client."""

    def __init__(
        self,
        endpoint_url: str,
        queue_size: int = 100,
    ) -> None:
        self._endpoint_url = endpoint_url
        self._queue_size = queue_size
        self._subscribers: set[Subscriber] = set()

    def endpoint(self) -> str:
        """Address clients use to subscribe (ws://host:port/path)."""
        return self._endpoint_url

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, scopes: Optional[Iterable[str]] = None) -> Subscriber:
        subscriber = Subscriber(self._queue_size, scopes)
        self._subscribers.add(subscriber)
        logger.info("Stream subscriber joined (%d connected)", len(self._subscribers))
        return subscriber

    def unsubscribe(self, subscriber: Subscriber) -> None:
        subscriber.close()
        if subscriber in self._subscribers:
            self._subscribers.discard(subscriber)
            logger.info("Stream subscriber left (%d connected)", len(self._subscribers))

    def publish(self, scope: str, record: StatsRecord) -> int:
        """
        Push `record` to every subscriber interested in `scope`.

        Returns the number of subscribers the message was queued for.
        Signature matches SnapshotCache listeners.
        """
        if not self._subscribers:
            return 0

        message = json.dumps(record.to_payload())
        delivered = 0
        for subscriber in list(self._subscribers):
            if not subscriber.wants(scope):
                continue
            if subscriber.offer(message):
                delivered += 1
            else:
                logger.warning("Dropping stream subscriber (queue full or closed) on %s update", scope)
                self.unsubscribe(subscriber)
        return delivered


def build_endpoint(scheme: str, host: str, port: int, path: str) -> str:
    if not path.startswith("/"):
        path = "/" + path
    return f"{scheme}://{host}:{port}{path}"
