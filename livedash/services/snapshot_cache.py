"""
snapshot_cache.py — Latest-known StatsRecord per scope.

A scope is a channel id, or OVERVIEW_SCOPE for the cross-channel rollup.
One entry per scope, last write wins, no eviction: this holds current
state only; history lives on the upstream stats server.

Writers are serialised per scope by ingestion. Readers may run on the
threadpool (sync routes) while a write happens, so the dict swap is done
under a lock and stored records are never mutated afterwards: a reader
sees either the old record or the new one.

Listeners registered with add_listener() are called after each put()
commits. DistributionChannel.publish is the main one.
"""

import logging
import threading
from collections.abc import Callable
from typing import Optional

from livedash.models.stats import StatsRecord

logger = logging.getLogger(__name__)

OVERVIEW_SCOPE = "overview"

CacheListener = Callable[[str, StatsRecord], None]


class SnapshotCache:
    """Process-wide keyed store of the most recent record per scope."""

    def __init__(self) -> None:
        self._records: dict[str, StatsRecord] = {}
        self._listeners: list[CacheListener] = []
        self._lock = threading.Lock()

    def put(self, scope: str, record: StatsRecord) -> None:
        """Overwrite the snapshot for `scope`, then notify listeners."""
        with self._lock:
            self._records[scope] = record
            listeners = list(self._listeners)

        logger.debug("Snapshot updated: %s @ %s", scope, record.timestamp)
        for listener in listeners:
            try:
                listener(scope, record)
            except Exception:
                logger.exception("Snapshot listener %r failed for scope %s", listener, scope)

    def get(self, scope: str) -> Optional[StatsRecord]:
        """Latest record for `scope`, or None when nothing was ingested yet."""
        with self._lock:
            return self._records.get(scope)

    def scopes(self) -> list[str]:
        with self._lock:
            return sorted(self._records)

    def items(self) -> list[tuple[str, StatsRecord]]:
        """Consistent copy of every (scope, record) pair, ordered by scope."""
        with self._lock:
            return sorted(self._records.items())

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, scope: object) -> bool:
        with self._lock:
            return scope in self._records

    # ── Listeners ─────────────────────────────────────────────────────────────

    def add_listener(self, listener: CacheListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: CacheListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)
