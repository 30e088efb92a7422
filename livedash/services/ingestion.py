"""
ingestion.py — Turn raw upstream pushes into cached snapshots.

The upstream stats producer pushes one JSON object per scope per minute.
StatsIngestor parses it into a StatsRecord, stores it in the snapshot cache
(which in turn fans it out to stream subscribers) and, when enabled,
rebuilds the overview scope from all channel snapshots.
"""

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from livedash.models.stats import BROADCASTER_TOKENS, StatsRecord, humanize
from livedash.services.compaction import compact_as
from livedash.services.snapshot_cache import OVERVIEW_SCOPE, SnapshotCache

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _observed_at(record: StatsRecord) -> datetime:
    try:
        moment = datetime.fromisoformat(record.timestamp)
    except ValueError:
        return _EPOCH
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


class StatsIngestor:
    def __init__(
        self,
        cache: SnapshotCache,
        derive_overview: bool = False,
        tokens: Iterable[str] = BROADCASTER_TOKENS,
    ) -> None:
        self.cache = cache
        self.derive_overview = derive_overview
        self.tokens = tuple(tokens)

    def ingest(self, scope: str, payload: Any) -> StatsRecord:
        """Parse and store one observation for `scope`; returns the stored record."""
        record = StatsRecord.parse(scope, payload, tokens=self.tokens)
        self.cache.put(scope, record)

        if self.derive_overview and scope != OVERVIEW_SCOPE:
            self.refresh_overview()

        return record

    def refresh_overview(self) -> StatsRecord | None:
        """
        Compact every channel snapshot into the overview scope.

        Channels are folded oldest first (ties in scope-id order), so the
        overview takes its timestamp and programme from the most recent
        channel snapshot.
        """
        channels = [record for scope, record in self.cache.items() if scope != OVERVIEW_SCOPE]
        if not channels:
            return None
        channels.sort(key=_observed_at)

        overview = compact_as(OVERVIEW_SCOPE, humanize(OVERVIEW_SCOPE, self.tokens), channels)
        self.cache.put(OVERVIEW_SCOPE, overview)
        logger.debug("Overview rebuilt from %d channel(s)", len(channels))
        return overview
