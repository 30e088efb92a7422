"""
compaction.py — Roll a window of StatsRecords up into a single record.

Twenty one-minute records for a channel compact into one twenty-minute
record with the same shape. The rules:

  timestamp          last input (the rollup is anchored at window end)
  audience totals    summed (total, change, each platform)
  flux from / to     summed per service id, missing key counts as 0
  tracks             concatenated, chronological
  programme          last non-null one
  social signals     numeric values summed per key, others dropped
  channel / extras   last input wins

Every rule is associative, so compacting [A, B, C] in one pass equals
compacting [compact([A, B]), C] or [A, compact([B, C])]. `compact([r])`
returns a record equal to `r`.

USAGE
─────
    from livedash.services.compaction import compact
    hourly = compact(minute_records)
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from copy import deepcopy
from functools import reduce
from numbers import Number
from typing import Any

from livedash.models.stats import Audience, Count, Flux, Social, StatsRecord


def _sum_counts(left: Mapping[str, Count], right: Mapping[str, Count]) -> dict[str, Count]:
    merged = dict(left)
    for key, value in right.items():
        merged[key] = merged.get(key, 0) + value
    return merged


def _is_count(value: Any) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def _merge_social(left: Social, right: Social) -> Social:
    # Non-numeric signals are dropped: only counts roll up
    merged: dict[str, Any] = {}
    for extra in (left.model_extra or {}, right.model_extra or {}):
        for key, value in extra.items():
            if _is_count(value):
                merged[key] = merged.get(key, 0) + value
    return Social(twitter=left.twitter + right.twitter, **merged)


def merge(left: StatsRecord, right: StatsRecord) -> StatsRecord:
    """
    Combine two consecutive records; `right` is the later one.

    The result shares no nested objects with its inputs.
    """
    extras = deepcopy({**(left.model_extra or {}), **(right.model_extra or {})})
    programme = right.programme if right.programme is not None else left.programme

    return StatsRecord(
        channel=right.channel,
        channel_name=right.channel_name,
        tracks=[track.model_copy() for track in (*left.tracks, *right.tracks)],
        programme=programme.model_copy(deep=True) if programme is not None else None,
        timestamp=right.timestamp,
        audience=Audience(
            total=left.audience.total + right.audience.total,
            change=left.audience.change + right.audience.change,
            platforms=_sum_counts(left.audience.platforms, right.audience.platforms),
        ),
        flux=Flux(
            from_=_sum_counts(left.flux.from_, right.flux.from_),
            to=_sum_counts(left.flux.to, right.flux.to),
        ),
        social=_merge_social(left.social, right.social),
        **extras,
    )


def compact(records: Iterable[StatsRecord]) -> StatsRecord:
    """
    Compact an ordered sequence of records into one.

    Raises ValueError on an empty sequence: there is no window to describe.
    """
    records = list(records)
    if not records:
        raise ValueError("compact() needs at least one record")
    if len(records) == 1:
        return records[0].model_copy(deep=True)
    return reduce(merge, records)


def compact_as(scope: str, channel_name: str, records: Sequence[StatsRecord]) -> StatsRecord:
    """Compact records from several channels and relabel the result (overview rollups)."""
    rolled = compact(records)
    return rolled.model_copy(update={"channel": scope, "channel_name": channel_name})
