"""
stats.py — Pydantic models for broadcast audience statistics.

A StatsRecord represents a bit of time for one broadcaster: what's on air,
who is listening and where listeners came from / went to. Every upstream
push and every WebSocket frame carries objects fitting this structure.

The structure is made to be compactable: a list of 20 one-minute records
or a single record summing those 20 (see services/compaction.py).

Wire shape (snake_case, as the upstream stats server emits it):

  {
    "channel": "bbc_one",
    "channel_name": "BBC One",
    "tracks": [{"title": "...", "artist": "..."}],
    "programme": {"title": "...", "id": "b0...", "subtitle": "...",
                  "service_id": "bbc_one", "start": "<ISO>", "end": "<ISO>"},
    "timestamp": "<ISO>",
    "audience": {"total": 1200, "change": 15, "platforms": {"desktop": 700, "mobile": 500}},
    "flux": {"from": {"bbc_two": 4}, "to": {"radio_one": 2}},
    "social": {"twitter": 31}
  }

Unknown top-level fields are kept on the record (extra="allow") so newer
upstream payloads pass through untouched.
"""

import logging
import math
import re
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

# Abbreviations upper-cased by humanize(), matched case-insensitively.
BROADCASTER_TOKENS: tuple[str, ...] = ("bbc",)

NO_PROGRAMME_TITLE = "No title available"
NO_PROGRAMME_ID = "dummyid"
NO_TRACK_TITLE = "No track information available"
NO_TRACK_ARTIST = "No artist information available"

# Placeholder programme window, relative to "now"
_PLACEHOLDER_LOOKBACK = timedelta(minutes=60)
_PLACEHOLDER_LOOKAHEAD = timedelta(minutes=180)

# Counts arrive as JSON numbers: whole or fractional, kept as given
Count = Union[int, float]


def _now_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


def _parse_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def humanize(service_id: str, tokens: Iterable[str] = BROADCASTER_TOKENS) -> str:
    """
    Turn a service id into something almost looking like a readable label.

        humanize("radio_one")  → "Radio One"
        humanize("bbc_one")    → "BBC One"
    """
    label = service_id.replace("_", " ")
    label = re.sub(r"(^|\s)\w", lambda m: m.group(0).upper(), label)
    for token in tokens:
        if token:
            label = re.sub(re.escape(token), lambda m: m.group(0).upper(), label, flags=re.IGNORECASE)
    return label


# ── Nested structures ─────────────────────────────────────────────────────────

class MusicTrack(BaseModel):
    """A track played during the interval."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    title: str = ""
    artist: str = ""


class Programme(BaseModel):
    """Programme broadcast during the interval."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    title: str = ""
    id: str = ""
    subtitle: str = ""
    service_id: str = ""
    start: Optional[str] = None    # ISO-8601
    end: Optional[str] = None      # ISO-8601

    # Presentation-only, filled by StatsRecord.current_programme()
    start_date: Optional[datetime] = Field(default=None, exclude=True)
    end_date: Optional[datetime] = Field(default=None, exclude=True)


class Audience(BaseModel):
    """Current audience, its trend and the split by broadcasting platform."""

    total: Count = 0
    change: Count = 0
    platforms: dict[str, Count] = Field(default_factory=dict)   # platform id → listeners


class Flux(BaseModel):
    """
    Listeners entering/leaving from other services during the interval.

    Keys are service ids: flux.from_["bbc_one"] is how many people arrived
    on this channel from BBC One. `from` is a keyword, hence the alias.
    """

    model_config = ConfigDict(populate_by_name=True)

    from_: dict[str, Count] = Field(default_factory=dict, alias="from")
    to: dict[str, Count] = Field(default_factory=dict)


class Social(BaseModel):
    """Social data trends. Extra numeric signals are accepted."""

    model_config = ConfigDict(extra="allow")

    twitter: Count = 0


# ── Record ────────────────────────────────────────────────────────────────────

class StatsRecord(BaseModel):
    """One observation window for one channel."""

    model_config = ConfigDict(extra="allow")

    channel: str = ""
    channel_name: str = ""
    tracks: list[MusicTrack] = Field(default_factory=list)
    programme: Optional[Programme] = None
    # Always set: dashboard charts need a time axis
    timestamp: str = Field(default_factory=_now_iso)
    audience: Audience = Field(default_factory=Audience)
    flux: Flux = Field(default_factory=Flux)
    social: Social = Field(default_factory=Social)

    @classmethod
    def parse(
        cls,
        channel_id: str,
        payload: Any,
        tokens: Iterable[str] = BROADCASTER_TOKENS,
    ) -> "StatsRecord":
        """
        Build a record from a raw upstream payload.

        Defaults first, then every field present in the payload overwrites
        its default (shallow, field by field). A field that fails validation
        keeps its default. `channel` and `channel_name` always come from
        `channel_id`, whatever the payload says.
        """
        if not isinstance(payload, Mapping):
            logger.warning("Stats payload for %s is not an object (%s); using defaults",
                           channel_id, type(payload).__name__)
            payload = {}

        values: dict[str, Any] = {}
        for key, raw in payload.items():
            if key in ("channel", "channel_name"):
                continue
            adapter = _FIELD_ADAPTERS.get(key)
            if adapter is None:
                values[str(key)] = raw
                continue
            try:
                values[key] = adapter.validate_python(raw)
            except ValidationError as exc:
                logger.warning("Stats payload for %s: ignoring malformed '%s' (%d error(s))",
                               channel_id, key, exc.error_count())

        values["channel"] = channel_id
        values["channel_name"] = humanize(channel_id, tokens)
        record = cls.model_validate(values)
        record.check_audience()
        return record

    # ── Invariants ────────────────────────────────────────────────────────────

    def check_audience(self) -> bool:
        """
        Warn when the platform split does not add up to the stated total.

        Upstream is authoritative, so the record is kept either way.
        An empty split means no breakdown was supplied and is not checked.
        """
        platforms = self.audience.platforms
        if not platforms:
            return True
        computed = sum(platforms.values())
        if not math.isclose(computed, self.audience.total):
            logger.warning(
                "Inconsistent audience for %s at %s: total=%s, platforms sum=%s",
                self.channel, self.timestamp, self.audience.total, computed,
            )
            return False
        return True

    # ── Presentation accessors (never mutate the stored record) ───────────────

    def current_programme(self) -> Programme:
        """Active programme of this interval, or a wide synthetic window."""
        if self.programme is not None:
            return self.programme.model_copy(deep=True, update={
                "start_date": _parse_iso(self.programme.start),
                "end_date": _parse_iso(self.programme.end),
            })

        now = datetime.now(tz=timezone.utc)
        start = now - _PLACEHOLDER_LOOKBACK
        end = now + _PLACEHOLDER_LOOKAHEAD
        return Programme(
            title=NO_PROGRAMME_TITLE,
            id=NO_PROGRAMME_ID,
            subtitle="",
            service_id=self.channel,
            start=start.isoformat(),
            end=end.isoformat(),
            start_date=start,
            end_date=end,
        )

    def current_track(self) -> MusicTrack:
        if self.tracks:
            return self.tracks[-1].model_copy()
        return MusicTrack(title=NO_TRACK_TITLE, artist=NO_TRACK_ARTIST)

    def audience_change_ratio(self) -> float:
        """
        change / total. Non-finite when total is 0: callers read that as
        "no trend data".
        """
        change = self.audience.change
        total = self.audience.total
        if total == 0:
            return math.nan if change == 0 else math.copysign(math.inf, change)
        return change / total

    def signed_audience_change(self) -> str:
        change = self.audience.change
        if not change:
            return "-"
        return f"+{change}" if change > 0 else str(change)

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict in wire shape (aliases applied)."""
        return self.model_dump(mode="json", by_alias=True)


# Per-field validators used by StatsRecord.parse() for the field-by-field overlay
_FIELD_ADAPTERS: dict[str, TypeAdapter] = {
    name: TypeAdapter(info.annotation)
    for name, info in StatsRecord.model_fields.items()
}
