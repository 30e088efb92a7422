"""
test_compaction.py — Tests for rolling StatsRecords up over a window
(services/compaction.py).

Totals are summed over the window: three one-minute records with
audience totals 100, 110, 120 compact to a total of 330.
"""

import pytest

from livedash.models.stats import Programme, StatsRecord
from livedash.services.compaction import compact, compact_as, merge


def _record(channel="radio_one", minute=0, total=0, change=0, **fields):
    payload = {
        "timestamp": f"2026-10-17T10:{minute:02d}:00+00:00",
        "audience": {"total": total, "change": change, "platforms": fields.pop("platforms", {})},
    }
    payload.update(fields)
    return StatsRecord.parse(channel, payload)


@pytest.fixture()
def window():
    a = _record(
        minute=0, total=10, change=1,
        platforms={"desktop": 4, "mobile": 6},
        flux={"from": {"bbc_one": 2}, "to": {"bbc_two": 1}},
        tracks=[{"title": "One", "artist": "A"}],
        programme={"title": "Breakfast", "id": "p1"},
        social={"twitter": 3},
    )
    b = _record(
        minute=1, total=12, change=2,
        platforms={"desktop": 5, "mobile": 7},
        flux={"from": {"bbc_two": 5}},
        social={"twitter": 1, "facebook": 2},
    )
    c = _record(
        minute=2, total=8, change=-4,
        platforms={"mobile": 8},
        flux={"to": {"bbc_two": 3, "radio_two": 1}},
        tracks=[{"title": "Two", "artist": "B"}, {"title": "Three", "artist": "C"}],
        programme={"title": "Lunchtime", "id": "p2"},
    )
    return a, b, c


class TestCompactRules:

    def test_single_record_is_noop(self, window):
        a, _, _ = window
        assert compact([a]) == a

    def test_single_record_result_is_a_copy(self, window):
        a, _, _ = window
        rolled = compact([a])
        rolled.audience.platforms["tablet"] = 1
        assert "tablet" not in a.audience.platforms

    def test_empty_sequence_rejected(self):
        with pytest.raises(ValueError):
            compact([])

    def test_audience_totals_summed(self, window):
        rolled = compact(window)
        assert rolled.audience.total == 30
        assert rolled.audience.change == -1
        assert rolled.audience.platforms == {"desktop": 9, "mobile": 21}

    def test_timestamp_is_window_end(self, window):
        assert compact(window).timestamp == "2026-10-17T10:02:00+00:00"

    def test_flux_summed_per_key(self, window):
        rolled = compact(window)
        assert rolled.flux.from_ == {"bbc_one": 2, "bbc_two": 5}
        assert rolled.flux.to == {"bbc_two": 4, "radio_two": 1}

    def test_tracks_concatenated_in_order(self, window):
        titles = [t.title for t in compact(window).tracks]
        assert titles == ["One", "Two", "Three"]

    def test_latest_programme_wins(self, window):
        assert compact(window).programme.title == "Lunchtime"

    def test_null_programme_does_not_erase_earlier_one(self, window):
        a, b, _ = window
        assert compact([a, b]).programme == Programme(title="Breakfast", id="p1")

    def test_social_summed(self, window):
        rolled = compact(window)
        assert rolled.social.twitter == 4
        assert rolled.social.model_extra == {"facebook": 2}

    def test_inputs_untouched(self, window):
        a, b, c = window
        compact(window)
        assert a.audience.total == 10
        assert [t.title for t in a.tracks] == ["One"]
        assert a.flux.from_ == {"bbc_one": 2}

    def test_rollup_shares_no_nested_objects(self, window):
        a, b, _ = window
        rolled = compact([a, b])
        rolled.programme.title = "changed"
        rolled.tracks[0].title = "changed"
        assert a.programme.title == "Breakfast"
        assert a.tracks[0].title == "One"

    def test_fractional_counts_summed(self):
        rolled = compact([
            _record(total=10.5, flux={"to": {"bbc_one": 0.5}}),
            _record(total=2, flux={"to": {"bbc_one": 1}}),
        ])
        assert rolled.audience.total == 12.5
        assert rolled.flux.to == {"bbc_one": 1.5}

    def test_extras_last_wins(self):
        a = _record(minute=0, region="north")
        b = _record(minute=1, region="south")
        assert compact([a, b]).to_payload()["region"] == "south"


class TestCompactAlgebra:

    def test_associative_left(self, window):
        a, b, c = window
        assert compact([a, b, c]) == compact([compact([a, b]), c])

    def test_associative_right(self, window):
        a, b, c = window
        assert compact([a, b, c]) == compact([a, compact([b, c])])

    def test_merge_matches_compact_of_pair(self, window):
        a, b, _ = window
        assert merge(a, b) == compact([a, b])

    def test_summation(self):
        rolled = compact([_record(total=10), _record(total=12), _record(total=8)])
        assert rolled.audience.total == 30


class TestEndToEnd:

    def test_three_minutes_of_radio_one(self):
        minutes = [
            _record(minute=0, total=100, flux={"to": {"bbc_one": 5}}),
            _record(minute=1, total=110, flux={"to": {"bbc_one": 3}}),
            _record(minute=2, total=120, flux={}),
        ]
        rolled = compact(minutes)

        assert rolled.channel == "radio_one"
        assert rolled.channel_name == "Radio One"
        assert rolled.audience.total == 330
        assert rolled.flux.to == {"bbc_one": 8}
        assert rolled.timestamp == "2026-10-17T10:02:00+00:00"


class TestCompactAs:

    def test_relabels_rollup(self):
        rolled = compact_as("overview", "Overview", [
            _record(channel="bbc_one", total=5),
            _record(channel="radio_one", total=7),
        ])
        assert rolled.channel == "overview"
        assert rolled.channel_name == "Overview"
        assert rolled.audience.total == 12
