from __future__ import annotations

from datetime import date, timedelta

from trend_engine.classifier import BREAKOUT_CHANGE
from trend_engine.ledger import TermLedger, TrendState
from trend_engine.models import RelatedQuery, ScanHistoryEntry, TermRecord
from trend_engine.snapshot import build_snapshot

TODAY = date(2026, 6, 1)


def _state() -> TrendState:
    def rec(age, appearances):
        return TermRecord(first_seen=TODAY - timedelta(days=age), last_seen=TODAY, appearances=appearances)

    s = TrendState(terms=TermLedger({
        "fresh booth": rec(2, 2),
        "new booth": rec(5, 3),
        "steady booth": rec(30, 30),
        "ok booth": rec(30, 12),
        "rare booth": rec(40, 5),
        "old booth": rec(200, 150),
    }))
    s.breakouts.merge_breakouts([RelatedQuery("Glambot", 140150, True, "photo booth")], TODAY - timedelta(days=3))
    s.breakouts.merge_breakouts([RelatedQuery("magic mirror", 6000, True, "wedding ideas")], TODAY)
    return s


class TestBuildSnapshot:
    def test_lists_and_ordering(self):
        snap = build_snapshot(_state(), TODAY)

        assert [v["term"] for v in snap["sustained"]] == ["steady booth", "ok booth"]
        assert [v["term"] for v in snap["emerging"]] == ["fresh booth", "new booth"]
        assert [v["term"] for v in snap["all"]] == [
            "fresh booth", "new booth", "ok booth", "steady booth", "rare booth", "old booth",
        ]
        assert snap["stats"] == {"totalTracked": 6, "sustainedCount": 2, "emergingCount": 2, "breakoutCount": 2}
        assert snap["refreshing"] is False

    def test_breakouts_newest_first_with_sentinel(self):
        snap = build_snapshot(_state(), TODAY)
        b = snap["breakouts"]
        assert [x["term"] for x in b] == ["magic mirror", "Glambot"]
        assert all(x["isBreakout"] for x in b)
        assert {x["change30"] for x in b} == {BREAKOUT_CHANGE}
        assert b[1]["category"] == "photo booth"

    def test_history_limited_to_latest_entries(self):
        s = _state()
        s.terms.history = [ScanHistoryEntry(date=TODAY - timedelta(days=i)) for i in range(40, 0, -1)]

        snap = build_snapshot(s, TODAY)

        assert len(snap["history"]) == 30
        assert snap["history"][-1]["date"] == (TODAY - timedelta(days=1)).isoformat()
        assert len(s.history) == 40

    def test_does_not_touch_state(self):
        s = _state()
        before = s.to_dict()
        build_snapshot(s, TODAY, refreshing=True)
        build_snapshot(s, TODAY + timedelta(days=400))
        assert s.to_dict() == before

    def test_empty_state(self):
        snap = build_snapshot(TrendState(), TODAY, refreshing=True)
        assert snap["all"] == [] and snap["breakouts"] == []
        assert snap["lastAutocompleteScan"] is None
        assert snap["refreshing"] is True
