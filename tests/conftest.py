from __future__ import annotations

import threading
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional

import pandas as pd
import pytest

from trend_engine.pacer import NullPacer
from trend_engine.probe import ProbeClient
from trend_engine.repository import JsonDocumentRepository
from trend_engine.scheduler import ScanScheduler
from trend_engine.trends_provider import SuggestProvider, TrendsProvider


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeSuggest(SuggestProvider):
    """Answers from a dict; queries listed in ``failing`` raise."""

    def __init__(self, answers: Optional[Dict[str, List[str]]] = None, failing=(), fail_all: bool = False):
        self.answers = answers or {}
        self.failing = set(failing)
        self.fail_all = fail_all
        self.calls: List[str] = []
        self.gate: Optional[threading.Event] = None
        self.entered = threading.Event()

    def suggest(self, query: str) -> List[str]:
        self.calls.append(query)
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(5)
        if self.fail_all or query in self.failing:
            raise ConnectionError(f"boom: {query}")
        return list(self.answers.get(query, []))


class FakeTrends(TrendsProvider):
    def __init__(self, related=None, interest=None, fail_all: bool = False):
        # related: seed -> [(query, value)] or [(query, value, formattedValue)]
        self.related = related or {}
        self.interest = interest or {}
        self.fail_all = fail_all
        self.related_calls: List[str] = []
        self.interest_calls: List[tuple] = []

    def related_queries(self, term, timeframe):
        self.related_calls.append(term)
        if self.fail_all:
            raise RuntimeError("The request failed: Google returned a response with code 429")
        rows = self.related.get(term)
        if not rows:
            return None
        if len(rows[0]) == 3:
            return pd.DataFrame(rows, columns=["query", "value", "formattedValue"])
        return pd.DataFrame(rows, columns=["query", "value"])

    def interest_over_time(self, term, timeframe):
        self.interest_calls.append((term, timeframe))
        if self.fail_all:
            raise RuntimeError("code 429")
        return self.interest.get(term)


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: int = 1) -> None:
        self.now = self.now + timedelta(days=days)


def daily_series(values, end: date) -> pd.Series:
    idx = pd.date_range(end=pd.Timestamp(end), periods=len(values), freq="D")
    return pd.Series(values, index=idx, dtype=float)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 1, 6, 0, tzinfo=timezone.utc))


@pytest.fixture
def seeds_cfg():
    return {
        "autocomplete_prefixes": ["photo booth"],
        "expansion_alphabet": "ab",
        "breakout_seeds": ["photo booth"],
        "geo": "US",
        "timeframe": "today 3-m",
    }


@pytest.fixture
def suggest():
    return FakeSuggest()


@pytest.fixture
def trends():
    return FakeTrends()


@pytest.fixture
def probe(suggest, trends):
    return ProbeClient(suggest, trends, suggest_pacer=NullPacer(), trends_pacer=NullPacer())


@pytest.fixture
def repo(tmp_path):
    return JsonDocumentRepository(str(tmp_path / "data" / "trends.json"))


@pytest.fixture
def make_scheduler(probe, repo, seeds_cfg, clock):
    def _make(**kw):
        kw.setdefault("track_seed_interest", False)
        return ScanScheduler(probe, kw.pop("repository", repo), kw.pop("seeds", seeds_cfg), clock=clock, **kw)
    return _make
