"""Fail-soft access to the external trend sources.

Every public ``fetch_*`` call waits on its source's pacer, hits the source
once and returns a plain value. Network errors, bad HTTP statuses and
malformed payloads are logged and turned into an empty result; nothing is
retried inside a cycle because the next cycle probes again anyway.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional

import pandas as pd

from trend_engine.classifier import interest_delta
from trend_engine.models import RelatedQuery
from trend_engine.pacer import NullPacer, Pacer
from trend_engine.trends_provider import SuggestProvider, TrendsProvider

logger = logging.getLogger(__name__)

BREAKOUT_THRESHOLD = 5000.0


@dataclass
class ProbeStats:
    calls: int = 0
    failures: int = 0

    @property
    def successes(self) -> int:
        return self.calls - self.failures


class ProbeClient:
    def __init__(
        self,
        suggest_provider: SuggestProvider,
        trends_provider: TrendsProvider,
        suggest_pacer: Optional[Pacer] = None,
        trends_pacer: Optional[Pacer] = None,
        timeframe: str = "today 3-m",
        breakout_threshold: float = BREAKOUT_THRESHOLD,
    ):
        self.suggest_provider = suggest_provider
        self.trends_provider = trends_provider
        self.suggest_pacer = suggest_pacer or NullPacer()
        self.trends_pacer = trends_pacer or NullPacer()
        self.timeframe = timeframe
        self.breakout_threshold = breakout_threshold
        self.stats = ProbeStats()

    def _failed(self, what: str, arg: str, e: Exception) -> None:
        self.stats.failures += 1
        logger.warning("%s failed for %r: %s: %s", what, arg, e.__class__.__name__, e)

    def fetch_suggestions(self, query: str) -> List[str]:
        self.suggest_pacer.wait()
        self.stats.calls += 1
        try:
            raw = self.suggest_provider.suggest(query)
            return [s.strip() for s in raw if isinstance(s, str) and s.strip()]
        except Exception as e:
            self._failed("suggest", query, e)
            return []

    def fetch_related_queries(self, seed_term: str) -> List[RelatedQuery]:
        self.trends_pacer.wait()
        self.stats.calls += 1
        try:
            df = self.trends_provider.related_queries(seed_term, self.timeframe)
            return self._normalize_related(df, seed_term)
        except Exception as e:
            self._failed("related_queries", seed_term, e)
            return []

    def _normalize_related(self, df: Optional[pd.DataFrame], seed_term: str) -> List[RelatedQuery]:
        if df is None or getattr(df, "empty", True):
            return []
        if "query" not in df.columns or "value" not in df.columns:
            raise ValueError(f"related queries without query/value columns: {list(df.columns)}")

        has_label = "formattedValue" in df.columns
        out: List[RelatedQuery] = []
        for r in df.itertuples(index=False):
            query = getattr(r, "query", None)
            if not query or not str(query).strip():
                continue
            raw = getattr(r, "value", 0)
            try:
                value = 0.0 if pd.isna(raw) else float(raw)
            except (TypeError, ValueError):
                value = 0.0
            label = str(getattr(r, "formattedValue", "")) if has_label else ""

            out.append(RelatedQuery(
                term=str(query).strip(),
                value=value,
                is_breakout=(label.strip().lower() == "breakout") or value >= self.breakout_threshold,
                category=seed_term,
            ))
        return out

    def fetch_interest_series(self, term: str, window_days: int, today: Optional[date] = None) -> Optional[pd.Series]:
        today = today or date.today()
        timeframe = f"{(today - timedelta(days=window_days)).isoformat()} {today.isoformat()}"

        self.trends_pacer.wait()
        self.stats.calls += 1
        try:
            s = self.trends_provider.interest_over_time(term, timeframe)
        except Exception as e:
            self._failed("interest_over_time", term, e)
            return None
        if s is None or len(s) == 0:
            return None
        return s

    def fetch_interest_delta(self, term: str, window_days: int, today: Optional[date] = None) -> Optional[int]:
        """Signed percent change over the window, or None when there is no data."""
        try:
            return interest_delta(self.fetch_interest_series(term, window_days, today=today))
        except (TypeError, ValueError) as e:
            self._failed("interest_delta", term, e)
            return None
