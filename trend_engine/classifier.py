from __future__ import annotations
from datetime import date
from typing import Any, Dict, Optional
import math
import pandas as pd

from trend_engine.models import BreakoutRecord, TermRecord, TermView

EMERGING_DAYS = 14
SUSTAINED_MAX_DAYS = 90
SUSTAINED_MIN_CONSISTENCY = 30

# a breakout is >5000% growth on Google Trends; finer deltas are not meaningful there
BREAKOUT_CHANGE = 5000
CHANGE_WINDOWS = (30, 60, 90)


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def age_days(first_seen: date, today: date) -> int:
    return max(0, (today - first_seen).days)


def consistency(appearances: int, age: int) -> int:
    """Appearance rate since discovery, 0..100."""
    return min(100, round_half_up(appearances / max(1, age) * 100))


def classify_term(term: str, rec: TermRecord, today: date) -> TermView:
    age = age_days(rec.first_seen, today)
    cons = consistency(rec.appearances, age)

    return TermView(
        term=term,
        first_seen=rec.first_seen,
        last_seen=rec.last_seen,
        appearances=rec.appearances,
        source_prefix=rec.source_prefix,
        age_days=age,
        consistency=cons,
        is_emerging=age < EMERGING_DAYS,
        is_sustained=EMERGING_DAYS <= age <= SUSTAINED_MAX_DAYS and cons >= SUSTAINED_MIN_CONSISTENCY,
        is_established=age > SUSTAINED_MAX_DAYS,
    )


def breakout_view(rec: BreakoutRecord) -> Dict[str, Any]:
    out = rec.to_dict()
    out["isBreakout"] = True
    for w in CHANGE_WINDOWS:
        out[f"change{w}"] = BREAKOUT_CHANGE
    return out


def interest_delta(series: Optional[pd.Series]) -> Optional[int]:
    """Percent change of the second half's mean over the first half's mean.

    Returns None when there is no data. The middle point of an odd-length
    series belongs to the second half.
    """
    if series is None:
        return None
    s = pd.Series(series).dropna().astype(float)
    if len(s) < 2:
        return None

    mid = len(s) // 2
    first = float(s.iloc[:mid].mean())
    second = float(s.iloc[mid:].mean())

    if first == 0:
        return 0 if second == 0 else BREAKOUT_CHANGE
    return round_half_up((second - first) / first * 100.0)
