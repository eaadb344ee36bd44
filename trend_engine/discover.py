# trend_engine/discover.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple

import pandas as pd
from tqdm import tqdm

from trend_engine.classifier import CHANGE_WINDOWS, interest_delta
from trend_engine.models import RelatedQuery, SeedSummary, normalize_term
from trend_engine.probe import ProbeClient

logger = logging.getLogger(__name__)


@dataclass
class PassResult:
    """Outcome of one scan pass. ``ok`` is False when no probe answered at all."""
    ok: bool
    calls: int = 0
    failures: int = 0
    observed: Dict[str, str] = field(default_factory=dict)       # term -> prefix
    candidates: List[RelatedQuery] = field(default_factory=list)
    related_counts: Dict[str, int] = field(default_factory=dict)  # seed -> #rising


def expansion_queries(prefixes: List[str], alphabet: str) -> List[Tuple[str, str]]:
    """(query, prefix) pairs: the prefix alone, then "<prefix> <letter>" per letter."""
    out: List[Tuple[str, str]] = []
    seen = set()
    for p in prefixes:
        base = normalize_term(p)
        if not base or base in seen:
            continue
        seen.add(base)
        out.append((base, base))
        for ch in alphabet:
            if ch.strip():
                out.append((f"{base} {ch}", base))
    return out


def _pass_result(probe: ProbeClient, calls0: int, failures0: int, **kw) -> PassResult:
    calls = probe.stats.calls - calls0
    failures = probe.stats.failures - failures0
    return PassResult(ok=calls > failures, calls=calls, failures=failures, **kw)


def scan_autocomplete(probe: ProbeClient, prefixes: List[str], alphabet: str, progress: bool = False) -> PassResult:
    calls0, failures0 = probe.stats.calls, probe.stats.failures
    prefix_set = {normalize_term(p) for p in prefixes}
    observed: Dict[str, str] = {}

    for query, prefix in tqdm(expansion_queries(prefixes, alphabet), desc="autocomplete", unit="query", disable=not progress):
        for s in probe.fetch_suggestions(query):
            term = normalize_term(s)
            # the seed itself is not a discovery
            if not term or term in prefix_set:
                continue
            observed.setdefault(term, prefix)

    res = _pass_result(probe, calls0, failures0, observed=observed)
    logger.info("autocomplete pass: %d queries, %d failed, %d distinct terms", res.calls, res.failures, len(observed))
    return res


def scan_breakouts(probe: ProbeClient, seeds: List[str], progress: bool = False) -> PassResult:
    calls0, failures0 = probe.stats.calls, probe.stats.failures
    candidates: List[RelatedQuery] = []
    related_counts: Dict[str, int] = {}

    for seed in tqdm(list(dict.fromkeys(seeds)), desc="breakouts", unit="seed", disable=not progress):
        rows = probe.fetch_related_queries(seed)
        related_counts[seed] = len(rows)
        candidates.extend(r for r in rows if r.is_breakout)

    res = _pass_result(probe, calls0, failures0, candidates=candidates, related_counts=related_counts)
    logger.info("breakout pass: %d seeds, %d failed, %d breakout candidates", res.calls, res.failures, len(candidates))
    return res


def _window(s: pd.Series, days: int, today: date) -> pd.Series:
    if isinstance(s.index, pd.DatetimeIndex):
        return s[s.index >= pd.Timestamp(today - timedelta(days=days))]
    return s.iloc[-days:]


def summarize_seeds(
    probe: ProbeClient,
    seeds: List[str],
    today: date,
    related_counts: Optional[Dict[str, int]] = None,
) -> List[SeedSummary]:
    related_counts = related_counts or {}
    out: List[SeedSummary] = []

    for seed in dict.fromkeys(seeds):
        s = probe.fetch_interest_series(seed, max(CHANGE_WINDOWS), today=today)
        summary = SeedSummary(term=seed, related_count=related_counts.get(seed, 0))
        if s is None:
            summary.status = "no data"
            out.append(summary)
            continue

        s = s.dropna()
        summary.current_interest = float(s.iloc[-1]) if len(s) else None
        for w in CHANGE_WINDOWS:
            setattr(summary, f"change{w}", interest_delta(_window(s, w, today)))
        out.append(summary)

    return out
