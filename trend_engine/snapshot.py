from __future__ import annotations
from datetime import date, datetime
from typing import Any, Dict, List, Union

from trend_engine.classifier import breakout_view, classify_term
from trend_engine.ledger import TrendState
from trend_engine.models import TermView

SNAPSHOT_HISTORY = 30


def term_views(state: TrendState, today: date) -> List[TermView]:
    return [classify_term(t, rec, today) for t, rec in state.terms.items()]


def _newest_first(v: TermView):
    return (-v.first_seen.toordinal(), v.term)


def build_snapshot(
    state: TrendState,
    now: Union[date, datetime],
    refreshing: bool = False,
    history_limit: int = SNAPSHOT_HISTORY,
) -> Dict[str, Any]:
    """Read-only view over a committed state. ``state`` is not modified."""
    today = now.date() if isinstance(now, datetime) else now
    views = term_views(state, today)

    sustained = sorted((v for v in views if v.is_sustained), key=lambda v: (-v.consistency, v.age_days, v.term))
    emerging = sorted((v for v in views if v.is_emerging), key=_newest_first)
    everything = sorted(views, key=_newest_first)
    breakouts = [breakout_view(b) for b in state.breakouts.list()]
    history = state.history[-history_limit:] if history_limit > 0 else []

    return {
        "sustained": [v.to_dict() for v in sustained],
        "emerging": [v.to_dict() for v in emerging],
        "all": [v.to_dict() for v in everything],
        "breakouts": breakouts,
        "seeds": [s.to_dict() for s in state.seeds],
        "history": [h.to_dict() for h in history],
        "lastAutocompleteScan": state.last_autocomplete_scan,
        "lastBreakoutScan": state.last_breakout_scan,
        "refreshing": bool(refreshing),
        "stats": {
            "totalTracked": len(views),
            "sustainedCount": len(sustained),
            "emergingCount": len(emerging),
            "breakoutCount": len(breakouts),
        },
    }
