from __future__ import annotations
import copy
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional

from trend_engine.models import (
    BreakoutRecord, RelatedQuery, ScanHistoryEntry, SeedSummary, TermRecord, normalize_term,
)

HISTORY_RETENTION = 90


class TermLedger:
    """Autocomplete discoveries keyed by normalized term.

    Records are only ever inserted or refreshed; a term that stops showing up
    keeps its record and simply ages.
    """

    def __init__(self, records: Optional[Dict[str, TermRecord]] = None,
                 history: Optional[List[ScanHistoryEntry]] = None,
                 retention: int = HISTORY_RETENTION):
        self.records: Dict[str, TermRecord] = dict(records or {})
        self.history: List[ScanHistoryEntry] = list(history or [])
        self.retention = retention

    def __len__(self) -> int:
        return len(self.records)

    def __contains__(self, term: str) -> bool:
        return normalize_term(term) in self.records

    def get(self, term: str) -> Optional[TermRecord]:
        return self.records.get(normalize_term(term))

    def items(self):
        return self.records.items()

    def merge_observations(
        self,
        observed: Iterable[str],
        today: date,
        sources: Optional[Mapping[str, str]] = None,
    ) -> ScanHistoryEntry:
        sources = {normalize_term(k): v for k, v in (sources or {}).items()}
        seen = {normalize_term(t) for t in observed}
        seen.discard("")

        # must be taken before any insert, otherwise new terms look "known"
        previously_known = set(self.records)

        for term in seen:
            src = sources.get(term, "")
            rec = self.records.get(term)
            if rec is None:
                self.records[term] = TermRecord(first_seen=today, last_seen=today, appearances=1, source_prefix=src)
            else:
                rec.last_seen = today
                rec.appearances += 1
                if src:
                    rec.source_prefix = src

        entry = ScanHistoryEntry(
            date=today,
            new_terms=sorted(seen - previously_known),
            lost_terms=sorted(previously_known - seen),
            total_seen=len(seen),
        )
        self.history.append(entry)
        if len(self.history) > self.retention:
            self.history = self.history[-self.retention:]
        return entry


class BreakoutLedger:
    """Terms Google Trends flagged as breakout, keyed by lower-cased term."""

    def __init__(self, records: Optional[Dict[str, BreakoutRecord]] = None):
        self.records: Dict[str, BreakoutRecord] = dict(records or {})

    def __len__(self) -> int:
        return len(self.records)

    def get(self, term: str) -> Optional[BreakoutRecord]:
        return self.records.get(normalize_term(term))

    def merge_breakouts(self, candidates: Iterable[RelatedQuery], today: date) -> List[str]:
        """Insert or refresh breakout records. Returns keys that were new."""
        # one appearance per cycle even when several seeds surface the same term
        best: Dict[str, RelatedQuery] = {}
        for c in candidates:
            key = normalize_term(c.term)
            if not key:
                continue
            if key not in best or c.value > best[key].value:
                best[key] = c

        added: List[str] = []
        for key, c in best.items():
            rec = self.records.get(key)
            if rec is None:
                self.records[key] = BreakoutRecord(
                    term=c.term.strip(), category=c.category,
                    first_seen=today, last_seen=today, appearances=1, value=float(c.value),
                )
                added.append(key)
            else:
                rec.term = c.term.strip()
                rec.category = c.category
                rec.last_seen = today
                rec.appearances += 1
                rec.value = float(c.value)
        return sorted(added)

    def list(self) -> List[BreakoutRecord]:
        return sorted(
            self.records.values(),
            key=lambda r: (-r.first_seen.toordinal(), r.term.lower()),
        )


def _expect(doc: Mapping, key: str, kind: type) -> None:
    v = doc.get(key)
    if v is not None and not isinstance(v, kind):
        raise ValueError(f"{key!r} should be a {kind.__name__}, got {type(v).__name__}")


@dataclass
class TrendState:
    """Everything the engine persists. Committed instances are never mutated."""

    terms: TermLedger = field(default_factory=TermLedger)
    breakouts: BreakoutLedger = field(default_factory=BreakoutLedger)
    seeds: List[SeedSummary] = field(default_factory=list)
    last_autocomplete_scan: Optional[str] = None
    last_breakout_scan: Optional[str] = None

    @property
    def history(self) -> List[ScanHistoryEntry]:
        return self.terms.history

    def copy(self) -> "TrendState":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict:
        return {
            "autocomplete": {t: r.to_dict() for t, r in sorted(self.terms.items())},
            "breakouts": [r.to_dict() for r in self.breakouts.list()],
            "history": [h.to_dict() for h in self.terms.history],
            "seeds": [s.to_dict() for s in self.seeds],
            "lastAutocompleteScan": self.last_autocomplete_scan,
            "lastBreakoutScan": self.last_breakout_scan,
        }

    @classmethod
    def from_dict(cls, doc: Mapping, retention: int = HISTORY_RETENTION) -> "TrendState":
        _expect(doc, "autocomplete", dict)
        for key in ("breakouts", "history", "seeds"):
            _expect(doc, key, list)

        records = {normalize_term(t): TermRecord.from_dict(r) for t, r in (doc.get("autocomplete") or {}).items()}
        history = [ScanHistoryEntry.from_dict(h) for h in (doc.get("history") or [])]
        breakouts = {}
        for b in doc.get("breakouts") or []:
            rec = BreakoutRecord.from_dict(b)
            breakouts[normalize_term(rec.term)] = rec

        return cls(
            terms=TermLedger(records, history[-retention:], retention=retention),
            breakouts=BreakoutLedger(breakouts),
            seeds=[SeedSummary.from_dict(s) for s in (doc.get("seeds") or [])],
            last_autocomplete_scan=doc.get("lastAutocompleteScan"),
            last_breakout_scan=doc.get("lastBreakoutScan"),
        )
