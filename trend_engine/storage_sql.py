from __future__ import annotations
import json
from typing import Any, Dict, List

from sqlalchemy import text
from sqlalchemy.engine import Engine

from trend_engine.db import init_schema
from trend_engine.ledger import HISTORY_RETENTION, BreakoutLedger, TermLedger, TrendState
from trend_engine.models import BreakoutRecord, ScanHistoryEntry, SeedSummary, TermRecord, as_date
from trend_engine.repository import LedgerRepository


class SqlRepository(LedgerRepository):
    """Relational rows instead of a document. One transaction per save."""

    def __init__(self, engine: Engine, retention: int = HISTORY_RETENTION):
        self.engine = engine
        self.retention = retention
        init_schema(engine)

    def load(self) -> TrendState:
        with self.engine.begin() as conn:
            terms = conn.execute(text("""
                SELECT term, first_seen, last_seen, appearances, source_prefix
                FROM trend_terms
            """)).fetchall()
            breakouts = conn.execute(text("""
                SELECT term_key, term, category, first_seen, last_seen, appearances, value
                FROM trend_breakouts
            """)).fetchall()
            history = conn.execute(text("""
                SELECT scan_date, new_terms, lost_terms, total_seen
                FROM trend_scan_history
                ORDER BY seq ASC
            """)).fetchall()
            seeds = conn.execute(text("SELECT payload_json FROM trend_seed_summaries ORDER BY term")).fetchall()
            meta = dict(conn.execute(text("SELECT meta_key, meta_value FROM trend_engine_meta")).fetchall())

        records = {
            r[0]: TermRecord(first_seen=as_date(r[1]), last_seen=as_date(r[2]), appearances=int(r[3]), source_prefix=r[4] or "")
            for r in terms
        }
        entries = [
            ScanHistoryEntry(date=as_date(r[0]), new_terms=json.loads(r[1]), lost_terms=json.loads(r[2]), total_seen=int(r[3]))
            for r in history
        ]
        b = {
            r[0]: BreakoutRecord(
                term=r[1], category=r[2] or "", first_seen=as_date(r[3]), last_seen=as_date(r[4]),
                appearances=int(r[5]), value=float(r[6]),
            )
            for r in breakouts
        }

        return TrendState(
            terms=TermLedger(records, entries[-self.retention:], retention=self.retention),
            breakouts=BreakoutLedger(b),
            seeds=[SeedSummary.from_dict(json.loads(r[0])) for r in seeds],
            last_autocomplete_scan=meta.get("lastAutocompleteScan"),
            last_breakout_scan=meta.get("lastBreakoutScan"),
        )

    def save(self, state: TrendState) -> None:
        term_rows: List[Dict[str, Any]] = [
            {
                "term": t, "first_seen": r.first_seen.isoformat(), "last_seen": r.last_seen.isoformat(),
                "appearances": r.appearances, "source_prefix": r.source_prefix,
            }
            for t, r in state.terms.items()
        ]
        breakout_rows = [
            {
                "term_key": k, "term": r.term, "category": r.category,
                "first_seen": r.first_seen.isoformat(), "last_seen": r.last_seen.isoformat(),
                "appearances": r.appearances, "value": r.value,
            }
            for k, r in state.breakouts.records.items()
        ]
        history_rows = [
            {
                "seq": i, "scan_date": h.date.isoformat(),
                "new_terms": json.dumps(h.new_terms), "lost_terms": json.dumps(h.lost_terms),
                "total_seen": h.total_seen,
            }
            for i, h in enumerate(state.history)
        ]
        seed_rows = [{"term": s.term, "p": json.dumps(s.to_dict())} for s in state.seeds]
        meta_rows = [
            {"key": "lastAutocompleteScan", "value": state.last_autocomplete_scan},
            {"key": "lastBreakoutScan", "value": state.last_breakout_scan},
        ]

        with self.engine.begin() as conn:
            if term_rows:
                conn.execute(text("""
                    INSERT INTO trend_terms(term, first_seen, last_seen, appearances, source_prefix)
                    VALUES (:term, :first_seen, :last_seen, :appearances, :source_prefix)
                    ON CONFLICT (term) DO UPDATE SET
                      first_seen=EXCLUDED.first_seen,
                      last_seen=EXCLUDED.last_seen,
                      appearances=EXCLUDED.appearances,
                      source_prefix=EXCLUDED.source_prefix
                """), term_rows)

            if breakout_rows:
                conn.execute(text("""
                    INSERT INTO trend_breakouts(term_key, term, category, first_seen, last_seen, appearances, value)
                    VALUES (:term_key, :term, :category, :first_seen, :last_seen, :appearances, :value)
                    ON CONFLICT (term_key) DO UPDATE SET
                      term=EXCLUDED.term,
                      category=EXCLUDED.category,
                      first_seen=EXCLUDED.first_seen,
                      last_seen=EXCLUDED.last_seen,
                      appearances=EXCLUDED.appearances,
                      value=EXCLUDED.value
                """), breakout_rows)

            # bounded, so rewritten whole
            conn.execute(text("DELETE FROM trend_scan_history"))
            if history_rows:
                conn.execute(text("""
                    INSERT INTO trend_scan_history(seq, scan_date, new_terms, lost_terms, total_seen)
                    VALUES (:seq, :scan_date, :new_terms, :lost_terms, :total_seen)
                """), history_rows)

            conn.execute(text("DELETE FROM trend_seed_summaries"))
            if seed_rows:
                conn.execute(text("""
                    INSERT INTO trend_seed_summaries(term, payload_json) VALUES (:term, :p)
                """), seed_rows)

            conn.execute(text("""
                INSERT INTO trend_engine_meta(meta_key, meta_value) VALUES (:key, :value)
                ON CONFLICT (meta_key) DO UPDATE SET meta_value=EXCLUDED.meta_value
            """), meta_rows)
