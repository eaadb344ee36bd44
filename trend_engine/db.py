from __future__ import annotations
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

DDL = [
    """
    CREATE TABLE IF NOT EXISTS trend_terms (
      term TEXT PRIMARY KEY,
      first_seen DATE NOT NULL,
      last_seen  DATE NOT NULL,
      appearances INT NOT NULL DEFAULT 1,
      source_prefix TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS trend_breakouts (
      term_key TEXT PRIMARY KEY,      -- lower-cased term
      term TEXT NOT NULL,
      category TEXT,
      first_seen DATE NOT NULL,
      last_seen  DATE NOT NULL,
      appearances INT NOT NULL DEFAULT 1,
      value DOUBLE PRECISION NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS trend_scan_history (
      seq INT PRIMARY KEY,            -- 0 = oldest retained entry
      scan_date DATE NOT NULL,
      new_terms TEXT NOT NULL,        -- json array
      lost_terms TEXT NOT NULL,       -- json array
      total_seen INT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS trend_seed_summaries (
      term TEXT PRIMARY KEY,
      payload_json TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS trend_engine_meta (
      meta_key TEXT PRIMARY KEY,
      meta_value TEXT
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_trend_terms_first_seen
      ON trend_terms(first_seen DESC)
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_trend_breakouts_first_seen
      ON trend_breakouts(first_seen DESC)
    """,
]


def make_engine(dsn: str) -> Engine:
    if not dsn:
        raise RuntimeError("POSTGRES_DSN is empty.")
    return create_engine(dsn, pool_pre_ping=True)


def init_schema(engine: Engine) -> None:
    with engine.begin() as conn:
        for stmt in DDL:
            conn.execute(text(stmt))
