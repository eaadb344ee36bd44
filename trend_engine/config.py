from __future__ import annotations
from typing import Any, Dict
from pydantic import BaseModel
from dotenv import load_dotenv
import os
import yaml

load_dotenv()

class Settings(BaseModel):
    slack_webhook_url: str = os.getenv("SLACK_WEBHOOK_URL", "")
    slack_channel_alert: str = os.getenv("SLACK_CHANNEL_ALERT", "#pb-trends-alert")

    # json (single document) / sql (SQLAlchemy tables)
    storage_backend: str = os.getenv("TRENDS_STORAGE", "json")
    data_path: str = os.getenv("TRENDS_DATA_PATH", "data/trends.json")
    postgres_dsn: str = os.getenv("POSTGRES_DSN", "")

    seeds_path: str = os.getenv("TRENDS_SEEDS_PATH", os.path.join(os.path.dirname(__file__), "seeds.yaml"))

    pytrends_hl: str = os.getenv("PYTRENDS_HL", "en-US")
    pytrends_tz: int = int(os.getenv("PYTRENDS_TZ", "0"))

    suggest_url: str = os.getenv("SUGGEST_URL", "https://suggestqueries.google.com/complete/search")
    suggest_hl: str = os.getenv("SUGGEST_HL", "en")

    # seconds between two calls to the same source
    suggest_delay: float = float(os.getenv("SUGGEST_DELAY", "0.5"))
    trends_delay: float = float(os.getenv("TRENDS_DELAY", "2.0"))
    # upper bound of the random extra wait added to each delay
    suggest_jitter: float = float(os.getenv("SUGGEST_JITTER", "0.25"))
    trends_jitter: float = float(os.getenv("TRENDS_JITTER", "0.7"))
    request_timeout: float = float(os.getenv("REQUEST_TIMEOUT", "15"))

    scan_interval_hours: float = float(os.getenv("SCAN_INTERVAL_HOURS", "24"))
    history_retention: int = int(os.getenv("HISTORY_RETENTION", "90"))
    snapshot_history: int = int(os.getenv("SNAPSHOT_HISTORY", "30"))
    breakout_threshold: float = float(os.getenv("BREAKOUT_THRESHOLD", "5000"))
    track_seed_interest: bool = os.getenv("TRACK_SEED_INTEREST", "1") == "1"

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

settings = Settings()


def load_seeds(path: str | None = None) -> Dict[str, Any]:
    with open(path or settings.seeds_path, "r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}

    cfg.setdefault("autocomplete_prefixes", [])
    cfg.setdefault("breakout_seeds", [])
    cfg.setdefault("expansion_alphabet", "abcdefghijklmnopqrstuvwxyz")
    cfg.setdefault("geo", "US")
    cfg.setdefault("timeframe", "today 3-m")
    return cfg
