from __future__ import annotations
import argparse
import json
import logging
import time
from typing import Optional

import warnings
warnings.filterwarnings(
    "ignore",
    category=FutureWarning,
    module="pytrends"
)

from trend_engine.config import Settings, settings as default_settings, load_seeds
from trend_engine.pacer import FixedIntervalPacer
from trend_engine.probe import ProbeClient
from trend_engine.repository import JsonDocumentRepository, LedgerRepository
from trend_engine.scheduler import ScanScheduler, TriggerResult
from trend_engine.slack_notifier import SlackCycleNotifier
from trend_engine.trends_provider import GoogleSuggestProvider, PyTrendsProvider

logger = logging.getLogger(__name__)


def get_repository(s: Settings) -> LedgerRepository:
    if s.storage_backend == "sql":
        from trend_engine.db import make_engine
        from trend_engine.storage_sql import SqlRepository
        return SqlRepository(make_engine(s.postgres_dsn), retention=s.history_retention)
    if s.storage_backend != "json":
        raise ValueError(f"unknown TRENDS_STORAGE {s.storage_backend!r} (expected json / sql)")
    return JsonDocumentRepository(s.data_path, retention=s.history_retention)


def get_probe(s: Settings, seeds: dict) -> ProbeClient:
    return ProbeClient(
        suggest_provider=GoogleSuggestProvider(s.suggest_url, hl=s.suggest_hl, timeout=s.request_timeout),
        trends_provider=PyTrendsProvider(hl=s.pytrends_hl, tz=s.pytrends_tz, geo=seeds["geo"]),
        suggest_pacer=FixedIntervalPacer(s.suggest_delay, jitter=s.suggest_jitter),
        trends_pacer=FixedIntervalPacer(s.trends_delay, jitter=s.trends_jitter),
        timeframe=seeds["timeframe"],
        breakout_threshold=s.breakout_threshold,
    )


def build_scheduler(s: Optional[Settings] = None, progress: bool = False) -> ScanScheduler:
    s = s or default_settings
    seeds = load_seeds(s.seeds_path)
    notifier = SlackCycleNotifier(s.slack_webhook_url, s.slack_channel_alert) if s.slack_webhook_url else None

    return ScanScheduler(
        probe=get_probe(s, seeds),
        repository=get_repository(s),
        seeds=seeds,
        interval_hours=s.scan_interval_hours,
        notifier=notifier,
        track_seed_interest=s.track_seed_interest,
        history_limit=s.snapshot_history,
        progress=progress,
    )


def main(argv=None):
    parser = argparse.ArgumentParser(description="Photo booth trend discovery engine.")
    sub = parser.add_subparsers(dest="cmd", required=True)
    sub.add_parser("run", help="run one scan cycle now and exit")
    serve = sub.add_parser("serve", help="run the periodic scheduler until interrupted")
    serve.add_argument("--no-initial", action="store_true", help="do not scan on start even if data is stale")
    sub.add_parser("snapshot", help="print the current snapshot as JSON")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, default_settings.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    scheduler = build_scheduler(progress=args.cmd == "run")

    if args.cmd == "run":
        if scheduler.run_cycle() is TriggerResult.BUSY:
            print("busy")
            return 1
        r = scheduler.last_report
        print(
            f"done. committed={r.committed} persisted={r.persisted} "
            f"new_terms={len(r.new_terms)} lost_terms={len(r.lost_terms)} new_breakouts={len(r.new_breakouts)}"
        )
        return 0 if r.error is None else 1

    if args.cmd == "snapshot":
        print(json.dumps(scheduler.snapshot(), ensure_ascii=False, indent=2))
        return 0

    scheduler.start(run_if_stale=not args.no_initial)
    try:
        while scheduler.is_alive:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("interrupted, stopping scheduler")
    finally:
        scheduler.stop(timeout=5)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
