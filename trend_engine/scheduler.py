"""Periodic and on-demand scan cycles with single-flight execution.

A cycle probes the sources, merges the observations into a private copy of
the committed ``TrendState``, swaps that copy in and persists it once.
Readers always get the last committed state, also while a cycle runs::

    scheduler = ScanScheduler(probe, repo, load_seeds())
    scheduler.start()            # 24h timer thread
    scheduler.trigger()          # admin refresh -> STARTED / BUSY
    scheduler.snapshot()         # read view
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from trend_engine.discover import scan_autocomplete, scan_breakouts, summarize_seeds
from trend_engine.ledger import TrendState
from trend_engine.probe import ProbeClient
from trend_engine.repository import LedgerRepository
from trend_engine.snapshot import SNAPSHOT_HISTORY, build_snapshot

logger = logging.getLogger(__name__)


class ScanStatus(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"


class TriggerResult(str, Enum):
    STARTED = "started"
    BUSY = "busy"


@dataclass
class CycleReport:
    started_at: str
    finished_at: Optional[str] = None
    autocomplete_ok: bool = False
    breakout_ok: bool = False
    new_terms: List[str] = field(default_factory=list)
    lost_terms: List[str] = field(default_factory=list)
    new_breakouts: List[str] = field(default_factory=list)
    committed: bool = False
    persisted: bool = False
    error: Optional[str] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScanScheduler:
    def __init__(
        self,
        probe: ProbeClient,
        repository: LedgerRepository,
        seeds: Dict[str, Any],
        interval_hours: float = 24.0,
        clock: Callable[[], datetime] = _utcnow,
        notifier: Optional[Callable[[CycleReport, TrendState], None]] = None,
        track_seed_interest: bool = True,
        history_limit: int = SNAPSHOT_HISTORY,
        progress: bool = False,
    ):
        self.probe = probe
        self.repository = repository
        self.seeds = seeds
        self.interval_hours = interval_hours
        self._clock = clock
        self.notifier = notifier
        self.track_seed_interest = track_seed_interest
        self.history_limit = history_limit
        self.progress = progress

        # refreshing is in-memory only: a restart always comes back idle
        self._state: TrendState = repository.load()
        self._state_lock = threading.Lock()
        self._guard = threading.Lock()
        self._status = ScanStatus.IDLE

        self._stop_event = threading.Event()
        self._timer: Optional[threading.Thread] = None
        self._worker: Optional[threading.Thread] = None

        self.cycle_count: int = 0
        self.last_report: Optional[CycleReport] = None

    # ── Read side ───────────────────────────────────────────

    @property
    def status(self) -> ScanStatus:
        return self._status

    @property
    def refreshing(self) -> bool:
        return self._status is ScanStatus.SCANNING

    def current_state(self) -> TrendState:
        with self._state_lock:
            return self._state

    def snapshot(self) -> Dict[str, Any]:
        return build_snapshot(self.current_state(), self._clock(), self.refreshing, history_limit=self.history_limit)

    # ── Triggers ────────────────────────────────────────────

    def _try_enter(self) -> bool:
        if not self._guard.acquire(blocking=False):
            return False
        self._status = ScanStatus.SCANNING
        return True

    def _leave(self) -> None:
        self._status = ScanStatus.IDLE
        self._guard.release()

    def trigger(self) -> TriggerResult:
        """Start a cycle in a worker thread and return immediately."""
        if not self._try_enter():
            logger.info("refresh rejected: a scan cycle is already running")
            return TriggerResult.BUSY

        self._worker = threading.Thread(target=self._run_entered, name="trend-scan-cycle", daemon=True)
        self._worker.start()
        return TriggerResult.STARTED

    def run_cycle(self) -> TriggerResult:
        """Run a cycle in the calling thread."""
        if not self._try_enter():
            logger.info("scheduled scan skipped: a scan cycle is already running")
            return TriggerResult.BUSY
        self._run_entered()
        return TriggerResult.STARTED

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        w = self._worker
        if w is not None:
            w.join(timeout)
        return not self.refreshing

    def _run_entered(self) -> None:
        report = CycleReport(started_at=self._clock().isoformat())
        try:
            self._cycle(report)
        except Exception as e:
            report.error = f"{e.__class__.__name__}: {e}"
            logger.exception("scan cycle failed")
        finally:
            report.finished_at = self._clock().isoformat()
            self.cycle_count += 1
            self.last_report = report
            self._leave()

    # ── The cycle ───────────────────────────────────────────

    def _cycle(self, report: CycleReport) -> None:
        working = self.current_state().copy()

        ac = scan_autocomplete(
            self.probe,
            self.seeds.get("autocomplete_prefixes", []),
            self.seeds.get("expansion_alphabet", ""),
            progress=self.progress,
        )
        if ac.ok:
            now = self._clock()
            entry = working.terms.merge_observations(ac.observed, now.date(), sources=ac.observed)
            working.last_autocomplete_scan = now.isoformat()
            report.autocomplete_ok = True
            report.new_terms = entry.new_terms
            report.lost_terms = entry.lost_terms
        else:
            logger.warning("autocomplete pass produced no answers (%d calls); ledger left as is", ac.calls)

        seeds = self.seeds.get("breakout_seeds", [])
        bo = scan_breakouts(self.probe, seeds, progress=self.progress)
        if bo.ok:
            now = self._clock()
            report.new_breakouts = working.breakouts.merge_breakouts(bo.candidates, now.date())
            if self.track_seed_interest:
                working.seeds = summarize_seeds(self.probe, seeds, now.date(), related_counts=bo.related_counts)
            working.last_breakout_scan = now.isoformat()
            report.breakout_ok = True
        else:
            logger.warning("breakout pass produced no answers (%d calls); ledger left as is", bo.calls)

        if not (report.autocomplete_ok or report.breakout_ok):
            return

        with self._state_lock:
            self._state = working
        report.committed = True
        logger.info(
            "cycle committed: %d tracked (+%d / -%d), %d breakouts (+%d)",
            len(working.terms), len(report.new_terms), len(report.lost_terms),
            len(working.breakouts), len(report.new_breakouts),
        )

        try:
            self.repository.save(working)
            report.persisted = True
        except Exception:
            # in-memory state stays authoritative until the next good write
            logger.exception("persisting trend state failed")

        if self.notifier is not None:
            try:
                self.notifier(report, working)
            except Exception as e:
                logger.warning("cycle notification failed: %s", e)

    # ── Timer thread ────────────────────────────────────────

    @property
    def is_alive(self) -> bool:
        return self._timer is not None and self._timer.is_alive()

    def is_stale(self) -> bool:
        last = self.current_state().last_autocomplete_scan
        if not last:
            return True
        try:
            ts = datetime.fromisoformat(last)
        except ValueError:
            return True
        now = self._clock()
        if ts.tzinfo is None and now.tzinfo is not None:
            ts = ts.replace(tzinfo=now.tzinfo)
        return now - ts >= timedelta(hours=self.interval_hours)

    def start(self, run_if_stale: bool = True) -> None:
        """Start the periodic timer thread (idempotent)."""
        if self.is_alive:
            return
        self._stop_event.clear()
        self._timer = threading.Thread(
            target=self._run_loop, args=(run_if_stale,), name="trend-scan-timer", daemon=True,
        )
        self._timer.start()
        logger.info("scan scheduler started (interval=%.1fh)", self.interval_hours)

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if self._timer is not None:
            self._timer.join(timeout)
        logger.info("scan scheduler stopped")

    def _run_loop(self, run_if_stale: bool) -> None:
        if run_if_stale and self.is_stale():
            self.run_cycle()
        while not self._stop_event.wait(timeout=self.interval_hours * 3600.0):
            self.run_cycle()
