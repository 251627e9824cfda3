from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Optional

import pytz
from croniter import croniter

from app.maintenance.orchestrator import MaintenanceOrchestrator

logger = logging.getLogger(__name__)


class MaintenanceScheduler:
    """
    Drives a MaintenanceOrchestrator from a cron expression.

    start() fires one pass immediately, then one per cron tick (evaluated in the
    orchestrator's reference zone). Passes run on short-lived worker threads so
    the timer thread never waits on the store; overlapping passes are rejected
    by the orchestrator itself.
    """

    def __init__(self, orchestrator: MaintenanceOrchestrator, cron: str):
        if not croniter.is_valid(cron):
            raise ValueError(f"Invalid cron expression: {cron!r}")
        self.orchestrator = orchestrator
        self.cron = cron
        self._tz = pytz.timezone(orchestrator.window.reference_timezone)

        self._stop = threading.Event()
        self._timer: Optional[threading.Thread] = None
        self._workers: list[threading.Thread] = []
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._timer is not None and self._timer.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.running:
                return
            self._stop.clear()
            self._timer = threading.Thread(target=self._loop, daemon=True, name="run-catalog-maintenance")
            self._timer.start()
        logger.info("Maintenance scheduler started (cron=%r tz=%s)", self.cron, self._tz.zone)

    def stop(self, timeout: Optional[float] = None) -> None:
        with self._lock:
            self._stop.set()
            timer, self._timer = self._timer, None
        # The timer thread may still be dispatching; join it before collecting workers.
        if timer is not None:
            timer.join(timeout)
        with self._lock:
            workers, self._workers = self._workers, []
        for w in workers:
            w.join(timeout)
        logger.info("Maintenance scheduler stopped")

    def trigger(self) -> Optional[threading.Thread]:
        """Dispatch one pass on a worker thread and return it. Returns None once stop() was called."""
        with self._lock:
            if self._stop.is_set():
                return None
            worker = threading.Thread(target=self.orchestrator.run_pass, daemon=True, name="run-catalog-pass")
            self._workers = [w for w in self._workers if w.is_alive()]
            self._workers.append(worker)
            worker.start()
        return worker

    def seconds_until_next(self, now: Optional[datetime] = None) -> float:
        now = now or datetime.now(self._tz)
        nxt = croniter(self.cron, now).get_next(datetime)
        return max((nxt - now).total_seconds(), 0.0)

    def _loop(self) -> None:
        # startup pass: a fresh process should not wait a full interval
        if self._stop.is_set():
            return
        self.trigger()
        while not self._stop.wait(timeout=self.seconds_until_next()):
            self.trigger()
