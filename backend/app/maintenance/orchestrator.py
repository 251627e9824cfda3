"""
Maintenance pass: prune expired runs, then seed every date of the rolling window.

  today   = current date in the reference zone
  cutoff  = today - retention_cutoff_offset_days   (runs on or before it are deleted)
  window  = [today, today + window_size_days)

A pass never raises. Pruning failure does not stop seeding; each date is seeded
independently and reported as a DateOutcome. Only one pass runs at a time: a
pass requested while another is running is skipped, not queued.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional, Sequence

import pytz
from sqlalchemy.orm import Session

from app.catalog.retention import prune_expired
from app.catalog.seeding import ensure_catalog_for_date
from app.catalog.store import RunStore
from app.catalog.templates import RouteTemplate
from app.core.config import MaintenanceWindow
from app.models.job_runs import JobRun

logger = logging.getLogger(__name__)

JOB_NAME = "maintain_run_catalog"

IDLE = "idle"
RUNNING = "running"


@dataclass(frozen=True)
class DateOutcome:
    service_date: date
    inserted: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class MaintenancePassResult:
    today: date
    cutoff: date
    pruned: Optional[int] = None
    prune_error: Optional[str] = None
    missing_dates_before: Optional[int] = None
    outcomes: list[DateOutcome] = field(default_factory=list)

    @property
    def inserted(self) -> int:
        return sum(o.inserted for o in self.outcomes)

    @property
    def failed_dates(self) -> list[date]:
        return [o.service_date for o in self.outcomes if not o.ok]

    @property
    def ok(self) -> bool:
        return self.prune_error is None and not self.failed_dates

    def as_dict(self) -> dict:
        return {
            "today": self.today.isoformat(),
            "cutoff": self.cutoff.isoformat(),
            "pruned": self.pruned,
            "prune_error": self.prune_error,
            "missing_dates_before": self.missing_dates_before,
            "dates_seeded": len(self.outcomes),
            "inserted": self.inserted,
            "failed_dates": [d.isoformat() for d in self.failed_dates],
        }


def today_in_zone(tz_name: str) -> date:
    return datetime.now(pytz.timezone(tz_name)).date()


def _start_job(db: Session, meta: dict) -> Optional[uuid.UUID]:
    run_id = uuid.uuid4()
    try:
        db.add(JobRun(run_id=run_id, job_name=JOB_NAME, status="running", meta=meta))
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Could not record job start for %s", JOB_NAME)
        return None
    return run_id


def _finish_job(db: Session, run_id: Optional[uuid.UUID], status: str, meta_updates: dict) -> None:
    if run_id is None:
        return
    try:
        jr = db.get(JobRun, run_id)
        if jr is None:
            return
        jr.status = status
        jr.ended_at = datetime.now(timezone.utc)
        jr.meta = {**(jr.meta or {}), **meta_updates}
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Could not record job finish for %s run_id=%s", JOB_NAME, run_id)


class MaintenanceOrchestrator:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        window: MaintenanceWindow,
        templates: Sequence[RouteTemplate],
        *,
        clock: Optional[Callable[[], date]] = None,
    ):
        self._session_factory = session_factory
        self.window = window
        self.templates = list(templates)
        self._clock = clock or (lambda: today_in_zone(window.reference_timezone))

        self._state = IDLE
        self._state_lock = threading.Lock()

    @property
    def state(self) -> str:
        return self._state

    def _enter_running(self) -> bool:
        with self._state_lock:
            if self._state == RUNNING:
                return False
            self._state = RUNNING
            return True

    def _enter_idle(self) -> None:
        with self._state_lock:
            self._state = IDLE

    def run_pass(self, today: Optional[date] = None) -> Optional[MaintenancePassResult]:
        """Run one maintenance pass. Returns None if a pass is already running."""
        if not self._enter_running():
            logger.warning("Maintenance pass already running; skipping this trigger")
            return None

        try:
            return self._run(today)
        except Exception:
            # Only reachable if session setup itself fails; the pass must not raise.
            logger.exception("Maintenance pass aborted")
            return None
        finally:
            self._enter_idle()

    def _run(self, today: Optional[date]) -> MaintenancePassResult:
        today = today or self._clock()
        cutoff = today - timedelta(days=self.window.retention_cutoff_offset_days)
        window_dates = [today + timedelta(days=i) for i in range(self.window.window_size_days)]
        result = MaintenancePassResult(today=today, cutoff=cutoff)

        logger.info(
            "Maintenance pass start: today=%s cutoff=%s window=%d days templates=%d",
            today, cutoff, len(window_dates), len(self.templates),
        )

        db = self._session_factory()
        try:
            run_id = _start_job(db, {"today": today.isoformat(), "window_size_days": len(window_dates)})
            store = RunStore(db)

            try:
                result.pruned = prune_expired(store, cutoff)
            except Exception as e:
                result.prune_error = repr(e)
                logger.exception("Pruning runs on or before %s failed; continuing with seeding", cutoff)

            try:
                existing = store.distinct_departure_dates()
                result.missing_dates_before = sum(1 for d in window_dates if d not in existing)
                if result.missing_dates_before:
                    logger.info(
                        "Run data incomplete: %d of %d window dates have no runs",
                        result.missing_dates_before, len(window_dates),
                    )
            except Exception:
                logger.exception("Window coverage check failed")

            for service_date in window_dates:
                result.outcomes.append(self._seed_date(store, service_date))

            status = "success" if result.ok else "partial"
            _finish_job(db, run_id, status, result.as_dict())
        finally:
            db.close()

        if result.ok:
            logger.info("Maintenance pass done: pruned=%s inserted=%d", result.pruned, result.inserted)
        else:
            logger.warning(
                "Maintenance pass done with failures: prune_error=%s failed_dates=%s inserted=%d",
                result.prune_error, [d.isoformat() for d in result.failed_dates], result.inserted,
            )
        return result

    def _seed_date(self, store: RunStore, service_date: date) -> DateOutcome:
        try:
            inserted = ensure_catalog_for_date(store, service_date, self.templates)
        except Exception as e:
            logger.exception("Seeding runs for %s failed", service_date)
            return DateOutcome(service_date=service_date, error=repr(e))
        if inserted:
            logger.info("Seeded %d runs for %s", inserted, service_date)
        return DateOutcome(service_date=service_date, inserted=inserted)
