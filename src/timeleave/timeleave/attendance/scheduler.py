"""Background enforcement of the daily auto clock-out cutoff.

Two cooperating jobs run on an APScheduler `BackgroundScheduler`:

- a periodic tick (every AUTO_CLOCK_OUT_CHECK_SECONDS, at most 60s) that
  sweeps open sessions once the cutoff has passed, closes sessions left open
  from earlier days and arms the one-shot job inside the arming window;
- a one-shot `date` job at the exact cutoff that re-reads open sessions
  before closing them.

Both paths go through `AttendanceLedger.auto_clock_out`, whose conditional
update makes a second close of the same session a NoOpenSession, treated
here as a no-op.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, time, timedelta
from typing import Callable, Optional, Sequence

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler

from ..common.datetime_utils import format_hhmm, now_local
from ..core.constants import DEFAULT_ARM_WINDOW_MINUTES, DEFAULT_AUTO_CLOCK_OUT_CUTOFF, DEFAULT_CHECK_SECONDS
from ..core.enums import SchedulerState
from ..core.exceptions import NoOpenSession
from ..notifications.sink import NotificationSink
from .model import AttendanceRecord
from .service import AttendanceLedger

logger = logging.getLogger(__name__)

TICK_JOB_ID = "auto-clock-out-tick"
ONESHOT_JOB_ID = "auto-clock-out-oneshot"


class AutoClockOutScheduler:
    def __init__(
        self,
        ledger: AttendanceLedger,
        *,
        notifier: Optional[NotificationSink] = None,
        cutoff: time = DEFAULT_AUTO_CLOCK_OUT_CUTOFF,
        arm_window_minutes: int = DEFAULT_ARM_WINDOW_MINUTES,
        check_seconds: int = DEFAULT_CHECK_SECONDS,
        scheduler=None,
        clock: Callable[[], datetime] = now_local,
    ):
        if not 0 < int(check_seconds) <= 60:
            raise ValueError("check_seconds must be between 1 and 60")
        if int(arm_window_minutes) < 0:
            raise ValueError("arm_window_minutes must be zero or positive")

        self._ledger = ledger
        self._notifier = notifier
        self._cutoff = cutoff
        self._arm_window = timedelta(minutes=int(arm_window_minutes))
        self._check_seconds = int(check_seconds)
        self._scheduler = scheduler if scheduler is not None else BackgroundScheduler(daemon=True)
        self._clock = clock

        self._lock = threading.RLock()
        self._state = SchedulerState.IDLE
        self._armed_for: Optional[datetime] = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def armed_for(self) -> Optional[datetime]:
        return self._armed_for

    def start(self) -> None:
        self._scheduler.add_job(
            self._run_tick,
            "interval",
            seconds=self._check_seconds,
            id=TICK_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            next_run_time=self._clock(),
        )
        self._scheduler.start()
        logger.info(
            "Auto clock-out scheduler started (cutoff=%s, check every %ss)",
            format_hhmm(self._cutoff),
            self._check_seconds,
        )

    def shutdown(self) -> None:
        self._scheduler.shutdown(wait=False)
        logger.info("Auto clock-out scheduler stopped")

    def _run_tick(self) -> None:
        self.tick(self._clock())

    def _run_fire(self) -> None:
        self.fire(self._clock())

    def cutoff_for(self, day) -> datetime:
        return datetime.combine(day, self._cutoff)

    def tick(self, now: datetime) -> int:
        """Periodic check. Returns the number of sessions closed."""
        cutoff_dt = self.cutoff_for(now.date())

        with self._lock:
            if now >= cutoff_dt:
                self._disarm()
                return self.sweep(now)

            open_records = self._ledger.list_open()
            stale = [r for r in open_records if r.work_date < now.date()]
            closed = self._close_all(stale, now) if stale else 0

            if self._state == SchedulerState.ARMED and self._armed_for is not None and self._armed_for < now:
                self._disarm()

            in_window = cutoff_dt - self._arm_window <= now < cutoff_dt
            has_open_today = any(r.work_date == now.date() for r in open_records)
            if in_window and has_open_today and self._state == SchedulerState.IDLE:
                self._arm(cutoff_dt, now)

            return closed

    def fire(self, now: datetime) -> int:
        """One-shot job body: re-read open sessions and close them."""
        with self._lock:
            logger.info("Auto clock-out timer fired at %s", now)
            self._state = SchedulerState.IDLE
            self._armed_for = None
            return self.sweep(now)

    def sweep(self, now: datetime) -> int:
        """Close every open session; safe to call repeatedly."""
        with self._lock:
            return self._close_all(self._ledger.list_open(), now)

    def _close_all(self, records: Sequence[AttendanceRecord], now: datetime) -> int:
        closed = 0
        for record in records:
            at = self._clock_out_time(record, now)
            if at is None:
                continue
            try:
                self._ledger.auto_clock_out(record, at=at)
            except NoOpenSession:
                logger.debug("Session %s already closed, skipping", record.attendance_id)
                continue
            except Exception:
                logger.exception("Auto clock-out failed for user=%s attendance=%s", record.user_id, record.attendance_id)
                continue

            closed += 1
            logger.info("Auto clocked out user=%s attendance=%s at %s", record.user_id, record.attendance_id, at)
            if self._notifier is not None:
                self._notifier.notify(
                    record.user_id,
                    title="Automatic clock-out",
                    message=f"You were clocked out automatically at {format_hhmm(at.time())}.",
                    kind="attendance",
                )
        return closed

    def _clock_out_time(self, record: AttendanceRecord, now: datetime) -> Optional[datetime]:
        """Cutoff of the session's own day when it lies within the session, else `now`.

        None while the session's cutoff is still ahead.
        """
        cutoff_dt = self.cutoff_for(record.work_date)
        if now < cutoff_dt:
            return None
        if record.check_in_time < cutoff_dt:
            return cutoff_dt
        return now

    def _arm(self, cutoff_dt: datetime, now: datetime) -> None:
        self._scheduler.add_job(
            self._run_fire,
            "date",
            run_date=cutoff_dt,
            id=ONESHOT_JOB_ID,
            replace_existing=True,
            misfire_grace_time=self._check_seconds,
        )
        self._state = SchedulerState.ARMED
        self._armed_for = cutoff_dt
        logger.info("Armed auto clock-out for %s (in %ss)", cutoff_dt, int((cutoff_dt - now).total_seconds()))

    def _disarm(self) -> None:
        if self._state != SchedulerState.ARMED:
            return
        try:
            self._scheduler.remove_job(ONESHOT_JOB_ID)
        except JobLookupError:
            logger.debug("One-shot auto clock-out job already gone")
        self._state = SchedulerState.IDLE
        self._armed_for = None
