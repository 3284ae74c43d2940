import logging
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler

from app.core.clock import system_clock
from app.services.activity_status_service import sweep_once

logger = logging.getLogger(__name__)

JOB_ID = "activity-status-sweep"


class StatusSweepScheduler:
    """Runs the activity status sweep as an APScheduler interval job.

    Used when no Celery beat is deployed (RUN_INPROCESS_SWEEPER=true); the
    process lifecycle calls start() and stop().
    """

    def __init__(self, session_factory, interval_seconds: float = 300, clock=system_clock):
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds
        self.clock = clock
        self._scheduler: BackgroundScheduler | None = None
        self.ticks = 0
        self.changes_applied = 0

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        if self.running:
            return
        self._scheduler = BackgroundScheduler(timezone="UTC")
        self._scheduler.add_job(
            self._tick,
            trigger="interval",
            seconds=self.interval_seconds,
            id=JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(timezone.utc),
        )
        self._scheduler.start()
        logger.info("activity status sweeper started (every %ss)", self.interval_seconds)

    def stop(self) -> None:
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=True)
            logger.info("activity status sweeper stopped")
        self._scheduler = None

    def run_once(self):
        db = self.session_factory()
        try:
            return sweep_once(db, clock=self.clock)
        finally:
            db.close()

    def _tick(self) -> None:
        try:
            self.changes_applied += len(self.run_once())
        except Exception:
            # Non-fatal: the next tick recomputes everything from the clock.
            logger.exception("activity status sweep failed")
        finally:
            self.ticks += 1
