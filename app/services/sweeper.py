"""Background scheduling for the orphaned-image sweep: fixed interval plus deferred post-write runs."""

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session

from app.services.image_store import ImageStore
from app.services.images import sweep_orphans

logger = logging.getLogger(__name__)

INTERVAL_JOB_ID = "image-sweep-interval"
DEFERRED_JOB_ID = "image-sweep-deferred"


class OrphanSweeper:
    """
    Runs sweep_orphans on its own session, driven by an APScheduler scheduler.

    schedule() adds the interval job. trigger() (re)places a single one-shot job
    delay_sec from now under a fixed id, so a burst of post writes leads to one
    sweep after the last of them, and a trigger that arrives while a sweep is
    running still gets its own run. Before schedule() trigger() does nothing.

    The sweep is not synchronized with post writes; the delay only gives the
    triggering write time to commit.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        store: ImageStore,
        interval_sec: float = 3600.0,
        delay_sec: float = 5.0,
    ) -> None:
        self._session_factory = session_factory
        self.store = store
        self.interval_sec = interval_sec
        self.delay_sec = delay_sec
        self._scheduler: BaseScheduler | None = None

    def run_once(self) -> list[str]:
        """Run one sweep now; return the deleted references."""
        db = self._session_factory()
        try:
            return sweep_orphans(db, self.store)
        finally:
            db.close()

    def run_job(self) -> None:
        """Scheduled entry point: a failed sweep is logged and retried on the next run."""
        try:
            self.run_once()
        except Exception as e:
            logger.exception("Orphan sweep failed: %s", e)

    def schedule(self, scheduler: BaseScheduler) -> None:
        scheduler.add_job(
            self.run_job,
            IntervalTrigger(seconds=self.interval_sec),
            id=INTERVAL_JOB_ID,
            replace_existing=True,
        )
        self._scheduler = scheduler
        logger.info(
            "Orphan sweep scheduled: every %ss, %ss after post writes",
            self.interval_sec,
            self.delay_sec,
        )

    def trigger(self) -> None:
        """Request a sweep delay_sec from now. Safe to call from worker threads."""
        scheduler = self._scheduler
        if scheduler is None:
            logger.debug("Orphan sweep trigger ignored; sweeper not scheduled")
            return
        run_date = datetime.now(UTC) + timedelta(seconds=self.delay_sec)
        scheduler.add_job(
            self.run_job,
            DateTrigger(run_date=run_date),
            id=DEFERRED_JOB_ID,
            replace_existing=True,
        )

    def unschedule(self) -> None:
        scheduler, self._scheduler = self._scheduler, None
        if scheduler is None:
            return
        for job_id in (INTERVAL_JOB_ID, DEFERRED_JOB_ID):
            try:
                scheduler.remove_job(job_id)
            except JobLookupError:
                pass
