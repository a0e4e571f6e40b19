"""Reclamation scheduler — periodic expiry of stale pending orders.

Wraps an APScheduler ``AsyncIOScheduler`` with a single interval job. Each
run pushes the domain context and processes ExpireStalePendingOrders; a
failed run is logged and the next one still fires.

Usage:
    scheduler = ReclamationScheduler(vending)
    scheduler.start()        # inside a running event loop
    ...
    scheduler.shutdown()
"""

from datetime import datetime

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from vending.maintenance.reclamation import expire_stale_pending_orders
from vending.policy import get_policy

logger = structlog.get_logger(__name__)

JOB_ID = "expire_stale_pending_orders"


class ReclamationScheduler:
    def __init__(self, domain, interval_minutes: int | None = None, timeout_minutes: int | None = None):
        policy = get_policy()
        self.domain = domain
        self.interval_minutes = interval_minutes or policy.reclamation_interval_minutes
        self.timeout_minutes = timeout_minutes or policy.pending_timeout_minutes
        self._scheduler = AsyncIOScheduler()

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def run_once(self) -> int | None:
        """Expire stale orders once; returns the count, or None if the run failed."""
        try:
            with self.domain.domain_context():
                expired = expire_stale_pending_orders(older_than_minutes=self.timeout_minutes)
        except Exception:
            logger.exception("Reclamation run failed")
            return None

        logger.info("Reclamation run finished", expired=expired)
        return expired

    def configure(self) -> None:
        self._scheduler.add_job(
            self.run_once,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id=JOB_ID,
            name="Expire stale pending orders",
            next_run_time=datetime.now(),
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )

    def start(self) -> None:
        if self._scheduler.running:
            return
        self.configure()
        self._scheduler.start()
        logger.info(
            "Reclamation scheduler started",
            interval_minutes=self.interval_minutes,
            timeout_minutes=self.timeout_minutes,
        )

    def shutdown(self) -> None:
        """Ask the scheduler to stop; it does so on the event loop's next turn."""
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Reclamation scheduler shutdown requested")
