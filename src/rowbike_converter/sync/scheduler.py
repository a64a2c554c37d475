"""Automatic calibration sync using APScheduler.

Runs a sync pass immediately, then on a fixed interval, and again whenever
the connectivity monitor reports the network is back.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Callable, Optional, Set

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

if TYPE_CHECKING:
    from .reconciler import SyncReconciler

logger = logging.getLogger(__name__)

SYNC_JOB_ID = "calibration_auto_sync"


class AutoSyncScheduler:
    """Schedules background sync passes for one user.

    Usage:
        scheduler = AutoSyncScheduler(reconciler, "user-123", interval_minutes=5)
        dispose = scheduler.start()
        # ... app runs ...
        dispose()
    """

    def __init__(
        self,
        reconciler: "SyncReconciler",
        user_id: str,
        interval_minutes: int = 5,
    ):
        """Initialize the scheduler.

        Args:
            reconciler: Runs the actual sync passes.
            user_id: User whose calibrations are synced.
            interval_minutes: Minutes between periodic passes.
        """
        if interval_minutes <= 0:
            raise ValueError("interval_minutes must be positive")

        self.reconciler = reconciler
        self.user_id = user_id
        self.interval_minutes = interval_minutes
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._pending: Set[asyncio.Task] = set()
        self._is_running = False

    @property
    def is_running(self) -> bool:
        """Check if the scheduler is running."""
        return self._is_running and self.scheduler is not None

    def start(self, run_immediately: bool = True) -> Callable[[], None]:
        """Start periodic syncing.

        Must be called from a running event loop.

        Args:
            run_immediately: Kick off a pass right away.

        Returns:
            Disposer that stops the scheduler and the connectivity subscription.
        """
        if self._is_running:
            logger.warning("Auto-sync scheduler is already running")
            return self.stop

        self._loop = asyncio.get_running_loop()
        self.scheduler = AsyncIOScheduler(event_loop=self._loop)
        self.scheduler.add_job(
            self._run_sync,
            IntervalTrigger(minutes=self.interval_minutes),
            id=SYNC_JOB_ID,
            name="Calibration Auto Sync",
            replace_existing=True,
            max_instances=1,  # Prevent overlapping runs
            coalesce=True,
        )
        self.scheduler.start()
        self._is_running = True

        self._unsubscribe = self.reconciler.connectivity.subscribe(self._on_online)

        if run_immediately:
            self._spawn_sync()

        logger.info(
            f"Auto-sync started for user {self.user_id} "
            f"(every {self.interval_minutes} minutes)"
        )
        return self.stop

    def stop(self) -> None:
        """Stop periodic syncing. Safe to call more than once."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        if not self._is_running or self.scheduler is None:
            return

        if self.scheduler.get_job(SYNC_JOB_ID):
            self.scheduler.remove_job(SYNC_JOB_ID)
        self.scheduler.shutdown(wait=False)
        self.scheduler = None
        self._is_running = False
        logger.info(f"Auto-sync stopped for user {self.user_id}")

    async def _run_sync(self) -> None:
        await self.reconciler.auto_sync(self.user_id)

    def _spawn_sync(self) -> None:
        task = asyncio.ensure_future(self._run_sync())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _on_online(self) -> None:
        """Connectivity callback; may be invoked from any thread."""
        if not self._is_running or self._loop is None or self._loop.is_closed():
            return
        logger.info("Network is back, syncing calibrations")
        self._loop.call_soon_threadsafe(self._spawn_sync)

    def get_next_sync_time(self):
        """The next periodic run time, or None if not running."""
        if not self.is_running:
            return None
        job = self.scheduler.get_job(SYNC_JOB_ID)
        if job and job.next_run_time:
            return job.next_run_time
        return None

    def get_status(self) -> dict:
        """Get the current scheduler status."""
        status = {
            "is_running": self.is_running,
            "user_id": self.user_id,
            "interval_minutes": self.interval_minutes,
            "sync_state": self.reconciler.state.value,
            "online": self.reconciler.connectivity.is_online(),
            "next_sync_time": None,
            "jobs": [],
        }

        if self.is_running:
            next_time = self.get_next_sync_time()
            if next_time:
                status["next_sync_time"] = next_time.isoformat()

            for job in self.scheduler.get_jobs():
                status["jobs"].append({
                    "id": job.id,
                    "name": job.name,
                    "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
                })

        return status
