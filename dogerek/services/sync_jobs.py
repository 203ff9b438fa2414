"""
Background execution of roster sync runs.

A trigger creates a StudentSyncRun row and returns immediately; the run
itself executes as an asyncio task with its own database session, and
callers poll the row for progress.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dogerek.core.database import AsyncSessionLocal
from dogerek.integrations.hemis.client import HemisClient
from dogerek.integrations.hemis.errors import HemisSyncError
from dogerek.integrations.hemis.roster_sync import RosterSyncService
from dogerek.models.sync_run import StudentSyncRun, SyncRunStatus


logger = logging.getLogger(__name__)


class SyncAlreadyRunningError(Exception):
    """Raised when a run is requested while another one is in progress."""

    def __init__(self, run_id: Optional[int]):
        super().__init__(f"Sync run {run_id} is already in progress")
        self.run_id = run_id


class SyncJobManager:
    """Allows at most one roster sync at a time, inline or in the background."""

    def __init__(
        self,
        session_factory: async_sessionmaker = AsyncSessionLocal,
        client_factory: Callable[[], HemisClient] = HemisClient,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ):
        self.session_factory = session_factory
        self.client_factory = client_factory
        self._sleep = sleep
        self._busy = False
        self._active_run_id: Optional[int] = None
        self._background_tasks: Dict[int, asyncio.Task] = {}

    @property
    def is_running(self) -> bool:
        return self._busy

    @property
    def active_run_id(self) -> Optional[int]:
        return self._active_run_id

    async def start_background(self, db: AsyncSession, triggered_by: Optional[int] = None) -> StudentSyncRun:
        """Create a pending run and schedule it; returns without waiting."""
        sync_run = await self._claim(db, triggered_by)

        task = asyncio.create_task(self._run_in_background(sync_run.id))
        self._background_tasks[sync_run.id] = task
        task.add_done_callback(lambda t: self._background_tasks.pop(sync_run.id, None))

        logger.info(f"Scheduled roster sync run {sync_run.id}")
        return sync_run

    async def run_inline(self, db: AsyncSession, triggered_by: Optional[int] = None) -> StudentSyncRun:
        """Run a sync on the caller's session and wait for it to finish.

        Raises:
            HemisSyncError: if the run failed
        """
        sync_run = await self._claim(db, triggered_by)
        try:
            service = RosterSyncService(db, client_factory=self.client_factory, sleep=self._sleep)
            return await service.sync_students(sync_run)
        finally:
            self._release()

    async def shutdown(self) -> None:
        """Cancel any run still in flight."""
        for run_id, task in list(self._background_tasks.items()):
            if not task.done():
                logger.info(f"Cancelling roster sync run {run_id}")
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._background_tasks.clear()

    async def _claim(self, db: AsyncSession, triggered_by: Optional[int]) -> StudentSyncRun:
        if self._busy:
            raise SyncAlreadyRunningError(self._active_run_id)
        self._busy = True

        try:
            sync_run = StudentSyncRun(status=SyncRunStatus.PENDING, triggered_by=triggered_by)
            db.add(sync_run)
            await db.commit()
            await db.refresh(sync_run)
        except Exception:
            self._release()
            raise

        self._active_run_id = sync_run.id
        return sync_run

    def _release(self) -> None:
        self._busy = False
        self._active_run_id = None

    async def _run_in_background(self, run_id: int) -> None:
        try:
            async with self.session_factory() as db:
                sync_run = await db.get(StudentSyncRun, run_id)
                service = RosterSyncService(db, client_factory=self.client_factory, sleep=self._sleep)
                try:
                    await service.sync_students(sync_run)
                except HemisSyncError as e:
                    # Already recorded on the run row
                    logger.error(f"Roster sync run {run_id} failed: {e.message}")
        except asyncio.CancelledError:
            logger.warning(f"Roster sync run {run_id} was cancelled")
            raise
        except Exception:
            logger.exception(f"Roster sync run {run_id} crashed")
        finally:
            self._release()


async def recover_interrupted_runs(db: AsyncSession) -> int:
    """Mark runs left pending or running by a previous process as failed."""
    result = await db.execute(
        select(StudentSyncRun).where(
            StudentSyncRun.status.in_([SyncRunStatus.PENDING, SyncRunStatus.RUNNING])
        )
    )
    stale_runs = result.scalars().all()

    for sync_run in stale_runs:
        sync_run.mark_failed(datetime.now(timezone.utc), "Hemis sync failed: interrupted by restart")

    if stale_runs:
        await db.commit()
        logger.warning(f"Marked {len(stale_runs)} interrupted sync runs as failed")
    return len(stale_runs)


# Global instance
sync_job_manager = SyncJobManager()
