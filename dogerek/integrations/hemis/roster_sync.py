"""
Full-roster synchronization from the HEMIS registry.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from dogerek.core.config import settings
from dogerek.core.logging_config import SYNC_LOGGER_NAME
from dogerek.integrations.hemis.client import HemisClient, HemisPage
from dogerek.integrations.hemis.errors import HemisError, HemisSyncError
from dogerek.integrations.hemis.normalizer import format_student_data
from dogerek.models.sync_run import StudentSyncRun
from dogerek.services.roster_writer import StudentRosterWriter, WriteSummary


logger = logging.getLogger(__name__)
sync_logger = logging.getLogger(SYNC_LOGGER_NAME)

SleepFunc = Callable[[float], Awaitable[Any]]


@dataclass
class RosterFetchResult:
    """Everything collected from the registry in one pass."""
    records: List[Dict[str, Any]]
    total_count: int
    page_count: int
    skipped_pages: List[int] = field(default_factory=list)
    attempts: Dict[int, int] = field(default_factory=dict)

    @property
    def is_complete(self) -> bool:
        return not self.skipped_pages


class RosterFetcher:
    """Walks the registry's student list page by page.

    Pages are fetched strictly one at a time. Page 1 must succeed; any later
    page gets up to ``max_retries`` extra attempts and is skipped if they all
    fail, so one flaky page does not sink the whole run.
    """

    def __init__(
        self,
        client: HemisClient,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        pacing_every: Optional[int] = None,
        pacing_delay: Optional[float] = None,
        sleep: SleepFunc = asyncio.sleep
    ):
        self.client = client
        self.max_retries = settings.HEMIS_MAX_RETRIES if max_retries is None else max_retries
        self.retry_delay = settings.HEMIS_RETRY_DELAY if retry_delay is None else retry_delay
        self.pacing_every = settings.HEMIS_PACING_EVERY if pacing_every is None else pacing_every
        self.pacing_delay = settings.HEMIS_PACING_DELAY if pacing_delay is None else pacing_delay
        self._sleep = sleep

    async def fetch_all(self) -> RosterFetchResult:
        """
        Fetch and normalize the complete roster.

        Returns:
            Normalized records in page order plus the pages that were skipped

        Raises:
            HemisSyncError: if the first page cannot be fetched
        """
        sync_logger.info("Fetching page 1 (attempt 1)")
        try:
            first_page = await self.client.fetch_page(1)
        except HemisError as e:
            sync_logger.error(
                f"Failed to fetch initial data from Hemis: {e.message}",
                extra={"hemis_error": e.to_dict()}
            )
            raise HemisSyncError(f"Failed to fetch initial data from Hemis: {e.message}")

        result = RosterFetchResult(
            records=[format_student_data(item) for item in first_page.items],
            total_count=first_page.total_count,
            page_count=first_page.page_count,
            attempts={1: 1}
        )

        sync_logger.info(f"Total students to sync: {result.total_count}")
        sync_logger.info(f"Total pages: {result.page_count}")

        for page in range(2, result.page_count + 1):
            if self.pacing_every and (page - 1) % self.pacing_every == 0:
                await self._sleep(self.pacing_delay)

            page_data = await self._fetch_with_retries(page, result)
            if page_data is None:
                result.skipped_pages.append(page)
                continue

            result.records.extend(format_student_data(item) for item in page_data.items)
            sync_logger.info(
                f"Page {page} processed. Total collected: {len(result.records)}"
            )

        sync_logger.info(f"Total students collected: {len(result.records)}")
        if result.skipped_pages:
            sync_logger.warning(
                f"Sync is incomplete, skipped pages: {result.skipped_pages}"
            )
        return result

    async def _fetch_with_retries(
        self,
        page: int,
        result: RosterFetchResult
    ) -> Optional[HemisPage]:
        """Fetch one page, retrying with a fixed delay. None means give up."""
        total_attempts = 1 + self.max_retries
        last_error: Optional[HemisError] = None

        for attempt in range(1, total_attempts + 1):
            if attempt > 1:
                await self._sleep(self.retry_delay)

            result.attempts[page] = attempt
            sync_logger.info(f"Fetching page {page} of {result.page_count} (attempt {attempt})")
            try:
                page_data = await self.client.fetch_page(page)
            except HemisError as e:
                last_error = e
                if attempt == 1:
                    message = f"Failed to fetch page {page}, retrying: {e.message}"
                else:
                    message = f"Retry {attempt - 1} failed for page {page}: {e.message}"
                sync_logger.warning(message, extra={"hemis_error": e.to_dict()})
                continue

            if attempt > 1:
                sync_logger.info(f"Page {page} processed after {attempt - 1} retries")
            return page_data

        sync_logger.error(
            f"Failed to fetch page {page} after {self.max_retries} retries, skipping",
            extra={"hemis_error": last_error.to_dict() if last_error else None}
        )
        return None


class RosterSyncService:
    """Runs one complete sync: fetch everything, then replace the roster."""

    def __init__(
        self,
        db: AsyncSession,
        client_factory: Callable[[], HemisClient] = HemisClient,
        sleep: SleepFunc = asyncio.sleep
    ):
        self.db = db
        self.client_factory = client_factory
        self.writer = StudentRosterWriter(db)
        self._sleep = sleep

    async def sync_students(self, sync_run: Optional[StudentSyncRun] = None) -> StudentSyncRun:
        """
        Synchronize the student roster and record the outcome.

        Args:
            sync_run: Existing run record to update; a new one is created if omitted

        Returns:
            The finished run record (status completed or partial)

        Raises:
            HemisSyncError: if the run failed; the roster is left untouched
        """
        if sync_run is None:
            sync_run = StudentSyncRun()
        self.db.add(sync_run)

        logger.info("Starting Hemis data synchronization")
        sync_run.mark_running(datetime.now(timezone.utc))
        await self.db.commit()
        await self.db.refresh(sync_run)

        try:
            async with self.client_factory() as client:
                fetcher = RosterFetcher(client, sleep=self._sleep)
                fetched = await fetcher.fetch_all()

            summary = await self.writer.replace_all(fetched.records)

        except Exception as e:
            await self.db.rollback()
            message = e.message if isinstance(e, HemisError) else str(e)
            logger.error(f"Sync error: {message}", exc_info=not isinstance(e, HemisError))

            sync_run.mark_failed(datetime.now(timezone.utc), f"Hemis sync failed: {message}")
            await self.db.commit()
            await self.db.refresh(sync_run)
            raise HemisSyncError(f"Hemis sync failed: {message}")

        self._record_outcome(sync_run, fetched, summary)
        await self.db.commit()
        await self.db.refresh(sync_run)

        logger.info(
            f"Sync completed: {summary.inserted} students updated, "
            f"{summary.failed} rejected, {len(fetched.skipped_pages)} pages skipped"
        )
        return sync_run

    def _record_outcome(
        self,
        sync_run: StudentSyncRun,
        fetched: RosterFetchResult,
        summary: WriteSummary
    ) -> None:
        sync_run.mark_finished(
            completed_at=datetime.now(timezone.utc),
            total_count=fetched.total_count,
            page_count=fetched.page_count,
            fetched_count=len(fetched.records),
            inserted_count=summary.inserted,
            failed_records=summary.failed,
            skipped_pages=fetched.skipped_pages
        )
