"""
Bulk replacement of the student roster.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import delete, insert
from sqlalchemy.exc import DataError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dogerek.core.config import settings
from dogerek.core.logging_config import SYNC_LOGGER_NAME
from dogerek.integrations.hemis.errors import HemisSyncError
from dogerek.models.student import Student


sync_logger = logging.getLogger(SYNC_LOGGER_NAME)

# Errors a single bad record can cause; anything else aborts the replace
RECORD_ERRORS = (IntegrityError, DataError)


@dataclass
class WriteSummary:
    inserted: int = 0
    failed: int = 0
    batches: int = 0
    rejected: List[Optional[str]] = field(default_factory=list)


class StudentRosterWriter:
    """Makes a fetched record set the new student table.

    The delete and every insert batch run inside one transaction that is
    committed at the end, so readers never see an empty roster and a crash
    halfway leaves the previous roster in place. Each batch is tried as one
    multi-row insert under a savepoint; if that fails the batch is replayed
    row by row so a duplicate or invalid record only costs itself.
    """

    def __init__(self, db: AsyncSession, batch_size: Optional[int] = None):
        self.db = db
        self.batch_size = batch_size or settings.HEMIS_INSERT_BATCH_SIZE

    async def replace_all(self, records: List[Dict[str, Any]]) -> WriteSummary:
        if not records:
            raise HemisSyncError("No students data received from Hemis")

        summary = WriteSummary()
        batch_total = (len(records) + self.batch_size - 1) // self.batch_size

        try:
            sync_logger.info("Clearing existing students")
            await self.db.execute(delete(Student))

            sync_logger.info("Inserting new students")
            for start in range(0, len(records), self.batch_size):
                batch = records[start:start + self.batch_size]
                inserted, rejected = await self._insert_batch(batch)

                summary.batches += 1
                summary.inserted += inserted
                summary.failed += len(rejected)
                summary.rejected.extend(rejected)
                sync_logger.info(f"Inserted batch {summary.batches} of {batch_total}")

            await self.db.commit()

        except Exception:
            await self.db.rollback()
            raise

        sync_logger.info(f"Successfully synced {summary.inserted} students")
        return summary

    async def _insert_batch(self, batch: List[Dict[str, Any]]) -> Tuple[int, List[Optional[str]]]:
        try:
            async with self.db.begin_nested():
                await self.db.execute(insert(Student), batch)
            return len(batch), []
        except RECORD_ERRORS:
            sync_logger.warning("Batch insert failed, inserting records one by one")

        inserted = 0
        rejected: List[Optional[str]] = []
        for record in batch:
            try:
                async with self.db.begin_nested():
                    await self.db.execute(insert(Student).values(**record))
                inserted += 1
            except RECORD_ERRORS as e:
                student_id_number = record.get('student_id_number')
                rejected.append(student_id_number)
                sync_logger.warning(
                    f"Rejected student {student_id_number}: {getattr(e, 'orig', e)}"
                )
        return inserted, rejected
