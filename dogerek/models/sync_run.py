"""
SQLAlchemy model for tracking HEMIS roster sync runs.
"""

from sqlalchemy import Column, Integer, DateTime, Text, JSON, Enum as SQLEnum
from sqlalchemy.sql import func
from sqlalchemy.ext.hybrid import hybrid_property
import enum
from typing import List, Optional

from dogerek.core.database import Base


class SyncRunStatus(str, enum.Enum):
    """Status of a roster sync run."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    PARTIAL = "partial"    # finished, but pages were skipped or records rejected
    FAILED = "failed"


class StudentSyncRun(Base):
    """One execution of the roster synchronization job."""

    __tablename__ = "student_sync_runs"

    id = Column(Integer, primary_key=True, index=True)
    status = Column(SQLEnum(SyncRunStatus), nullable=False, default=SyncRunStatus.PENDING)
    triggered_by = Column(Integer, nullable=True)  # users.id of the admin

    # Registry-reported totals
    total_count = Column(Integer, default=0)
    page_count = Column(Integer, default=0)

    # Outcome
    fetched_count = Column(Integer, default=0)
    inserted_count = Column(Integer, default=0)
    failed_records = Column(Integer, default=0)
    skipped_pages = Column(JSON, default=list)

    # Timing
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Error tracking
    error_message = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    @hybrid_property
    def duration_seconds(self) -> Optional[int]:
        """Get run duration in seconds."""
        if not self.started_at or not self.completed_at:
            return None
        return int((self.completed_at - self.started_at).total_seconds())

    @property
    def is_complete(self) -> bool:
        """True only for a run that stored every record the registry reported."""
        return (
            self.status == SyncRunStatus.COMPLETED
            and not self.skipped_pages
            and not self.failed_records
        )

    def mark_running(self, started_at) -> None:
        self.status = SyncRunStatus.RUNNING
        self.started_at = started_at

    def mark_finished(
        self,
        completed_at,
        total_count: int,
        page_count: int,
        fetched_count: int,
        inserted_count: int,
        failed_records: int,
        skipped_pages: List[int]
    ) -> None:
        self.total_count = total_count
        self.page_count = page_count
        self.fetched_count = fetched_count
        self.inserted_count = inserted_count
        self.failed_records = failed_records
        self.skipped_pages = list(skipped_pages)
        self.completed_at = completed_at
        if skipped_pages or failed_records:
            self.status = SyncRunStatus.PARTIAL
        else:
            self.status = SyncRunStatus.COMPLETED

    def mark_failed(self, completed_at, error_message: str) -> None:
        self.status = SyncRunStatus.FAILED
        self.completed_at = completed_at
        self.error_message = error_message
