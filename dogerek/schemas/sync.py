"""
Pydantic schemas for roster sync endpoints.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime

from dogerek.models.sync_run import SyncRunStatus


class StudentSyncRunResponse(BaseModel):
    """Schema for a roster sync run."""
    id: int
    status: SyncRunStatus
    triggered_by: Optional[int] = None

    total_count: int = 0
    page_count: int = 0
    fetched_count: int = 0
    inserted_count: int = 0
    failed_records: int = 0
    skipped_pages: List[int] = Field(default_factory=list)

    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    is_complete: bool = False

    error_message: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
