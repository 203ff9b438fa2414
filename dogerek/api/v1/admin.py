"""
University admin endpoints: HEMIS roster sync and the student roster.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from dogerek.core.auth import AuthenticatedUser, get_current_university_admin
from dogerek.core.database import get_db
from dogerek.integrations.hemis.errors import HemisSyncError
from dogerek.models.student import Student
from dogerek.models.sync_run import StudentSyncRun
from dogerek.schemas.student import StudentResponse
from dogerek.schemas.sync import StudentSyncRunResponse
from dogerek.services.sync_jobs import SyncAlreadyRunningError, SyncJobManager, sync_job_manager
from dogerek.utils.formatters import calculate_pagination, format_response, pagination_meta

logger = logging.getLogger(__name__)
router = APIRouter()


def get_sync_job_manager() -> SyncJobManager:
    return sync_job_manager


def _run_payload(sync_run: StudentSyncRun) -> dict:
    return StudentSyncRunResponse.model_validate(sync_run).model_dump(mode="json")


@router.post("/sync-hemis")
async def sync_hemis_data(
    wait: bool = Query(False, description="Block until the run finishes"),
    db: AsyncSession = Depends(get_db),
    current_admin: AuthenticatedUser = Depends(get_current_university_admin),
    manager: SyncJobManager = Depends(get_sync_job_manager)
):
    """Start a HEMIS roster sync.

    By default the run is scheduled in the background and its record is
    returned right away with 202; poll ``/sync-hemis/runs/{id}`` for the
    outcome. With ``wait=true`` the request stays open until the run ends.
    """
    try:
        if not wait:
            sync_run = await manager.start_background(db, triggered_by=current_admin.id)
            return JSONResponse(
                status_code=status.HTTP_202_ACCEPTED,
                content=format_response(True, _run_payload(sync_run), "Hemis sync started")
            )

        sync_run = await manager.run_inline(db, triggered_by=current_admin.id)

    except SyncAlreadyRunningError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Sync run {e.run_id} is already in progress"
        )
    except HemisSyncError as e:
        logger.error(f"Sync Hemis data error: {e.message}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=e.message
        )

    return format_response(
        True,
        _run_payload(sync_run),
        f"Sync completed: {sync_run.inserted_count} students updated"
    )


@router.get("/sync-hemis/runs")
async def list_sync_runs(
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_admin: AuthenticatedUser = Depends(get_current_university_admin)
):
    """Recent sync runs, newest first."""
    result = await db.execute(
        select(StudentSyncRun)
        .order_by(StudentSyncRun.id.desc())
        .limit(limit)
    )
    runs = result.scalars().all()
    return format_response(True, [_run_payload(run) for run in runs], "Sync runs")


@router.get("/sync-hemis/runs/{run_id}")
async def get_sync_run(
    run_id: int,
    db: AsyncSession = Depends(get_db),
    current_admin: AuthenticatedUser = Depends(get_current_university_admin)
):
    sync_run = await db.get(StudentSyncRun, run_id)
    if sync_run is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Sync run not found"
        )
    return format_response(True, _run_payload(sync_run), "Sync run")


@router.get("/students")
async def get_all_students(
    faculty_id: Optional[int] = None,
    group_id: Optional[int] = None,
    busy: Optional[bool] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    current_admin: AuthenticatedUser = Depends(get_current_university_admin)
):
    """Active students across all faculties."""
    query = select(Student).where(Student.is_active == True)

    if faculty_id is not None:
        query = query.where(Student.department["id"].as_integer() == faculty_id)
    if group_id is not None:
        query = query.where(Student.group["id"].as_integer() == group_id)
    if search:
        pattern = f"%{search}%"
        query = query.where(
            or_(
                Student.full_name.ilike(pattern),
                Student.student_id_number.ilike(pattern)
            )
        )
    query = query.order_by(Student.full_name)

    offsets = calculate_pagination(page, limit)

    if busy is None:
        total_result = await db.execute(
            select(func.count()).select_from(query.order_by(None).subquery())
        )
        total = total_result.scalar() or 0

        result = await db.execute(query.offset(offsets["skip"]).limit(offsets["limit"]))
        students = result.scalars().all()
    else:
        # Busy status lives in JSON lists, so it is filtered after loading
        result = await db.execute(query)
        matching = [s for s in result.scalars().all() if s.is_busy == busy]
        total = len(matching)
        students = matching[offsets["skip"]:offsets["skip"] + offsets["limit"]]

    return format_response(
        True,
        {
            "students": [
                StudentResponse.model_validate(s).model_dump(mode="json") for s in students
            ],
            "pagination": pagination_meta(total, page, limit),
        },
        "Students"
    )
