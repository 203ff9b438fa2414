"""
Directory endpoints used by filter widgets for every role.
"""
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from dogerek.core.auth import AuthenticatedUser, get_current_user
from dogerek.core.database import get_db
from dogerek.schemas.student import FacultyEntry, GroupEntry
from dogerek.services.directory import get_faculties_from_students, get_groups_from_students
from dogerek.utils.formatters import format_response

router = APIRouter()


@router.get("/faculties")
async def list_faculties(
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user)
):
    faculties = await get_faculties_from_students(db)
    return format_response(
        True,
        [FacultyEntry(**faculty).model_dump() for faculty in faculties],
        "Faculties"
    )


@router.get("/groups")
async def list_groups(
    faculty_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user)
):
    groups = await get_groups_from_students(db, faculty_id)
    return format_response(
        True,
        [GroupEntry(**group).model_dump() for group in groups],
        "Groups"
    )
