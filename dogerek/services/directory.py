"""
Faculty and group directories aggregated from the student roster.

Neither is stored; both are recomputed from the students table on each call,
so they always reflect the latest sync.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from dogerek.models.student import Student


logger = logging.getLogger(__name__)


async def get_faculties_from_students(db: AsyncSession) -> List[Dict[str, Any]]:
    """List distinct faculties with their student counts, sorted by name."""
    faculty_id = Student.department["id"].as_integer()
    faculty_name = Student.department["name"].as_string()
    faculty_code = Student.department["code"].as_string()

    result = await db.execute(
        select(
            faculty_id.label("id"),
            faculty_name.label("name"),
            faculty_code.label("code"),
            func.count(Student.id).label("studentCount")
        )
        .where(Student.department.isnot(None))
        .group_by(faculty_id, faculty_name, faculty_code)
        .order_by(faculty_name)
    )
    return [dict(row._mapping) for row in result.all()]


async def get_groups_from_students(
    db: AsyncSession,
    faculty_id: Optional[int] = None
) -> List[Dict[str, Any]]:
    """List distinct groups with their parent faculty, sorted by name."""
    group_id = Student.group["id"].as_integer()
    group_name = Student.group["name"].as_string()
    department_id = Student.department["id"].as_integer()
    department_name = Student.department["name"].as_string()

    query = (
        select(
            group_id.label("id"),
            group_name.label("name"),
            department_id.label("facultyId"),
            department_name.label("facultyName"),
            func.count(Student.id).label("studentCount")
        )
        .where(Student.group.isnot(None))
    )
    if faculty_id is not None:
        query = query.where(department_id == faculty_id)

    query = (
        query
        .group_by(group_id, group_name, department_id, department_name)
        .order_by(group_name)
    )

    result = await db.execute(query)
    return [dict(row._mapping) for row in result.all()]
