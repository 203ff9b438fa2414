"""
Pydantic schemas for student roster and directory endpoints.
"""

from pydantic import BaseModel, ConfigDict, Field, computed_field
from typing import Any, Dict, List, Optional

from dogerek.utils.formatters import format_date


class FacultyEntry(BaseModel):
    id: Optional[int]
    name: Optional[str]
    code: Optional[str]
    studentCount: int


class GroupEntry(BaseModel):
    id: Optional[int]
    name: Optional[str]
    facultyId: Optional[int]
    facultyName: Optional[str]
    studentCount: int


class StudentResponse(BaseModel):
    """Roster entry as shown to administrators; credentials are never exposed."""
    id: int
    hemis_id: int
    student_id_number: str
    full_name: str
    short_name: Optional[str] = None
    email: Optional[str] = None
    image: Optional[str] = None
    gender: Optional[Dict[str, Any]] = None
    birth_date: Optional[int] = None  # unix timestamp from HEMIS
    department: Optional[Dict[str, Any]] = None
    specialty: Optional[Dict[str, Any]] = None
    group: Optional[Dict[str, Any]] = None
    level: Optional[Dict[str, Any]] = None
    year_of_enter: Optional[int] = None
    student_status: Optional[Dict[str, Any]] = None
    is_active: bool = True
    is_busy: bool = False
    enrolled_clubs: List[Dict[str, Any]] = Field(default_factory=list)
    external_courses: List[Any] = Field(default_factory=list)

    @computed_field
    @property
    def birth_date_display(self) -> str:
        return format_date(self.birth_date)

    model_config = ConfigDict(from_attributes=True)
