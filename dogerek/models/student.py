from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON, Index
from sqlalchemy.sql import func

from dogerek.core.database import Base


# JSON(none_as_null=True) stores a missing sub-object as SQL NULL rather than
# the JSON literal 'null', so directory queries can filter with IS NOT NULL.
NullableJSON = JSON(none_as_null=True)


class Student(Base):
    """Student roster entry mirrored from HEMIS.

    Rows are only ever created by a roster sync and are deleted wholesale at
    the start of each one. The local-only columns at the bottom (credentials,
    club enrollments, external courses) are therefore lost on every sync, and
    the primary key is regenerated, so rows in other tables that point at a
    student id are left dangling. That behavior is kept deliberately; see
    DESIGN.md for the open question.
    """
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, index=True)

    # Registry identity
    hemis_id = Column(Integer, nullable=False)
    meta_id = Column(Integer, nullable=True)
    student_id_number = Column(String(50), unique=True, nullable=False)

    # Personal data
    full_name = Column(String(255), nullable=False)
    short_name = Column(String(255), nullable=True)
    first_name = Column(String(100), nullable=True)
    second_name = Column(String(100), nullable=True)
    third_name = Column(String(100), nullable=True)
    gender = Column(NullableJSON, nullable=True)
    birth_date = Column(Integer, nullable=True)  # unix timestamp, as HEMIS sends it
    image = Column(String(500), nullable=True)
    email = Column(String(255), default="")

    # Academic attributes, each a small HEMIS sub-object or NULL
    department = Column(NullableJSON, nullable=True)
    specialty = Column(NullableJSON, nullable=True)
    group = Column(NullableJSON, nullable=True)
    level = Column(NullableJSON, nullable=True)
    semester = Column(NullableJSON, nullable=True)
    education_year = Column(NullableJSON, nullable=True)
    education_type = Column(NullableJSON, nullable=True)
    education_form = Column(NullableJSON, nullable=True)
    payment_form = Column(NullableJSON, nullable=True)
    year_of_enter = Column(Integer, nullable=True)
    student_status = Column(NullableJSON, nullable=True)

    # Local-only fields, never written by sync
    hashed_password = Column(String(255), nullable=True)
    last_login = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, default=True)
    enrolled_clubs = Column(JSON, default=list)
    external_courses = Column(JSON, default=list)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        Index('idx_student_id_number', 'student_id_number'),
    )

    @property
    def is_busy(self) -> bool:
        """True when the student has an approved club or an external course."""
        approved = any(
            (club or {}).get("status") == "approved"
            for club in (self.enrolled_clubs or [])
        )
        return approved or bool(self.external_courses)
