from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON, Enum as SQLEnum
from sqlalchemy.sql import func
import enum

from dogerek.core.database import Base


class UserRole(str, enum.Enum):
    UNIVERSITY_ADMIN = "university_admin"
    FACULTY_ADMIN = "faculty_admin"
    TUTOR = "tutor"
    # Students authenticate against the students table, not this one
    STUDENT = "student"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(SQLEnum(UserRole), nullable=False)

    # Profile
    full_name = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=True)  # stored as +998XXXXXXXXX
    email = Column(String(255), nullable=True)

    # Faculty admins are bound to one faculty: {id, name, code}
    faculty = Column(JSON(none_as_null=True), nullable=True)

    is_active = Column(Boolean, default=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
