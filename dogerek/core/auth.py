"""
Bearer token authentication and role checks for API routes.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dogerek.core.config import settings
from dogerek.core.database import get_db
from dogerek.models.student import Student
from dogerek.models.user import User, UserRole


bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class AuthenticatedUser:
    """The caller of a request: a staff user or a student."""
    id: int
    role: UserRole
    account: Union[User, Student]


def create_access_token(user_id: int, role: Union[UserRole, str], expires_days: int = 30) -> str:
    """Sign a token carrying the caller's id and role."""
    role_value = role.value if isinstance(role, UserRole) else role
    payload = {
        "id": user_id,
        "role": role_value,
        "exp": datetime.now(timezone.utc) + timedelta(days=expires_days),
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token"
        )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db)
) -> AuthenticatedUser:
    """Resolve the bearer token to a student or staff account."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token not provided"
        )

    payload = decode_access_token(credentials.credentials)
    user_id: Any = payload.get("id")
    try:
        role = UserRole(payload.get("role"))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token"
        )

    if role == UserRole.STUDENT:
        result = await db.execute(select(Student).where(Student.id == user_id))
        student = result.scalar_one_or_none()
        if student is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Student not found"
            )
        return AuthenticatedUser(id=student.id, role=role, account=student)

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )
    return AuthenticatedUser(id=user.id, role=user.role, account=user)


def require_roles(*allowed_roles: UserRole):
    """Build a dependency that only lets the given roles through."""

    async def checker(
        current_user: AuthenticatedUser = Depends(get_current_user)
    ) -> AuthenticatedUser:
        if current_user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Permission denied"
            )
        return current_user

    return checker


get_current_university_admin = require_roles(UserRole.UNIVERSITY_ADMIN)
