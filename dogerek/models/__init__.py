from .user import User, UserRole
from .student import Student
from .sync_run import StudentSyncRun, SyncRunStatus

__all__ = [
    "User",
    "UserRole",
    "Student",
    "StudentSyncRun",
    "SyncRunStatus",
]
