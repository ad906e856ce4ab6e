"""Repository package for database operations."""

from c3p1.db.repositories.audit_repo import AuditRepository
from c3p1.db.repositories.base import BaseRepository
from c3p1.db.repositories.memory_repo import MemoryRepository
from c3p1.db.repositories.message_repo import MessageRepository
from c3p1.db.repositories.project_repo import ProjectRepository
from c3p1.db.repositories.task_run_repo import TaskRunRepository
from c3p1.db.repositories.work_repo import WorkRepository

__all__ = [
    "AuditRepository",
    "BaseRepository",
    "MemoryRepository",
    "MessageRepository",
    "ProjectRepository",
    "TaskRunRepository",
    "WorkRepository",
]
