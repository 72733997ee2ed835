"""tasklane Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .client import Client, ClientAddress, ClientDraft, ClientPatch, ClientSummary
from .enums import (
    PRIORITY_SCORES,
    STATUS_VALUES,
    TaskPriority,
    TaskStatus,
    UserRole,
    parse_status,
)
from .query import StatusStats, TaskPage, TaskQuery
from .refs import UserRefObject, normalize_user_refs, resolve_user_ref
from .task import Task, TaskDraft, TaskPatch, TaskView
from .user import User, UserRecord, UserSummary

__all__ = [
    # 枚举
    "TaskStatus",
    "TaskPriority",
    "UserRole",
    "PRIORITY_SCORES",
    "STATUS_VALUES",
    "parse_status",
    # User
    "User",
    "UserRecord",
    "UserSummary",
    "UserRefObject",
    "normalize_user_refs",
    "resolve_user_ref",
    # Client
    "Client",
    "ClientAddress",
    "ClientDraft",
    "ClientPatch",
    "ClientSummary",
    # Task
    "Task",
    "TaskDraft",
    "TaskPatch",
    "TaskView",
    # Query
    "TaskQuery",
    "TaskPage",
    "StatusStats",
]
