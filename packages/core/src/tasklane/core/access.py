"""访问控制谓词

纯函数，不访问存储。所有任务端点共用同一组谓词。
"""

from .errors import AuthorizationError
from .models.client import Client
from .models.task import Task
from .models.user import User


def is_creator(task: Task, user: User) -> bool:
    return task.created_by == user.user_id


def is_assignee(task: Task, user: User) -> bool:
    return user.user_id in task.assigned_to


def can_view(task: Task, user: User) -> bool:
    """创建者、指派人或管理员可查看"""
    return user.is_admin or is_creator(task, user) or is_assignee(task, user)


def can_mutate_status(task: Task, user: User) -> bool:
    """仅创建者或指派人可变更状态（管理员也不例外）"""
    return is_creator(task, user) or is_assignee(task, user)


def can_edit(task: Task, user: User) -> bool:
    """全量更新与删除：创建者或管理员"""
    return user.is_admin or is_creator(task, user)


def can_manage_client(client: Client, user: User) -> bool:
    return user.is_admin or client.created_by == user.user_id


def require_admin(user: User) -> None:
    """Raises:
    AuthorizationError: 非管理员
    """
    if not user.is_admin:
        raise AuthorizationError("Admin role required")
