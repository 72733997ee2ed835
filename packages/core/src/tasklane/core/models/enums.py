"""枚举定义

包含 TaskStatus、TaskPriority、UserRole 枚举，
以及统计用的优先级分值映射 PRIORITY_SCORES。
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """任务状态 -- todo -> in-progress -> completed"""

    TODO = "todo"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskPriority(StrEnum):
    """任务优先级"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class UserRole(StrEnum):
    """用户角色"""

    USER = "user"
    ADMIN = "admin"


# 统计接口的优先级分值，未知优先级计 0
PRIORITY_SCORES: dict[TaskPriority, int] = {
    TaskPriority.HIGH: 3,
    TaskPriority.MEDIUM: 2,
    TaskPriority.LOW: 1,
}

STATUS_VALUES: frozenset[str] = frozenset(s.value for s in TaskStatus)


def parse_status(value: str) -> TaskStatus | None:
    """将字符串解析为 TaskStatus

    Returns:
        对应的 TaskStatus，非法值返回 None
    """
    if value not in STATUS_VALUES:
        return None
    return TaskStatus(value)
