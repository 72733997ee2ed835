"""列表查询参数与结果模型"""

from pydantic import BaseModel, Field

from ..config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..errors import ValidationError
from .enums import TaskPriority, TaskStatus
from .task import TaskView

# 可排序字段
SORTABLE_FIELDS = frozenset(
    {"created_at", "updated_at", "title", "status", "priority", "due_date", "task_code"}
)

# 可投影字段（task_id 总是返回）
SELECTABLE_FIELDS = frozenset(TaskView.model_fields)

# 兼容前端的 camelCase 字段名
FIELD_ALIASES: dict[str, str] = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "dueDate": "due_date",
    "taskCode": "task_code",
    "createdBy": "created_by",
    "assignedTo": "assigned_to",
    "isOverdue": "is_overdue",
    "_id": "task_id",
    "id": "task_id",
}

DEFAULT_SORT: list[tuple[str, bool]] = [("created_at", True)]


def _split_fields(raw: str | None) -> list[str]:
    if not raw:
        return []
    names = (part.strip() for part in raw.split(","))
    return [FIELD_ALIASES.get(name, name) for name in names if name]


class TaskQuery(BaseModel):
    """任务列表查询参数

    sort / fields 为逗号分隔的字段列表，sort 中 "-" 前缀表示倒序。
    """

    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    client_id: str | None = None
    sort: str | None = Field(default=None, description="默认 -created_at")
    fields: str | None = Field(default=None, description="默认返回全部字段")
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def sort_keys(self) -> list[tuple[str, bool]]:
        """解析 sort 参数

        Returns:
            [(字段名, 是否倒序), ...]，未指定时按创建时间倒序

        Raises:
            ValidationError: 存在不可排序的字段
        """
        keys: list[tuple[str, bool]] = []
        unknown: list[str] = []
        for part in (self.sort or "").split(","):
            part = part.strip()
            if not part:
                continue
            descending = part.startswith("-")
            name = part.lstrip("-+")
            name = FIELD_ALIASES.get(name, name)
            if name not in SORTABLE_FIELDS:
                unknown.append(part)
                continue
            keys.append((name, descending))

        if unknown:
            raise ValidationError(f"Invalid sort field(s): {', '.join(unknown)}")
        return keys or list(DEFAULT_SORT)

    def selected_fields(self) -> list[str] | None:
        """解析 fields 参数

        Returns:
            字段名列表（包含 task_id），未指定时返回 None 表示全部字段

        Raises:
            ValidationError: 存在未知字段
        """
        names = _split_fields(self.fields)
        if not names:
            return None

        unknown = [n for n in names if n not in SELECTABLE_FIELDS]
        if unknown:
            raise ValidationError(f"Invalid field(s): {', '.join(unknown)}")

        selected = ["task_id"]
        for name in names:
            if name not in selected:
                selected.append(name)
        return selected


class TaskPage(BaseModel):
    """分页结果，total 与分页参数无关"""

    tasks: list[TaskView]
    total: int
    page: int
    limit: int


class StatusStats(BaseModel):
    """按状态分组的统计"""

    status: str
    count: int
    avg_priority: float
