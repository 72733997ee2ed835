"""Task Domain Model

Task 是持久化形态（引用保存为 ID）；TaskView 是读取形态，
creator / assignees / client 已展开为摘要。
task_code 在创建时分配一次，之后不再改变。
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from ..config import DESCRIPTION_MAX_LENGTH, TITLE_MAX_LENGTH
from .client import ClientSummary
from .enums import TaskPriority, TaskStatus
from .refs import normalize_user_refs
from .user import UserSummary


def _as_utc(value: datetime | None) -> datetime | None:
    """无时区的时间按 UTC 处理"""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _normalize_labels(value: Any) -> Any:
    if isinstance(value, list):
        return [v.strip() for v in value if isinstance(v, str) and v.strip()]
    return value


def _normalize_assignees(value: Any) -> list[str]:
    try:
        return normalize_user_refs(value)
    except ValueError as e:
        # pydantic.ValidationError 继承自 ValueError，这里转为字段级错误
        raise ValueError(f"assigned_to must be a user id, a user object or a list of them: {e}") from None


class Task(BaseModel):
    """Task 数据模型（持久化形态）"""

    task_id: str = Field(description="唯一标识，ULID 格式")
    task_code: str = Field(description="可读编号，T#### 格式")
    title: str = Field(description="任务标题")
    description: str | None = Field(default=None, description="任务描述")
    status: TaskStatus = Field(default=TaskStatus.TODO, description="当前状态")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="优先级")
    due_date: datetime | None = Field(default=None, description="截止时间")
    created_by: str = Field(description="创建者 user_id")
    assigned_to: list[str] = Field(description="指派人 user_id 列表，非空")
    client_id: str = Field(description="关联客户 ID")
    labels: list[str] = Field(default_factory=list, description="标签")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")


class TaskView(BaseModel):
    """Task 读取形态 -- 引用已展开"""

    task_id: str
    task_code: str
    title: str
    description: str | None = None
    status: TaskStatus
    priority: TaskPriority
    due_date: datetime | None = None
    is_overdue: bool = Field(default=False, description="派生字段，不持久化")
    created_by: UserSummary
    assigned_to: list[UserSummary]
    client: ClientSummary
    labels: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class TaskDraft(BaseModel):
    """创建任务的输入

    assigned_to 接受单个引用或引用列表，在此处一次性归一化为 user_id 列表。
    创建者不从请求体读取，由调用方显式传入。
    """

    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: datetime | None = None
    client_id: str = Field(min_length=1)
    assigned_to: list[str] = Field(default_factory=list)
    labels: list[str] = Field(default_factory=list)

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("assigned_to", mode="before")
    @classmethod
    def resolve_assignees(cls, value: Any) -> list[str]:
        return _normalize_assignees(value)

    @field_validator("labels", mode="before")
    @classmethod
    def strip_labels(cls, value: Any) -> Any:
        return _normalize_labels(value)

    @field_validator("due_date", mode="after")
    @classmethod
    def due_date_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)


class TaskPatch(BaseModel):
    """全量更新的输入 -- 仅 model_fields_set 中的字段会被写入"""

    title: str | None = Field(default=None, min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: datetime | None = None
    assigned_to: list[str] | None = None
    labels: list[str] | None = None

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("assigned_to", mode="before")
    @classmethod
    def resolve_assignees(cls, value: Any) -> list[str] | None:
        if value is None:
            return None
        return _normalize_assignees(value)

    @field_validator("labels", mode="before")
    @classmethod
    def strip_labels(cls, value: Any) -> Any:
        return _normalize_labels(value)

    @field_validator("due_date", mode="after")
    @classmethod
    def due_date_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)

    def changes(self) -> dict[str, Any]:
        """显式提交的字段。title / status / priority / labels 不允许置空"""
        data = self.model_dump(exclude_unset=True)
        for key in ("title", "status", "priority", "labels"):
            if key in data and data[key] is None:
                data.pop(key)
        return data
