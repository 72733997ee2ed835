"""Store Protocol 接口定义

定义 UserStore、ClientStore、TaskStore 的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
"""

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any, Protocol

from ..models.client import Client
from ..models.enums import TaskStatus
from ..models.query import StatusStats
from ..models.task import Task, TaskView
from ..models.user import User, UserRecord


class UserStore(Protocol):
    """用户 + 会话存储接口"""

    async def create_user(self, user: UserRecord) -> None: ...

    async def get_user(self, user_id: str) -> User | None: ...

    async def get_user_by_email(self, email: str) -> UserRecord | None: ...

    async def get_users_by_ids(self, user_ids: Iterable[str]) -> list[User]: ...

    async def get_session_user(self, token_hash: str, now: datetime) -> User | None:
        """解析会话令牌（哈希）对应的用户"""
        ...


class ClientStore(Protocol):
    """客户存储接口"""

    async def create_client(self, client: Client) -> None: ...

    async def get_client(self, client_id: str) -> Client | None: ...

    async def list_clients(self, created_by: str | None = None) -> list[Client]: ...

    async def search_clients(self, query: str, created_by: str | None = None) -> list[Client]: ...


class TaskStore(Protocol):
    """任务存储接口

    写方法不提交事务；编号分配依赖 get_latest_task_code 与 create_task
    处于同一事务。
    """

    async def create_task(self, task: Task) -> None:
        """创建任务记录"""
        ...

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务"""
        ...

    async def get_latest_task_code(self) -> str | None:
        """最近创建的任务编号"""
        ...

    async def list_tasks(
        self,
        user_id: str,
        filters: dict[str, Any],
        sort_keys: Sequence[tuple[str, bool]],
        offset: int,
        limit: int,
    ) -> list[Task]:
        """查询 user_id 可见的任务"""
        ...

    async def count_tasks(self, user_id: str, filters: dict[str, Any]) -> int: ...

    async def update_task_status(
        self,
        task_id: str,
        status: TaskStatus,
        updated_at: datetime,
    ) -> bool:
        """仅更新状态"""
        ...

    async def aggregate_by_status(self) -> list[StatusStats]: ...

    async def expand_tasks(self, tasks: Sequence[Task]) -> list[TaskView]: ...
