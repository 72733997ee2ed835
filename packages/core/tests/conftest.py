"""packages/core 测试配置 -- 核心层 fixture

seeded 提供直接写库的用户 / 客户 / 任务构造器，绕过服务层。
"""

from datetime import UTC, datetime, timedelta

import pytest
from tasklane.core.models import (
    Client,
    Task,
    TaskPriority,
    TaskStatus,
    UserRecord,
    UserRole,
)
from tasklane.core.store import StoreGroup, unit_of_work

BASE_TIME = datetime(2026, 1, 1, tzinfo=UTC)


class Seeder:
    """测试数据构造器：每个任务的创建时间递增一分钟"""

    def __init__(self, stores: StoreGroup) -> None:
        self.stores = stores
        self._n = 0

    async def users(self, *names: str, admin: tuple[str, ...] = ()) -> dict[str, UserRecord]:
        users = {}
        async with unit_of_work(self.stores) as stores:
            for name in names:
                user = UserRecord(
                    user_id=f"user-{name.lower()}",
                    name=name,
                    email=f"{name.lower()}@example.com",
                    role=UserRole.ADMIN if name in admin else UserRole.USER,
                    created_at=BASE_TIME,
                    updated_at=BASE_TIME,
                    password_hash="pbkdf2_sha256$1000$salt$hash",
                )
                await stores.user_store.create_user(user)
                users[name] = user
        return users

    async def client(self, client_id: str, owner: str, name: str = "Acme", **fields) -> Client:
        client = Client(
            client_id=client_id,
            name=name,
            created_by=owner,
            created_at=BASE_TIME,
            updated_at=BASE_TIME,
            **fields,
        )
        async with unit_of_work(self.stores) as stores:
            await stores.client_store.create_client(client)
        return client

    def build_task(
        self,
        creator: str,
        assignees: list[str],
        client_id: str = "client-1",
        *,
        status: TaskStatus = TaskStatus.TODO,
        priority: TaskPriority = TaskPriority.MEDIUM,
        title: str | None = None,
        code: str | None = None,
        due_date: datetime | None = None,
        created_at: datetime | None = None,
    ) -> Task:
        self._n += 1
        created = created_at or BASE_TIME + timedelta(minutes=self._n)
        return Task(
            task_id=f"task-{self._n:04d}",
            task_code=code or f"T{self._n:04d}",
            title=title or f"Task {self._n}",
            status=status,
            priority=priority,
            due_date=due_date,
            created_by=creator,
            assigned_to=assignees,
            client_id=client_id,
            created_at=created,
            updated_at=created,
        )

    async def task(self, creator: str, assignees: list[str], **kwargs) -> Task:
        task = self.build_task(creator, assignees, **kwargs)
        async with unit_of_work(self.stores) as stores:
            await stores.task_store.create_task(task)
        return task


@pytest.fixture
def seeder(store_group) -> Seeder:
    return Seeder(store_group)
