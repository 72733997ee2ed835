"""TaskStore 测试 -- 可见范围、筛选排序分页、统计、引用展开"""

from datetime import UTC, datetime, timedelta

import pytest
from tasklane.core.models import TaskPriority, TaskStatus
from tasklane.core.store import unit_of_work

NO_FILTERS = {"status": None, "priority": None, "client_id": None}
NEWEST_FIRST = [("created_at", True)]


@pytest.fixture
async def world(seeder):
    """A/B/C/D 四个用户 + A 的客户 client-1"""
    users = await seeder.users("Ann", "Bob", "Cat", "Dan")
    await seeder.client("client-1", "user-ann")
    return users


class TestListScoping:
    async def test_creator_or_assignee(self, store_group, seeder, world):
        t1 = await seeder.task("user-ann", ["user-bob"])
        t2 = await seeder.task("user-cat", ["user-dan"])
        store = store_group.task_store

        as_ann = await store.list_tasks("user-ann", NO_FILTERS, NEWEST_FIRST, 0, 10)
        as_dan = await store.list_tasks("user-dan", NO_FILTERS, NEWEST_FIRST, 0, 10)
        as_bob = await store.list_tasks("user-bob", NO_FILTERS, NEWEST_FIRST, 0, 10)

        assert [t.task_id for t in as_ann] == [t1.task_id]
        assert [t.task_id for t in as_dan] == [t2.task_id]
        assert [t.task_id for t in as_bob] == [t1.task_id]

    async def test_creator_who_is_also_assignee_listed_once(self, store_group, seeder, world):
        await seeder.task("user-ann", ["user-ann", "user-bob"])
        tasks = await store_group.task_store.list_tasks(
            "user-ann", NO_FILTERS, NEWEST_FIRST, 0, 10
        )
        assert len(tasks) == 1

    async def test_equality_filters(self, store_group, seeder, world):
        await seeder.task("user-ann", ["user-ann"], status=TaskStatus.COMPLETED)
        wanted = await seeder.task("user-ann", ["user-ann"], priority=TaskPriority.HIGH)
        await seeder.task("user-ann", ["user-ann"], priority=TaskPriority.LOW)

        filters = {**NO_FILTERS, "status": TaskStatus.TODO, "priority": TaskPriority.HIGH}
        tasks = await store_group.task_store.list_tasks("user-ann", filters, NEWEST_FIRST, 0, 10)
        assert [t.task_id for t in tasks] == [wanted.task_id]
        assert await store_group.task_store.count_tasks("user-ann", filters) == 1


class TestPagination:
    async def test_total_independent_of_page(self, store_group, seeder, world):
        for _ in range(5):
            await seeder.task("user-ann", ["user-bob"])
        store = store_group.task_store

        page = await store.list_tasks("user-ann", NO_FILTERS, NEWEST_FIRST, 0, 1)
        assert len(page) == 1
        assert await store.count_tasks("user-ann", NO_FILTERS) == 5

    async def test_offset(self, store_group, seeder, world):
        created = [await seeder.task("user-ann", ["user-ann"]) for _ in range(3)]
        page = await store_group.task_store.list_tasks(
            "user-ann", NO_FILTERS, NEWEST_FIRST, 2, 10
        )
        assert [t.task_id for t in page] == [created[0].task_id]


class TestSorting:
    async def test_priority_by_score(self, store_group, seeder, world):
        low = await seeder.task("user-ann", ["user-ann"], priority=TaskPriority.LOW)
        high = await seeder.task("user-ann", ["user-ann"], priority=TaskPriority.HIGH)
        medium = await seeder.task("user-ann", ["user-ann"], priority=TaskPriority.MEDIUM)

        tasks = await store_group.task_store.list_tasks(
            "user-ann", NO_FILTERS, [("priority", True)], 0, 10
        )
        assert [t.task_id for t in tasks] == [high.task_id, medium.task_id, low.task_id]

    async def test_title_case_insensitive(self, store_group, seeder, world):
        b = await seeder.task("user-ann", ["user-ann"], title="beta")
        a = await seeder.task("user-ann", ["user-ann"], title="Alpha")

        tasks = await store_group.task_store.list_tasks(
            "user-ann", NO_FILTERS, [("title", False)], 0, 10
        )
        assert [t.task_id for t in tasks] == [a.task_id, b.task_id]


class TestAssignees:
    async def test_order_preserved(self, store_group, seeder, world):
        task = await seeder.task("user-ann", ["user-dan", "user-bob", "user-cat"])
        stored = await store_group.task_store.get_task(task.task_id)
        assert stored.assigned_to == ["user-dan", "user-bob", "user-cat"]

    async def test_update_replaces_assignees(self, store_group, seeder, world):
        task = await seeder.task("user-ann", ["user-bob"])
        async with unit_of_work(store_group) as stores:
            found = await stores.task_store.update_task(
                task.task_id,
                {"assigned_to": ["user-cat"], "labels": ["ops"], "priority": TaskPriority.HIGH},
                datetime.now(UTC),
            )
        assert found
        stored = await store_group.task_store.get_task(task.task_id)
        assert stored.assigned_to == ["user-cat"]
        assert stored.labels == ["ops"]
        assert stored.priority == TaskPriority.HIGH
        assert stored.task_code == task.task_code

    async def test_assigned_listing(self, store_group, seeder, world):
        mine = await seeder.task("user-ann", ["user-bob"])
        await seeder.task("user-bob", ["user-ann"])
        tasks = await store_group.task_store.list_assigned_tasks("user-bob")
        assert [t.task_id for t in tasks] == [mine.task_id]

    async def test_delete_cascades_assignees(self, store_group, seeder, world):
        task = await seeder.task("user-ann", ["user-bob"])
        async with unit_of_work(store_group) as stores:
            assert await stores.task_store.delete_task(task.task_id)

        cursor = await store_group.conn.execute("SELECT COUNT(*) FROM task_assignees")
        assert (await cursor.fetchone())[0] == 0


class TestStatusUpdate:
    async def test_narrow_write(self, store_group, seeder, world):
        task = await seeder.task("user-ann", ["user-bob"], title="Keep me")
        async with unit_of_work(store_group) as stores:
            await stores.task_store.update_task_status(
                task.task_id, TaskStatus.IN_PROGRESS, datetime.now(UTC)
            )
        stored = await store_group.task_store.get_task(task.task_id)
        assert stored.status == TaskStatus.IN_PROGRESS
        assert stored.title == "Keep me"
        assert stored.updated_at > task.updated_at

    async def test_missing_task(self, store_group):
        async with unit_of_work(store_group) as stores:
            assert not await stores.task_store.update_task_status(
                "nope", TaskStatus.COMPLETED, datetime.now(UTC)
            )


class TestAggregate:
    async def test_counts_and_average_priority(self, store_group, seeder, world):
        await seeder.task("user-ann", ["user-ann"], status=TaskStatus.TODO, priority=TaskPriority.HIGH)
        await seeder.task("user-ann", ["user-ann"], status=TaskStatus.TODO, priority=TaskPriority.LOW)
        await seeder.task(
            "user-ann", ["user-ann"], status=TaskStatus.COMPLETED, priority=TaskPriority.MEDIUM
        )

        stats = await store_group.task_store.aggregate_by_status()
        assert [(s.status, s.count, s.avg_priority) for s in stats] == [
            ("completed", 1, 2.0),
            ("todo", 2, 2.0),
        ]

    async def test_empty(self, store_group):
        assert await store_group.task_store.aggregate_by_status() == []


class TestExpand:
    async def test_summaries(self, store_group, seeder, world):
        task = await seeder.task("user-ann", ["user-bob", "user-cat"])
        [view] = await store_group.task_store.expand_tasks([task])

        assert view.created_by.name == "Ann"
        assert view.created_by.email == "ann@example.com"
        assert [u.user_id for u in view.assigned_to] == ["user-bob", "user-cat"]
        assert view.client.client_id == "client-1"
        assert view.client.name == "Acme"

    async def test_overdue_is_derived(self, store_group, seeder, world):
        past = datetime.now(UTC) - timedelta(days=1)
        late = await seeder.task("user-ann", ["user-ann"], due_date=past)
        done = await seeder.task(
            "user-ann", ["user-ann"], due_date=past, status=TaskStatus.COMPLETED
        )
        future = await seeder.task(
            "user-ann", ["user-ann"], due_date=datetime.now(UTC) + timedelta(days=1)
        )

        views = await store_group.task_store.expand_tasks([late, done, future])
        assert [v.is_overdue for v in views] == [True, False, False]

        # 派生字段不会改写存储状态
        stored = await store_group.task_store.get_task(late.task_id)
        assert stored.status == TaskStatus.TODO
