"""TaskService -- 任务生命周期业务逻辑

创建流程（单个 unit of work 内）：
1. 批量校验指派人存在
2. 校验客户存在
3. 生成任务编号（读取最近任务，事务内串行）
4. 写入任务 + 指派关系并提交

所有操作显式接收当前用户 actor，不依赖请求级全局状态。
"""

from typing import Any

import structlog
from tasklane.core.access import can_edit, can_mutate_status, can_view, require_admin
from tasklane.core.codes import next_task_code
from tasklane.core.errors import (
    AuthorizationError,
    InternalError,
    NotFoundError,
    TaskLaneError,
    ValidationError,
)
from tasklane.core.models import (
    StatusStats,
    Task,
    TaskDraft,
    TaskPage,
    TaskPatch,
    TaskQuery,
    TaskStatus,
    TaskView,
    User,
    parse_status,
)
from tasklane.core.store import StoreGroup, unit_of_work
from tasklane.core.timeutil import utc_now
from ulid import ULID

log = structlog.get_logger()


def _require_status(value: str | None) -> TaskStatus:
    """Raises:
    ValidationError: 状态缺失或不在 todo / in-progress / completed 之内
    """
    if value is None or not str(value).strip():
        raise ValidationError("Status is required")
    status = parse_status(str(value).strip())
    if status is None:
        raise ValidationError(
            "Invalid status value",
            details=[{"field": "status", "value": value, "allowed": [s.value for s in TaskStatus]}],
        )
    return status


def project_task(view: TaskView, fields: list[str] | None) -> dict[str, Any]:
    """按字段选择投影任务；fields 为 None 时返回全部字段"""
    data = view.model_dump(mode="json")
    if fields is None:
        return data
    return {name: data[name] for name in fields if name in data}


class TaskService:
    """任务业务服务"""

    def __init__(self, store_group: StoreGroup) -> None:
        self._stores = store_group

    async def create_task(self, actor: User, draft: TaskDraft) -> TaskView:
        """创建任务（原子）

        Args:
            actor: 当前用户，成为任务创建者
            draft: 已在边界归一化的输入

        Returns:
            展开引用后的任务

        Raises:
            ValidationError: 无指派人、指派人不存在、客户不存在
            ConflictError: 编号唯一约束冲突
            InternalError: 事务内的意外失败（已回滚）
        """
        if not draft.assigned_to:
            raise ValidationError("At least one assignee is required")

        try:
            async with unit_of_work(self._stores) as stores:
                found = await stores.user_store.get_users_by_ids(draft.assigned_to)
                found_ids = {u.user_id for u in found}
                missing = [uid for uid in draft.assigned_to if uid not in found_ids]
                if missing:
                    raise ValidationError(
                        f"Assigned user(s) not found: {', '.join(missing)}",
                        details=[{"field": "assigned_to", "missing": missing}],
                    )

                if await stores.client_store.get_client(draft.client_id) is None:
                    raise ValidationError(f"Client with id {draft.client_id} does not exist")

                now = utc_now()
                task = Task(
                    task_id=str(ULID()),
                    task_code=await next_task_code(stores.task_store),
                    title=draft.title,
                    description=draft.description,
                    status=draft.status,
                    priority=draft.priority,
                    due_date=draft.due_date,
                    created_by=actor.user_id,
                    assigned_to=draft.assigned_to,
                    client_id=draft.client_id,
                    labels=draft.labels,
                    created_at=now,
                    updated_at=now,
                )
                await stores.task_store.create_task(task)
        except TaskLaneError as e:
            log.info(
                "task_create_rolled_back",
                actor_id=actor.user_id,
                error_code=e.code,
                reason=e.message,
            )
            raise
        except Exception as e:
            log.error(
                "task_create_failed",
                actor_id=actor.user_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise InternalError("Task creation failed") from e

        log.info(
            "task_created",
            task_id=task.task_id,
            task_code=task.task_code,
            actor_id=actor.user_id,
            assignee_count=len(task.assigned_to),
        )
        return await self._expand(task)

    async def get_task(self, actor: User, task_id: str) -> TaskView:
        """查询单个任务：创建者、指派人或管理员可见

        Raises:
            NotFoundError: 任务不存在
            AuthorizationError: 无查看权限
        """
        task = await self._get_or_raise(task_id)
        if not can_view(task, actor):
            raise AuthorizationError("You are not allowed to view this task")
        return await self._expand(task)

    async def update_status(
        self,
        actor: User,
        task_id: str,
        status: str | None,
    ) -> TaskView:
        """变更状态：仅写 status 列

        校验顺序：存在性 -> 权限 -> 状态值。

        Raises:
            NotFoundError: 任务不存在
            AuthorizationError: 既非创建者也非指派人
            ValidationError: 状态缺失或非法
        """
        async with unit_of_work(self._stores) as stores:
            task = await self._get_or_raise(task_id)
            if not can_mutate_status(task, actor):
                raise AuthorizationError("Only the creator or an assignee can change task status")
            new_status = _require_status(status)
            await stores.task_store.update_task_status(task_id, new_status, utc_now())

        log.info(
            "task_status_updated",
            task_id=task_id,
            actor_id=actor.user_id,
            from_status=task.status.value,
            to_status=new_status.value,
        )
        return await self._expand(await self._get_or_raise(task_id))

    async def update_task(self, actor: User, task_id: str, patch: TaskPatch) -> TaskView:
        """部分字段更新：创建者或管理员

        指派人不做批量存在性校验，未知 user_id 由外键拒绝（ConflictError）。

        Raises:
            ValidationError: 指派人列表为空
            NotFoundError: 任务不存在
            AuthorizationError: 无编辑权限
        """
        changes = patch.changes()
        if "assigned_to" in changes and not changes["assigned_to"]:
            raise ValidationError("At least one assignee is required")

        async with unit_of_work(self._stores) as stores:
            task = await self._get_or_raise(task_id)
            if not can_edit(task, actor):
                raise AuthorizationError("Only the creator or an admin can edit this task")
            await stores.task_store.update_task(task_id, changes, utc_now())

        log.info(
            "task_updated",
            task_id=task_id,
            actor_id=actor.user_id,
            fields=sorted(changes),
        )
        return await self._expand(await self._get_or_raise(task_id))

    async def delete_task(self, actor: User, task_id: str) -> None:
        """删除任务：创建者或管理员

        Raises:
            NotFoundError: 任务不存在
            AuthorizationError: 无删除权限
        """
        async with unit_of_work(self._stores) as stores:
            task = await self._get_or_raise(task_id)
            if not can_edit(task, actor):
                raise AuthorizationError("Only the creator or an admin can delete this task")
            await stores.task_store.delete_task(task_id)

        log.info("task_deleted", task_id=task_id, task_code=task.task_code, actor_id=actor.user_id)

    async def list_tasks(
        self,
        actor: User,
        user_id: str | None,
        query: TaskQuery,
    ) -> TaskPage:
        """列出 user_id 创建或被指派的任务

        Raises:
            ValidationError: 缺少 user_id、排序或字段选择非法
            AuthorizationError: 非管理员查询他人的任务
        """
        if not user_id or not user_id.strip():
            raise ValidationError("User ID is required")
        user_id = user_id.strip()
        if user_id != actor.user_id and not actor.is_admin:
            raise AuthorizationError("You can only list your own tasks")

        sort_keys = query.sort_keys()
        # 字段选择在查询前校验
        query.selected_fields()
        filters = {
            "status": query.status,
            "priority": query.priority,
            "client_id": query.client_id,
        }

        store = self._stores.task_store
        tasks = await store.list_tasks(user_id, filters, sort_keys, query.offset, query.limit)
        total = await store.count_tasks(user_id, filters)
        return TaskPage(
            tasks=await store.expand_tasks(tasks),
            total=total,
            page=query.page,
            limit=query.limit,
        )

    async def list_assigned_to_me(
        self,
        actor: User,
        status: str | None = None,
    ) -> list[TaskView]:
        """当前用户被指派的任务，按创建时间倒序"""
        wanted = _require_status(status) if status else None
        tasks = await self._stores.task_store.list_assigned_tasks(actor.user_id, wanted)
        return await self._stores.task_store.expand_tasks(tasks)

    async def get_stats(self, actor: User) -> list[StatusStats]:
        """按状态统计数量与平均优先级分值（管理员）"""
        require_admin(actor)
        return await self._stores.task_store.aggregate_by_status()

    async def _get_or_raise(self, task_id: str) -> Task:
        task = await self._stores.task_store.get_task(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task

    async def _expand(self, task: Task) -> TaskView:
        return (await self._stores.task_store.expand_tasks([task]))[0]
