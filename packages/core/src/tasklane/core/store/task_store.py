"""TaskStore SQLite 实现

tasks 表保存任务本体，task_assignees 表保存有序指派关系。
写方法不自动提交事务，需由调用方（unit_of_work）管理。
"""

import json
from collections.abc import Sequence
from datetime import datetime
from typing import Any

import aiosqlite

from ..models.client import ClientSummary
from ..models.enums import PRIORITY_SCORES, TaskPriority, TaskStatus
from ..models.query import StatusStats
from ..models.task import Task, TaskView
from ..models.user import UserSummary
from ..timeutil import from_iso, to_iso, utc_now

_TASK_COLUMNS = (
    "t.task_id, t.task_code, t.title, t.description, t.status, t.priority, t.due_date, "
    "t.created_by, t.client_id, t.labels, t.created_at, t.updated_at"
)

# 优先级分值表达式，未知优先级计 0
_PRIORITY_SCORE_SQL = (
    "CASE t.priority "
    + " ".join(f"WHEN '{p.value}' THEN {score}" for p, score in PRIORITY_SCORES.items())
    + " ELSE 0 END"
)

# 排序字段 -> SQL 表达式
_SORT_SQL: dict[str, str] = {
    "created_at": "t.created_at",
    "updated_at": "t.updated_at",
    "title": "t.title COLLATE NOCASE",
    "status": "t.status",
    "priority": _PRIORITY_SCORE_SQL,
    "due_date": "t.due_date",
    "task_code": "t.task_code",
}

# 可直接写入 tasks 表的列
_UPDATABLE_COLUMNS = frozenset({"title", "description", "status", "priority", "due_date", "labels"})


def _scope_clause(user_id: str) -> tuple[str, list[Any]]:
    """可见范围：创建者或指派人之一"""
    return (
        "(t.created_by = ? OR EXISTS ("
        "SELECT 1 FROM task_assignees a WHERE a.task_id = t.task_id AND a.user_id = ?))",
        [user_id, user_id],
    )


def _filter_clause(user_id: str, filters: dict[str, Any]) -> tuple[str, list[Any]]:
    scope_sql, params = _scope_clause(user_id)
    clauses = [scope_sql]
    for column in ("status", "priority", "client_id"):
        value = filters.get(column)
        if value is not None:
            clauses.append(f"t.{column} = ?")
            params.append(str(value))
    return " AND ".join(clauses), params


def _order_clause(sort_keys: Sequence[tuple[str, bool]]) -> str:
    parts = [f"{_SORT_SQL[name]} {'DESC' if desc else 'ASC'}" for name, desc in sort_keys]
    # 稳定排序：插入顺序兜底
    parts.append("t.rowid DESC")
    return ", ".join(parts)


class SqliteTaskStore:
    """TaskStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_task(self, task: Task) -> None:
        """创建任务记录及其指派关系"""
        await self._conn.execute(
            """
            INSERT INTO tasks (task_id, task_code, title, description, status, priority,
                               due_date, created_by, client_id, labels, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                task.task_id,
                task.task_code,
                task.title,
                task.description,
                task.status.value,
                task.priority.value,
                to_iso(task.due_date) if task.due_date else None,
                task.created_by,
                task.client_id,
                json.dumps(task.labels, ensure_ascii=False),
                to_iso(task.created_at),
                to_iso(task.updated_at),
            ),
        )
        await self._replace_assignees(task.task_id, task.assigned_to)

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务"""
        cursor = await self._conn.execute(
            f"SELECT {_TASK_COLUMNS} FROM tasks t WHERE t.task_id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return (await self._rows_to_tasks([row]))[0]

    async def get_latest_task_code(self) -> str | None:
        """最近创建的任务的编号（创建时间倒序，插入顺序兜底）"""
        cursor = await self._conn.execute(
            "SELECT task_code FROM tasks ORDER BY created_at DESC, rowid DESC LIMIT 1"
        )
        row = await cursor.fetchone()
        return row[0] if row else None

    async def list_tasks(
        self,
        user_id: str,
        filters: dict[str, Any],
        sort_keys: Sequence[tuple[str, bool]],
        offset: int,
        limit: int,
    ) -> list[Task]:
        """查询 user_id 可见的任务（创建者或指派人），叠加等值筛选后分页"""
        where, params = _filter_clause(user_id, filters)
        cursor = await self._conn.execute(
            f"SELECT {_TASK_COLUMNS} FROM tasks t WHERE {where} "
            f"ORDER BY {_order_clause(sort_keys)} LIMIT ? OFFSET ?",
            (*params, limit, offset),
        )
        rows = await cursor.fetchall()
        return await self._rows_to_tasks(rows)

    async def count_tasks(self, user_id: str, filters: dict[str, Any]) -> int:
        """与 list_tasks 相同的筛选条件下的总数（不受分页影响）"""
        where, params = _filter_clause(user_id, filters)
        cursor = await self._conn.execute(
            f"SELECT COUNT(*) FROM tasks t WHERE {where}",
            params,
        )
        row = await cursor.fetchone()
        return row[0] if row else 0

    async def list_assigned_tasks(
        self,
        user_id: str,
        status: TaskStatus | None = None,
    ) -> list[Task]:
        """查询指派给 user_id 的任务，按创建时间倒序"""
        sql = (
            f"SELECT {_TASK_COLUMNS} FROM tasks t "
            "JOIN task_assignees a ON a.task_id = t.task_id WHERE a.user_id = ?"
        )
        params: list[Any] = [user_id]
        if status is not None:
            sql += " AND t.status = ?"
            params.append(status.value)
        cursor = await self._conn.execute(
            sql + " ORDER BY t.created_at DESC, t.rowid DESC",
            params,
        )
        rows = await cursor.fetchall()
        return await self._rows_to_tasks(rows)

    async def update_task_status(
        self,
        task_id: str,
        status: TaskStatus,
        updated_at: datetime,
    ) -> bool:
        """只写 status 列，不做整行校验"""
        cursor = await self._conn.execute(
            "UPDATE tasks SET status = ?, updated_at = ? WHERE task_id = ?",
            (status.value, to_iso(updated_at), task_id),
        )
        return cursor.rowcount > 0

    async def update_task(
        self,
        task_id: str,
        changes: dict[str, Any],
        updated_at: datetime,
    ) -> bool:
        """按字段更新任务；assigned_to 整体替换

        Returns:
            True 如果任务存在
        """
        assignments = ["updated_at = ?"]
        params: list[Any] = [to_iso(updated_at)]
        for column, value in changes.items():
            if column not in _UPDATABLE_COLUMNS:
                continue
            if column == "labels":
                value = json.dumps(value, ensure_ascii=False)
            elif column == "due_date":
                value = to_iso(value) if value is not None else None
            elif isinstance(value, TaskStatus | TaskPriority):
                value = value.value
            assignments.append(f"{column} = ?")
            params.append(value)

        cursor = await self._conn.execute(
            f"UPDATE tasks SET {', '.join(assignments)} WHERE task_id = ?",
            (*params, task_id),
        )
        if cursor.rowcount == 0:
            return False

        if "assigned_to" in changes:
            await self._replace_assignees(task_id, changes["assigned_to"])
        return True

    async def delete_task(self, task_id: str) -> bool:
        """删除任务（指派关系级联删除）"""
        cursor = await self._conn.execute(
            "DELETE FROM tasks WHERE task_id = ?",
            (task_id,),
        )
        return cursor.rowcount > 0

    async def aggregate_by_status(self) -> list[StatusStats]:
        """按状态分组：数量 + 平均优先级分值，按状态名排序"""
        cursor = await self._conn.execute(
            f"""
            SELECT t.status, COUNT(*), AVG({_PRIORITY_SCORE_SQL})
            FROM tasks t
            GROUP BY t.status
            ORDER BY t.status ASC
            """
        )
        rows = await cursor.fetchall()
        return [
            StatusStats(status=row[0], count=row[1], avg_priority=float(row[2] or 0))
            for row in rows
        ]

    async def list_ids_in_creation_order(self) -> list[str]:
        cursor = await self._conn.execute(
            "SELECT task_id FROM tasks ORDER BY created_at ASC, rowid ASC"
        )
        rows = await cursor.fetchall()
        return [row[0] for row in rows]

    async def set_task_code(self, task_id: str, task_code: str) -> None:
        await self._conn.execute(
            "UPDATE tasks SET task_code = ? WHERE task_id = ?",
            (task_code, task_id),
        )

    async def count_references_to_user(self, user_id: str) -> int:
        """用户被任务（创建者/指派人）和客户引用的次数"""
        cursor = await self._conn.execute(
            """
            SELECT
                (SELECT COUNT(*) FROM tasks WHERE created_by = ?)
              + (SELECT COUNT(*) FROM task_assignees WHERE user_id = ?)
              + (SELECT COUNT(*) FROM clients WHERE created_by = ?)
            """,
            (user_id, user_id, user_id),
        )
        row = await cursor.fetchone()
        return row[0] if row else 0

    async def count_tasks_for_client(self, client_id: str) -> int:
        cursor = await self._conn.execute(
            "SELECT COUNT(*) FROM tasks WHERE client_id = ?",
            (client_id,),
        )
        row = await cursor.fetchone()
        return row[0] if row else 0

    async def expand_tasks(self, tasks: Sequence[Task]) -> list[TaskView]:
        """展开引用：creator / assignees -> 用户摘要，client -> 客户摘要

        用户和客户各一次批量查询。
        """
        if not tasks:
            return []

        user_ids = {t.created_by for t in tasks}
        for t in tasks:
            user_ids.update(t.assigned_to)
        users = await self._fetch_user_summaries(user_ids)
        clients = await self._fetch_client_summaries({t.client_id for t in tasks})

        now = utc_now()
        views = []
        for t in tasks:
            views.append(
                TaskView(
                    task_id=t.task_id,
                    task_code=t.task_code,
                    title=t.title,
                    description=t.description,
                    status=t.status,
                    priority=t.priority,
                    due_date=t.due_date,
                    is_overdue=(
                        t.due_date is not None
                        and t.due_date < now
                        and t.status != TaskStatus.COMPLETED
                    ),
                    created_by=users.get(t.created_by) or _missing_user(t.created_by),
                    assigned_to=[
                        users.get(uid) or _missing_user(uid) for uid in t.assigned_to
                    ],
                    client=clients.get(t.client_id)
                    or ClientSummary(client_id=t.client_id, name=""),
                    labels=t.labels,
                    created_at=t.created_at,
                    updated_at=t.updated_at,
                )
            )
        return views

    async def _replace_assignees(self, task_id: str, user_ids: Sequence[str]) -> None:
        await self._conn.execute(
            "DELETE FROM task_assignees WHERE task_id = ?",
            (task_id,),
        )
        await self._conn.executemany(
            "INSERT INTO task_assignees (task_id, user_id, position) VALUES (?, ?, ?)",
            [(task_id, uid, pos) for pos, uid in enumerate(user_ids)],
        )

    async def _fetch_assignees(self, task_ids: Sequence[str]) -> dict[str, list[str]]:
        assignees: dict[str, list[str]] = {tid: [] for tid in task_ids}
        if not task_ids:
            return assignees
        placeholders = ", ".join("?" for _ in task_ids)
        cursor = await self._conn.execute(
            f"SELECT task_id, user_id FROM task_assignees WHERE task_id IN ({placeholders}) "
            "ORDER BY task_id, position",
            list(task_ids),
        )
        for row in await cursor.fetchall():
            assignees[row[0]].append(row[1])
        return assignees

    async def _fetch_user_summaries(self, user_ids: set[str]) -> dict[str, UserSummary]:
        if not user_ids:
            return {}
        ids = list(user_ids)
        placeholders = ", ".join("?" for _ in ids)
        cursor = await self._conn.execute(
            f"SELECT user_id, name, email FROM users WHERE user_id IN ({placeholders})",
            ids,
        )
        return {
            row[0]: UserSummary(user_id=row[0], name=row[1], email=row[2])
            for row in await cursor.fetchall()
        }

    async def _fetch_client_summaries(self, client_ids: set[str]) -> dict[str, ClientSummary]:
        if not client_ids:
            return {}
        ids = list(client_ids)
        placeholders = ", ".join("?" for _ in ids)
        cursor = await self._conn.execute(
            f"SELECT client_id, name FROM clients WHERE client_id IN ({placeholders})",
            ids,
        )
        return {
            row[0]: ClientSummary(client_id=row[0], name=row[1])
            for row in await cursor.fetchall()
        }

    async def _rows_to_tasks(self, rows: Sequence[aiosqlite.Row]) -> list[Task]:
        """将数据库行转换为 Task 模型（批量补齐指派人）"""
        assignees = await self._fetch_assignees([row[0] for row in rows])
        return [
            Task(
                task_id=row[0],
                task_code=row[1],
                title=row[2],
                description=row[3],
                status=TaskStatus(row[4]),
                priority=TaskPriority(row[5]),
                due_date=from_iso(row[6]) if row[6] else None,
                created_by=row[7],
                client_id=row[8],
                labels=json.loads(row[9]) if row[9] else [],
                assigned_to=assignees.get(row[0], []),
                created_at=from_iso(row[10]),
                updated_at=from_iso(row[11]),
            )
            for row in rows
        ]


def _missing_user(user_id: str) -> UserSummary:
    """外键保证引用存在；仅防御历史数据"""
    return UserSummary(user_id=user_id, name="", email="")
