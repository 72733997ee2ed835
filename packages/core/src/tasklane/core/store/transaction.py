"""写事务封装 -- 共享连接上的串行化写入

所有写操作在同一个 aiosqlite 连接上执行，需要：
1. 进程内写锁，避免并发协程交错同一事务
2. BEGIN IMMEDIATE，提前拿到 SQLite 写锁（多进程时同样串行）

读-改-写（如任务编号分配）必须在事务内完成读取。
"""

import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog

from ..errors import ConflictError

if TYPE_CHECKING:
    from . import StoreGroup

log = structlog.get_logger()


@asynccontextmanager
async def unit_of_work(stores: "StoreGroup") -> AsyncIterator["StoreGroup"]:
    """在写锁 + 显式事务内执行一组写操作

    正常退出时提交；任何异常回滚后继续抛出。
    外键 / 唯一约束冲突统一转换为 ConflictError。

    Raises:
        ConflictError: 违反完整性约束
    """
    async with stores.write_lock:
        await stores.conn.execute("BEGIN IMMEDIATE")
        try:
            yield stores
            await stores.conn.commit()
        except sqlite3.IntegrityError as e:
            await stores.conn.rollback()
            log.warning("transaction_integrity_error", error=str(e))
            raise ConflictError(_integrity_message(e)) from e
        except BaseException:
            await stores.conn.rollback()
            raise


def _integrity_message(error: sqlite3.IntegrityError) -> str:
    text = str(error)
    if "FOREIGN KEY" in text:
        return "Operation conflicts with existing references"
    if "task_code" in text:
        return "Task code already in use"
    if "users.email" in text or "idx_users_email" in text:
        return "Email already registered"
    return "Operation conflicts with existing data"
