"""任务编号生成器 -- T#### 可读编号

编号 = 前缀 + 最近创建任务的数字后缀 + 1（至少 4 位零填充）。
next_task_code 必须在创建任务的同一事务内调用。
"""

import re

import structlog

from .config import TASK_CODE_PREFIX, TASK_CODE_WIDTH
from .store.protocols import TaskStore
from .store.task_store import SqliteTaskStore

log = structlog.get_logger()

_CODE_PATTERN = re.compile(rf"^{re.escape(TASK_CODE_PREFIX)}(\d+)$")


def format_task_code(number: int) -> str:
    """编号数字 -> T0001；超过 9999 时自然变宽"""
    return f"{TASK_CODE_PREFIX}{number:0{TASK_CODE_WIDTH}d}"


def parse_task_code(code: str | None) -> int:
    """T0042 -> 42；空值或无法解析时返回 0"""
    if not code:
        return 0
    match = _CODE_PATTERN.match(code.strip())
    if match is None:
        return 0
    return int(match.group(1))


async def next_task_code(task_store: TaskStore) -> str:
    """根据最近创建的任务计算下一个编号

    Args:
        task_store: 与创建写入共享事务的 TaskStore

    Returns:
        下一个任务编号，库为空时为 T0001
    """
    latest = await task_store.get_latest_task_code()
    number = parse_task_code(latest)
    if latest and number == 0:
        log.warning("task_code_unparsable", latest_code=latest)
    return format_task_code(number + 1)


async def renumber_task_codes(task_store: SqliteTaskStore) -> int:
    """按创建顺序重新分配 T0001.. 编号

    先写入临时编号避开唯一索引冲突，再写入最终编号。
    调用方负责事务。

    Returns:
        重新编号的任务数
    """
    task_ids = await task_store.list_ids_in_creation_order()
    for task_id in task_ids:
        await task_store.set_task_code(task_id, f"~{task_id}")
    for position, task_id in enumerate(task_ids, start=1):
        await task_store.set_task_code(task_id, format_task_code(position))
    return len(task_ids)
