"""CLI 入口模块 -- python -m tasklane.core <command>

支持的命令：
  check-db             打印各表行数
  renumber-task-codes  按创建顺序重新分配任务编号
  promote-admin EMAIL  将用户提升为管理员
"""

import asyncio
import sys

from .config import get_db_path

_USAGE = """用法: python -m tasklane.core <command>
命令:
  check-db             打印各表行数
  renumber-task-codes  按创建顺序重新分配任务编号
  promote-admin EMAIL  将用户提升为管理员"""


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print(_USAGE)
        sys.exit(1)

    command = sys.argv[1]

    if command == "check-db":
        asyncio.run(check_db())
    elif command == "renumber-task-codes":
        asyncio.run(renumber())
    elif command == "promote-admin":
        if len(sys.argv) < 3:
            print("用法: python -m tasklane.core promote-admin EMAIL")
            sys.exit(1)
        if not asyncio.run(promote_admin(sys.argv[2])):
            sys.exit(1)
    else:
        print(f"未知命令: {command}")
        print("可用命令: check-db, renumber-task-codes, promote-admin")
        sys.exit(1)


async def check_db(db_path: str | None = None) -> dict[str, int]:
    """打印各表行数"""
    from .store import create_store_group
    from .store.sqlite_init import count_rows, verify_wal_mode

    db_path = db_path or get_db_path()
    print(f"数据库路径: {db_path}")

    store_group = await create_store_group(db_path)
    try:
        counts = await count_rows(store_group.conn)
        print(f"WAL 模式: {'是' if await verify_wal_mode(store_group.conn) else '否'}")
        for table, count in counts.items():
            print(f"  {table}: {count}")
        return counts
    finally:
        await store_group.close()


async def renumber(db_path: str | None = None) -> int:
    """执行任务编号重排"""
    from .codes import renumber_task_codes
    from .store import create_store_group, unit_of_work

    db_path = db_path or get_db_path()
    print(f"数据库路径: {db_path}")
    print("开始重新编号...")

    store_group = await create_store_group(db_path)
    try:
        async with unit_of_work(store_group) as stores:
            count = await renumber_task_codes(stores.task_store)
        print(f"重新编号完成，处理 {count} 个任务")
        return count
    finally:
        await store_group.close()


async def promote_admin(email: str, db_path: str | None = None) -> bool:
    """将指定邮箱的用户提升为管理员

    Returns:
        True 如果用户存在并已提升
    """
    from .models.client import normalize_email
    from .models.enums import UserRole
    from .store import create_store_group, unit_of_work
    from .timeutil import utc_now

    store_group = await create_store_group(db_path or get_db_path())
    try:
        async with unit_of_work(store_group) as stores:
            user = await stores.user_store.get_user_by_email(normalize_email(email) or "")
            if user is None:
                print(f"用户不存在: {email}")
                return False
            await stores.user_store.update_user(user.user_id, utc_now(), role=UserRole.ADMIN)
        print(f"已提升为管理员: {user.email}")
        return True
    finally:
        await store_group.close()


if __name__ == "__main__":
    main()
