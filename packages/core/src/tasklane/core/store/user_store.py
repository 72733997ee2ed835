"""UserStore SQLite 实现 -- 身份存储 + 会话

写方法不自动提交事务，需由调用方（unit_of_work）管理。
"""

from collections.abc import Iterable
from datetime import datetime

import aiosqlite

from ..models.enums import UserRole
from ..models.user import User, UserRecord
from ..timeutil import from_iso, to_iso

_USER_COLUMNS = "user_id, name, email, role, active, created_at, updated_at, password_hash"


class SqliteUserStore:
    """UserStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_user(self, user: UserRecord) -> None:
        """创建用户记录"""
        await self._conn.execute(
            """
            INSERT INTO users (user_id, name, email, password_hash, role, active,
                               created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                user.user_id,
                user.name,
                user.email,
                user.password_hash,
                user.role.value,
                int(user.active),
                to_iso(user.created_at),
                to_iso(user.updated_at),
            ),
        )

    async def get_user(self, user_id: str) -> User | None:
        """根据 user_id 查询用户（不含凭证）"""
        record = await self.get_user_record(user_id)
        return record.public() if record else None

    async def get_user_record(self, user_id: str) -> UserRecord | None:
        """根据 user_id 查询用户（含凭证哈希）"""
        cursor = await self._conn.execute(
            f"SELECT {_USER_COLUMNS} FROM users WHERE user_id = ?",
            (user_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_record(row) if row else None

    async def get_user_by_email(self, email: str) -> UserRecord | None:
        """根据邮箱查询用户（大小写不敏感）"""
        cursor = await self._conn.execute(
            f"SELECT {_USER_COLUMNS} FROM users WHERE email = ?",
            (email,),
        )
        row = await cursor.fetchone()
        return self._row_to_record(row) if row else None

    async def get_users_by_ids(self, user_ids: Iterable[str]) -> list[User]:
        """批量查询用户（用于指派人校验和引用展开）"""
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return []
        placeholders = ", ".join("?" for _ in ids)
        cursor = await self._conn.execute(
            f"SELECT {_USER_COLUMNS} FROM users WHERE user_id IN ({placeholders})",
            ids,
        )
        rows = await cursor.fetchall()
        return [self._row_to_record(row).public() for row in rows]

    async def list_users(self, include_inactive: bool = False) -> list[User]:
        """按姓名排序列出用户"""
        sql = f"SELECT {_USER_COLUMNS} FROM users"
        if not include_inactive:
            sql += " WHERE active = 1"
        cursor = await self._conn.execute(sql + " ORDER BY name COLLATE NOCASE ASC")
        rows = await cursor.fetchall()
        return [self._row_to_record(row).public() for row in rows]

    async def update_user(
        self,
        user_id: str,
        updated_at: datetime,
        *,
        name: str | None = None,
        email: str | None = None,
        role: UserRole | None = None,
        active: bool | None = None,
        password_hash: str | None = None,
    ) -> bool:
        """更新用户字段，None 表示不修改

        Returns:
            True 如果用户存在
        """
        assignments = ["updated_at = ?"]
        params: list = [to_iso(updated_at)]
        for column, value in (
            ("name", name),
            ("email", email),
            ("role", role.value if role is not None else None),
            ("active", int(active) if active is not None else None),
            ("password_hash", password_hash),
        ):
            if value is not None:
                assignments.append(f"{column} = ?")
                params.append(value)

        cursor = await self._conn.execute(
            f"UPDATE users SET {', '.join(assignments)} WHERE user_id = ?",
            (*params, user_id),
        )
        return cursor.rowcount > 0

    async def delete_user(self, user_id: str) -> bool:
        """物理删除用户；被客户或任务引用时外键拒绝"""
        cursor = await self._conn.execute(
            "DELETE FROM users WHERE user_id = ?",
            (user_id,),
        )
        return cursor.rowcount > 0

    # ---- 会话 ----

    async def create_session(
        self,
        token_hash: str,
        user_id: str,
        created_at: datetime,
        expires_at: datetime,
    ) -> None:
        await self._conn.execute(
            """
            INSERT INTO sessions (token_hash, user_id, created_at, expires_at)
            VALUES (?, ?, ?, ?)
            """,
            (token_hash, user_id, to_iso(created_at), to_iso(expires_at)),
        )

    async def get_session_user(self, token_hash: str, now: datetime) -> User | None:
        """解析会话：未过期且用户仍启用才返回"""
        cursor = await self._conn.execute(
            f"""
            SELECT {", ".join("u." + c.strip() for c in _USER_COLUMNS.split(","))}
            FROM sessions s JOIN users u ON u.user_id = s.user_id
            WHERE s.token_hash = ? AND s.expires_at > ? AND u.active = 1
            """,
            (token_hash, to_iso(now)),
        )
        row = await cursor.fetchone()
        return self._row_to_record(row).public() if row else None

    async def delete_session(self, token_hash: str) -> None:
        await self._conn.execute(
            "DELETE FROM sessions WHERE token_hash = ?",
            (token_hash,),
        )

    async def delete_sessions_for_user(self, user_id: str) -> None:
        await self._conn.execute(
            "DELETE FROM sessions WHERE user_id = ?",
            (user_id,),
        )

    @staticmethod
    def _row_to_record(row: aiosqlite.Row) -> UserRecord:
        """将数据库行转换为 UserRecord"""
        return UserRecord(
            user_id=row[0],
            name=row[1],
            email=row[2],
            role=UserRole(row[3]),
            active=bool(row[4]),
            created_at=from_iso(row[5]),
            updated_at=from_iso(row[6]),
            password_hash=row[7],
        )
