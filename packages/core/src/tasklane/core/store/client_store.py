"""ClientStore SQLite 实现"""

from datetime import datetime
from typing import Any

import aiosqlite

from ..models.client import Client, ClientAddress
from ..timeutil import from_iso, to_iso

_CLIENT_COLUMNS = (
    "client_id, name, email, phone, address, is_active, created_by, created_at, updated_at"
)

# 地址各字段拼接后参与搜索（避免匹配到 JSON 键名）
_ADDRESS_TEXT = " || ' ' || ".join(
    f"COALESCE(json_extract(address, '$.{key}'), '')"
    for key in ("street", "city", "state", "country", "postal_code")
)


class SqliteClientStore:
    """ClientStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_client(self, client: Client) -> None:
        """创建客户记录"""
        await self._conn.execute(
            """
            INSERT INTO clients (client_id, name, email, phone, address, is_active,
                                 created_by, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                client.client_id,
                client.name,
                client.email,
                client.phone,
                client.address.model_dump_json(),
                int(client.is_active),
                client.created_by,
                to_iso(client.created_at),
                to_iso(client.updated_at),
            ),
        )

    async def get_client(self, client_id: str) -> Client | None:
        cursor = await self._conn.execute(
            f"SELECT {_CLIENT_COLUMNS} FROM clients WHERE client_id = ?",
            (client_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_client(row) if row else None

    async def list_clients(self, created_by: str | None = None) -> list[Client]:
        """按名称排序列出客户；created_by 为 None 时列出全部"""
        if created_by is not None:
            cursor = await self._conn.execute(
                f"SELECT {_CLIENT_COLUMNS} FROM clients WHERE created_by = ? "
                "ORDER BY name COLLATE NOCASE ASC",
                (created_by,),
            )
        else:
            cursor = await self._conn.execute(
                f"SELECT {_CLIENT_COLUMNS} FROM clients ORDER BY name COLLATE NOCASE ASC"
            )
        rows = await cursor.fetchall()
        return [self._row_to_client(row) for row in rows]

    async def search_clients(
        self,
        query: str,
        created_by: str | None = None,
    ) -> list[Client]:
        """子串匹配名称、邮箱、电话、地址（大小写不敏感）"""
        pattern = f"%{_escape_like(query)}%"
        sql = (
            f"SELECT {_CLIENT_COLUMNS} FROM clients "
            "WHERE (name LIKE ? ESCAPE '\\' OR email LIKE ? ESCAPE '\\' "
            f"OR phone LIKE ? ESCAPE '\\' OR ({_ADDRESS_TEXT}) LIKE ? ESCAPE '\\')"
        )
        params: list[Any] = [pattern, pattern, pattern, pattern]
        if created_by is not None:
            sql += " AND created_by = ?"
            params.append(created_by)
        cursor = await self._conn.execute(sql + " ORDER BY name COLLATE NOCASE ASC", params)
        rows = await cursor.fetchall()
        return [self._row_to_client(row) for row in rows]

    async def update_client(
        self,
        client_id: str,
        changes: dict[str, Any],
        updated_at: datetime,
    ) -> bool:
        """按字段更新客户

        Returns:
            True 如果客户存在
        """
        assignments = ["updated_at = ?"]
        params: list[Any] = [to_iso(updated_at)]
        for column, value in changes.items():
            if column == "address":
                value = ClientAddress.model_validate(value).model_dump_json()
            elif column == "is_active":
                value = int(value)
            assignments.append(f"{column} = ?")
            params.append(value)

        cursor = await self._conn.execute(
            f"UPDATE clients SET {', '.join(assignments)} WHERE client_id = ?",
            (*params, client_id),
        )
        return cursor.rowcount > 0

    async def delete_client(self, client_id: str) -> bool:
        """删除客户；被任务引用时外键拒绝"""
        cursor = await self._conn.execute(
            "DELETE FROM clients WHERE client_id = ?",
            (client_id,),
        )
        return cursor.rowcount > 0

    @staticmethod
    def _row_to_client(row: aiosqlite.Row) -> Client:
        """将数据库行转换为 Client 模型"""
        return Client(
            client_id=row[0],
            name=row[1],
            email=row[2],
            phone=row[3],
            address=ClientAddress.model_validate_json(row[4]),
            is_active=bool(row[5]),
            created_by=row[6],
            created_at=from_iso(row[7]),
            updated_at=from_iso(row[8]),
        )


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
