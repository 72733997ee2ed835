"""SQLite 数据库初始化

PRAGMA 配置 + 表 DDL + 索引创建。
外键统一为 RESTRICT：被任务引用的用户/客户不能被删除。
使用 aiosqlite 异步操作。
"""

import aiosqlite

# users 表 DDL
_USERS_DDL = """
CREATE TABLE IF NOT EXISTS users (
    user_id        TEXT PRIMARY KEY,
    name           TEXT NOT NULL,
    email          TEXT NOT NULL COLLATE NOCASE,
    password_hash  TEXT NOT NULL,
    role           TEXT NOT NULL DEFAULT 'user',
    active         INTEGER NOT NULL DEFAULT 1,
    created_at     TEXT NOT NULL,
    updated_at     TEXT NOT NULL
);
"""

_USERS_INDEXES = [
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_users_email ON users(email);",
]

# sessions 表 DDL（只保存 token 的 SHA-256）
_SESSIONS_DDL = """
CREATE TABLE IF NOT EXISTS sessions (
    token_hash  TEXT PRIMARY KEY,
    user_id     TEXT NOT NULL,
    created_at  TEXT NOT NULL,
    expires_at  TEXT NOT NULL,

    FOREIGN KEY (user_id) REFERENCES users(user_id) ON DELETE CASCADE
);
"""

_SESSIONS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_sessions_user_id ON sessions(user_id);",
]

# clients 表 DDL
_CLIENTS_DDL = """
CREATE TABLE IF NOT EXISTS clients (
    client_id   TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    email       TEXT,
    phone       TEXT,
    address     TEXT NOT NULL DEFAULT '{}',
    is_active   INTEGER NOT NULL DEFAULT 1,
    created_by  TEXT NOT NULL,
    created_at  TEXT NOT NULL,
    updated_at  TEXT NOT NULL,

    FOREIGN KEY (created_by) REFERENCES users(user_id) ON DELETE RESTRICT
);
"""

_CLIENTS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_clients_created_by ON clients(created_by);",
]

# tasks 表 DDL
_TASKS_DDL = """
CREATE TABLE IF NOT EXISTS tasks (
    task_id      TEXT PRIMARY KEY,
    task_code    TEXT NOT NULL,
    title        TEXT NOT NULL,
    description  TEXT,
    status       TEXT NOT NULL DEFAULT 'todo',
    priority     TEXT NOT NULL DEFAULT 'medium',
    due_date     TEXT,
    created_by   TEXT NOT NULL,
    client_id    TEXT NOT NULL,
    labels       TEXT NOT NULL DEFAULT '[]',
    created_at   TEXT NOT NULL,
    updated_at   TEXT NOT NULL,

    FOREIGN KEY (created_by) REFERENCES users(user_id) ON DELETE RESTRICT,
    FOREIGN KEY (client_id) REFERENCES clients(client_id) ON DELETE RESTRICT
);
"""

_TASKS_INDEXES = [
    # 任务编号唯一约束（编号生成的最后防线）
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_tasks_task_code ON tasks(task_code);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_created_at ON tasks(created_at DESC);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_created_by ON tasks(created_by);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_client_id ON tasks(client_id);",
]

# task_assignees 表 DDL（有序多对多）
_TASK_ASSIGNEES_DDL = """
CREATE TABLE IF NOT EXISTS task_assignees (
    task_id   TEXT NOT NULL,
    user_id   TEXT NOT NULL,
    position  INTEGER NOT NULL,

    PRIMARY KEY (task_id, user_id),
    FOREIGN KEY (task_id) REFERENCES tasks(task_id) ON DELETE CASCADE,
    FOREIGN KEY (user_id) REFERENCES users(user_id) ON DELETE RESTRICT
);
"""

_TASK_ASSIGNEES_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_task_assignees_user_id ON task_assignees(user_id);",
]

ALL_TABLES = ("users", "sessions", "clients", "tasks", "task_assignees")


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引

    Args:
        conn: aiosqlite 数据库连接
    """
    # 设置 PRAGMA
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA foreign_keys = ON;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    # 创建表
    for ddl in (
        _USERS_DDL,
        _SESSIONS_DDL,
        _CLIENTS_DDL,
        _TASKS_DDL,
        _TASK_ASSIGNEES_DDL,
    ):
        await conn.execute(ddl)

    # 创建索引
    for idx_sql in (
        _USERS_INDEXES
        + _SESSIONS_INDEXES
        + _CLIENTS_INDEXES
        + _TASKS_INDEXES
        + _TASK_ASSIGNEES_INDEXES
    ):
        await conn.execute(idx_sql)

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """验证 WAL 模式是否生效

    Returns:
        True 如果 WAL 模式已启用
    """
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"


async def count_rows(conn: aiosqlite.Connection) -> dict[str, int]:
    """统计各表行数（check-db 命令使用）"""
    counts: dict[str, int] = {}
    for table in ALL_TABLES:
        cursor = await conn.execute(f"SELECT COUNT(*) FROM {table}")
        row = await cursor.fetchone()
        counts[table] = row[0] if row else 0
    return counts
