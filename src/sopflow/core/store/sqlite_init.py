"""SQLite 数据库初始化

PRAGMA 配置 + 两张表 DDL + 索引创建。
使用 aiosqlite 异步操作。
"""

import aiosqlite

# sops 表 DDL（外部 SOP 的本地副本）
_SOPS_DDL = """
CREATE TABLE IF NOT EXISTS sops (
    sop_id      TEXT PRIMARY KEY,
    title       TEXT NOT NULL DEFAULT '',
    folder_id   TEXT,
    steps       TEXT NOT NULL DEFAULT '[]',
    created_at  TEXT NOT NULL,
    updated_at  TEXT
);
"""

# checklists 表 DDL
# sop_id 是弱引用：SOP 删除后 Checklist 仍然有效，因此不建外键
_CHECKLISTS_DDL = """
CREATE TABLE IF NOT EXISTS checklists (
    checklist_id     TEXT PRIMARY KEY,
    sop_id           TEXT NOT NULL,
    sop_title        TEXT NOT NULL DEFAULT '',
    sop_snapshot_at  TEXT NOT NULL,
    folder_id        TEXT,
    steps            TEXT NOT NULL DEFAULT '[]',
    status           TEXT NOT NULL DEFAULT 'in_progress',
    completed_steps  INTEGER NOT NULL DEFAULT 0,
    total_steps      INTEGER NOT NULL DEFAULT 0,
    created_at       TEXT NOT NULL,
    updated_at       TEXT NOT NULL,
    completed_at     TEXT
);
"""

_CHECKLISTS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_checklists_status ON checklists(status);",
    "CREATE INDEX IF NOT EXISTS idx_checklists_sop_id ON checklists(sop_id);",
    "CREATE INDEX IF NOT EXISTS idx_checklists_created_at ON checklists(created_at DESC);",
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引

    Args:
        conn: aiosqlite 数据库连接
    """
    # 设置 PRAGMA
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    # 创建表
    await conn.execute(_SOPS_DDL)
    await conn.execute(_CHECKLISTS_DDL)

    # 创建索引
    for idx_sql in _CHECKLISTS_INDEXES:
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
