"""单记录原子写入封装

每次写入在同一 SQLite 事务内提交，失败时回滚，
保证 Checklist 记录不会处于部分写入状态。
"""

import aiosqlite

from ..models.checklist import Checklist
from ..models.sop import Sop
from .checklist_store import SqliteChecklistStore
from .sop_store import SqliteSopStore


async def save_checklist(
    conn: aiosqlite.Connection,
    checklist_store: SqliteChecklistStore,
    checklist: Checklist,
) -> None:
    """原子写入单个 Checklist

    Args:
        conn: 数据库连接（需在同一连接上操作以保证事务性）
        checklist_store: ChecklistStore 实例
        checklist: 要写入的 Checklist

    Raises:
        Exception: 如果事务提交失败，自动回滚
    """
    try:
        await checklist_store.upsert(checklist)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise


async def delete_checklist(
    conn: aiosqlite.Connection,
    checklist_store: SqliteChecklistStore,
    checklist_id: str,
) -> None:
    """原子删除单个 Checklist"""
    try:
        await checklist_store.delete_by_id(checklist_id)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise


async def import_sops(
    conn: aiosqlite.Connection,
    sop_store: SqliteSopStore,
    sops: list[Sop],
) -> int:
    """在同一事务内批量导入 SOP

    Returns:
        导入条数
    """
    try:
        for sop in sops:
            await sop_store.put_sop(sop)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise
    return len(sops)


class AtomicChecklistStore:
    """ChecklistStore 实现：读操作委托给 SQLite store，写操作逐条原子提交"""

    def __init__(
        self,
        conn: aiosqlite.Connection,
        checklist_store: SqliteChecklistStore,
    ) -> None:
        self._conn = conn
        self._store = checklist_store

    async def list_all(self) -> list[Checklist]:
        return await self._store.list_all()

    async def get_checklist(self, checklist_id: str) -> Checklist | None:
        return await self._store.get_checklist(checklist_id)

    async def upsert(self, checklist: Checklist) -> None:
        await save_checklist(self._conn, self._store, checklist)

    async def delete_by_id(self, checklist_id: str) -> None:
        await delete_checklist(self._conn, self._store, checklist_id)
