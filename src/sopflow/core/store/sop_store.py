"""SopStore SQLite 实现

SOP 的维护属于外部系统；此处保存一份本地副本，
对核心只暴露 get_sop（SopProvider 接口），put/delete 供导入与测试使用。
"""

import json
from datetime import datetime

import aiosqlite

from ..models.sop import Sop, SopStep


class SqliteSopStore:
    """SopProvider 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def get_sop(self, sop_id: str) -> Sop | None:
        """根据 sop_id 查询 SOP"""
        cursor = await self._conn.execute(
            """
            SELECT sop_id, title, folder_id, steps, created_at, updated_at
            FROM sops WHERE sop_id = ?
            """,
            (sop_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_sop(row)

    async def put_sop(self, sop: Sop) -> None:
        """写入或覆盖 SOP（不自动提交）"""
        await self._conn.execute(
            """
            INSERT OR REPLACE INTO sops (sop_id, title, folder_id, steps,
                                         created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                sop.id,
                sop.title,
                sop.folder_id,
                json.dumps(
                    [step.model_dump() for step in sop.steps],
                    ensure_ascii=False,
                ),
                sop.created_at.isoformat(),
                sop.updated_at.isoformat() if sop.updated_at else None,
            ),
        )

    async def delete_sop(self, sop_id: str) -> None:
        """删除 SOP（不自动提交，不影响已有 Checklist）"""
        await self._conn.execute("DELETE FROM sops WHERE sop_id = ?", (sop_id,))

    @staticmethod
    def _row_to_sop(row: aiosqlite.Row) -> Sop:
        """将数据库行转换为 Sop 模型"""
        steps_data = json.loads(row[3] or "[]")
        return Sop(
            id=row[0],
            title=row[1],
            folder_id=row[2],
            steps=[SopStep(**item) for item in steps_data],
            created_at=datetime.fromisoformat(row[4]),
            updated_at=datetime.fromisoformat(row[5]) if row[5] else None,
        )
