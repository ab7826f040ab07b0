"""ChecklistStore SQLite 实现

steps 以 JSON 数组存储，时间戳为 ISO-8601 字符串。
此处仅提供数据库操作，不自动提交事务（见 transaction.save_checklist）。
"""

import json
from datetime import datetime

import aiosqlite
import structlog

from ..exceptions import CorruptChecklistError
from ..models.checklist import Checklist, ChecklistStep

log = structlog.get_logger()

_COLUMNS = (
    "checklist_id, sop_id, sop_title, sop_snapshot_at, folder_id, steps, status, "
    "completed_steps, total_steps, created_at, updated_at, completed_at"
)


class SqliteChecklistStore:
    """ChecklistStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def list_all(self) -> list[Checklist]:
        """查询全部 Checklist，按 created_at 倒序（最新在前）

        无法解析的记录记录告警后跳过。
        """
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM checklists ORDER BY created_at DESC"
        )
        rows = await cursor.fetchall()
        checklists: list[Checklist] = []
        for row in rows:
            try:
                checklists.append(self._row_to_checklist(row))
            except CorruptChecklistError as e:
                log.warning(
                    "corrupt_checklist_skipped",
                    checklist_id=e.checklist_id,
                    error_type=type(e.original_error).__name__,
                )
        return checklists

    async def get_checklist(self, checklist_id: str) -> Checklist | None:
        """根据 checklist_id 查询"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM checklists WHERE checklist_id = ?",
            (checklist_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_checklist(row)

    async def upsert(self, checklist: Checklist) -> None:
        """新增或整体覆盖（last-write-wins）"""
        await self._conn.execute(
            f"""
            INSERT INTO checklists ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(checklist_id) DO UPDATE SET
                steps = excluded.steps,
                status = excluded.status,
                completed_steps = excluded.completed_steps,
                total_steps = excluded.total_steps,
                updated_at = excluded.updated_at,
                completed_at = excluded.completed_at
            """,
            (
                checklist.id,
                checklist.sop_id,
                checklist.sop_title,
                checklist.sop_snapshot_at.isoformat(),
                checklist.folder_id,
                json.dumps(
                    [step.model_dump(mode="json") for step in checklist.steps],
                    ensure_ascii=False,
                ),
                checklist.status.value,
                checklist.completed_steps,
                checklist.total_steps,
                checklist.created_at.isoformat(),
                checklist.updated_at.isoformat(),
                checklist.completed_at.isoformat() if checklist.completed_at else None,
            ),
        )

    async def delete_by_id(self, checklist_id: str) -> None:
        """删除 Checklist（不存在时静默）"""
        await self._conn.execute(
            "DELETE FROM checklists WHERE checklist_id = ?",
            (checklist_id,),
        )

    @staticmethod
    def _row_to_checklist(row: aiosqlite.Row) -> Checklist:
        """将数据库行转换为 Checklist 模型

        Raises:
            CorruptChecklistError: steps 缺失/损坏或字段无法解析
        """
        checklist_id = row[0]
        try:
            steps_data = json.loads(row[5])
            steps = [ChecklistStep.model_validate(item) for item in steps_data]
            return Checklist(
                id=checklist_id,
                sop_id=row[1],
                sop_title=row[2],
                sop_snapshot_at=datetime.fromisoformat(row[3]),
                folder_id=row[4],
                steps=steps,
                status=row[6],
                completed_steps=row[7],
                total_steps=row[8],
                created_at=datetime.fromisoformat(row[9]),
                updated_at=datetime.fromisoformat(row[10]),
                completed_at=datetime.fromisoformat(row[11]) if row[11] else None,
            )
        except (TypeError, ValueError) as e:
            # pydantic ValidationError / JSONDecodeError 均为 ValueError 子类
            raise CorruptChecklistError(checklist_id, e) from e
