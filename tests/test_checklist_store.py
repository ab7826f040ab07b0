"""SQLite Store 测试

测试内容：
1. Checklist upsert / get / list / delete
2. 损坏记录：get 抛出 CorruptChecklistError，list_all 跳过
3. SOP 本地副本读写
4. 关闭连接后数据仍在（WAL 模式）
"""

from datetime import UTC, datetime, timedelta
from pathlib import Path

import aiosqlite
import pytest
from sopflow.core.exceptions import CorruptChecklistError
from sopflow.core.models import ChecklistStatus
from sopflow.core.snapshot import build_checklist
from sopflow.core.store import (
    AtomicChecklistStore,
    SqliteChecklistStore,
    SqliteSopStore,
    create_store_group,
    import_sops,
    save_checklist,
)
from sopflow.core.store.sqlite_init import init_db, verify_wal_mode


class TestSqliteChecklistStore:
    """SqliteChecklistStore 基本操作"""

    async def test_upsert_then_get(self, db_conn, make_sop, t0):
        store = SqliteChecklistStore(db_conn)
        checklist = build_checklist(make_sop(), t0)
        await save_checklist(db_conn, store, checklist)

        loaded = await store.get_checklist(checklist.id)
        assert loaded is not None
        assert loaded == checklist

    async def test_get_missing_returns_none(self, db_conn):
        store = SqliteChecklistStore(db_conn)
        assert await store.get_checklist("nope") is None

    async def test_upsert_overwrites_execution_state(self, db_conn, make_sop, t0):
        store = SqliteChecklistStore(db_conn)
        checklist = build_checklist(make_sop(), t0)
        await save_checklist(db_conn, store, checklist)

        done_at = t0 + timedelta(minutes=3)
        checklist.steps[0].completed = True
        checklist.steps[0].completed_at = done_at
        checklist.steps[1].user_note = "需要复查"
        checklist.completed_steps = 1
        checklist.updated_at = done_at
        await save_checklist(db_conn, store, checklist)

        loaded = await store.get_checklist(checklist.id)
        assert loaded.steps[0].completed is True
        assert loaded.steps[0].completed_at == done_at
        assert loaded.steps[1].user_note == "需要复查"
        assert loaded.completed_steps == 1
        assert len(await store.list_all()) == 1

    async def test_list_all_newest_created_first(self, db_conn, make_sop, t0):
        store = SqliteChecklistStore(db_conn)
        first = build_checklist(make_sop(), t0)
        second = build_checklist(make_sop(), t0 + timedelta(hours=1))
        await save_checklist(db_conn, store, first)
        await save_checklist(db_conn, store, second)

        ids = [c.id for c in await store.list_all()]
        assert ids == [second.id, first.id]

    async def test_delete_by_id(self, db_conn, make_sop, t0):
        store = AtomicChecklistStore(db_conn, SqliteChecklistStore(db_conn))
        checklist = build_checklist(make_sop(), t0)
        await store.upsert(checklist)
        await store.delete_by_id(checklist.id)
        assert await store.get_checklist(checklist.id) is None
        # 删除不存在的记录不报错
        await store.delete_by_id(checklist.id)

    async def test_completed_status_round_trip(self, db_conn, make_sop, t0):
        store = SqliteChecklistStore(db_conn)
        checklist = build_checklist(make_sop(), t0)
        checklist.status = ChecklistStatus.COMPLETED
        checklist.completed_at = t0
        await save_checklist(db_conn, store, checklist)
        loaded = await store.get_checklist(checklist.id)
        assert loaded.status == ChecklistStatus.COMPLETED
        assert loaded.completed_at == t0


class TestCorruptRecords:
    """损坏记录处理"""

    @pytest.mark.parametrize("steps_value", ["null", "{not json", '[{"text": 1}]'])
    async def test_get_raises_corrupt_error(self, db_conn, steps_value):
        now = datetime(2026, 1, 1, tzinfo=UTC).isoformat()
        await db_conn.execute(
            """
            INSERT INTO checklists (checklist_id, sop_id, sop_title, sop_snapshot_at,
                                    steps, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            ("bad", "sop_1", "t", now, steps_value, now, now),
        )
        await db_conn.commit()
        store = SqliteChecklistStore(db_conn)

        with pytest.raises(CorruptChecklistError) as exc_info:
            await store.get_checklist("bad")
        assert exc_info.value.checklist_id == "bad"

    async def test_list_all_skips_corrupt(self, db_conn, make_sop, t0):
        store = SqliteChecklistStore(db_conn)
        good = build_checklist(make_sop(), t0)
        await save_checklist(db_conn, store, good)
        await db_conn.execute(
            """
            INSERT INTO checklists (checklist_id, sop_id, sop_title, sop_snapshot_at,
                                    steps, created_at, updated_at)
            VALUES ('bad', 'sop_1', 't', 'not-a-date', '[]', 'x', 'y')
            """
        )
        await db_conn.commit()

        assert [c.id for c in await store.list_all()] == [good.id]


class TestSqliteSopStore:
    """SOP 本地副本"""

    async def test_import_and_get(self, db_conn, make_sop):
        store = SqliteSopStore(db_conn)
        sop = make_sop(steps=["A", "B", "C"])
        assert await import_sops(db_conn, store, [sop]) == 1
        assert await store.get_sop(sop.id) == sop

    async def test_delete_sop(self, db_conn, make_sop):
        store = SqliteSopStore(db_conn)
        sop = make_sop()
        await import_sops(db_conn, store, [sop])
        await store.delete_sop(sop.id)
        await db_conn.commit()
        assert await store.get_sop(sop.id) is None

    async def test_updated_at_optional(self, db_conn, make_sop):
        store = SqliteSopStore(db_conn)
        sop = make_sop(updated_at=None)
        await import_sops(db_conn, store, [sop])
        assert (await store.get_sop(sop.id)).updated_at is None


class TestDurability:
    """进程重启后 Checklist 不丢失"""

    async def test_data_survives_restart(self, tmp_path: Path, make_sop, t0):
        db_path = str(tmp_path / "sqlite" / "durability.db")

        group = await create_store_group(db_path)
        checklist = build_checklist(make_sop(), t0)
        await group.checklist_store.upsert(checklist)
        await group.conn.close()

        conn = await aiosqlite.connect(db_path)
        await init_db(conn)
        try:
            assert await verify_wal_mode(conn) is True
            restored = await SqliteChecklistStore(conn).get_checklist(checklist.id)
            assert restored == checklist
        finally:
            await conn.close()
