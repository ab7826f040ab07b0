"""Restart 与快照不可变性测试

场景：
- sop_1 在 T0 创建，步骤 [A, B]；chk_1 在 T0 创建 -> sop_snapshot_at = T0
- sop_1 在 T1 > T0 被编辑为 [A, B, C]
- handle_restart 检测到过期，需要确认；新 Checklist 为 [A, B, C]，chk_1 仍为 [A, B]
"""

from datetime import timedelta

import pytest
from sopflow.core.models import (
    ChecklistFailure,
    FailureReason,
    RestartCheck,
)
from sopflow.session.sessions import InteractiveSession


@pytest.fixture
async def chk_1(controller):
    return await controller.start_from_sop("sop_1")


def _edit_sop(sop_provider, make_sop, t0):
    t1 = t0 + timedelta(hours=2)
    sop_provider.put_sop(make_sop(steps=["A", "B", "C"], updated_at=t1))
    return t1


class TestSnapshotImmutability:
    """SOP 编辑不影响已有 Checklist"""

    async def test_edit_after_creation(self, controller, chk_1, sop_provider, make_sop, t0):
        """创建后编辑 SOP 不影响已有 Checklist"""
        sop = make_sop(steps=["A changed", "B"], updated_at=t0 + timedelta(minutes=1))
        sop.title = "Renamed"
        sop_provider.put_sop(sop)

        stored = await controller.get_checklist(chk_1.checklist_id)
        assert [s.text for s in stored.steps] == ["A", "B"]
        assert stored.sop_title == "SOP sop_1"
        assert [s.text for s in chk_1.checklist.steps] == ["A", "B"]


class TestCheckRestart:
    """check_restart"""

    async def test_not_stale(self, chk_1, t0):
        """SOP 未编辑时 is_stale 为 False"""
        check = await chk_1.check_restart()
        assert isinstance(check, RestartCheck)
        assert check.is_stale is False
        assert check.snapshot_at == t0

    async def test_stale(self, chk_1, sop_provider, make_sop, t0):
        """SOP 在快照后编辑时 is_stale 为 True"""
        t1 = _edit_sop(sop_provider, make_sop, t0)
        check = await chk_1.check_restart()
        assert check.is_stale is True
        assert check.live_modified_at == t1

    async def test_sop_deleted(self, chk_1, sop_provider):
        """SOP 已删除返回 source_sop_deleted"""
        sop_provider.delete_sop("sop_1")
        check = await chk_1.check_restart()
        assert isinstance(check, ChecklistFailure)
        assert check.reason == FailureReason.SOURCE_SOP_DELETED


class TestHandleRestart:
    """handle_restart"""

    async def test_stale_requires_confirmation(
        self, controller, chk_1, sop_provider, make_sop, t0, clock
    ):
        """SOP 已更新需确认，新 Checklist 采用新步骤，原记录不变"""
        t1 = _edit_sop(sop_provider, make_sop, t0)
        clock.advance(3 * 3600)
        asked = []

        def confirm(check):
            asked.append(check)
            return True

        new_session = await chk_1.handle_restart(confirm)
        assert len(asked) == 1
        assert asked[0].snapshot_at == t0
        assert asked[0].live_modified_at == t1

        assert isinstance(new_session, InteractiveSession)
        assert new_session.checklist_id != chk_1.checklist_id
        assert [s.text for s in new_session.checklist.steps] == ["A", "B", "C"]
        assert new_session.checklist.sop_snapshot_at == t1
        assert controller.current is new_session

        original = await controller.get_checklist(chk_1.checklist_id)
        assert [s.text for s in original.steps] == ["A", "B"]

    async def test_async_confirmation(self, chk_1, sop_provider, make_sop, t0):
        """支持异步确认回调"""
        _edit_sop(sop_provider, make_sop, t0)

        async def confirm(check):
            return True

        assert isinstance(await chk_1.handle_restart(confirm), InteractiveSession)

    @pytest.mark.parametrize("confirm", [None, lambda check: False])
    async def test_declined_aborts(
        self, controller, chk_1, checklist_store, sop_provider, make_sop, t0, confirm
    ):
        """无回调或拒绝时放弃 Restart，不新建记录"""
        _edit_sop(sop_provider, make_sop, t0)
        count_before = len(await checklist_store.list_all())
        result = await chk_1.handle_restart(confirm)
        assert result is None
        assert len(await checklist_store.list_all()) == count_before
        assert controller.current is chk_1

    async def test_not_stale_skips_confirmation(self, chk_1):
        """SOP 未更新时不询问确认"""
        def confirm(check):
            raise AssertionError("不应询问确认")

        new_session = await chk_1.handle_restart(confirm)
        assert isinstance(new_session, InteractiveSession)
        assert [s.text for s in new_session.checklist.steps] == ["A", "B"]

    async def test_source_deleted(self, controller, chk_1, checklist_store, sop_provider):
        """来源 SOP 删除时 Restart 失败，不新建记录"""
        sop_provider.delete_sop("sop_1")
        count_before = len(await checklist_store.list_all())
        result = await chk_1.handle_restart(lambda check: True)
        assert isinstance(result, ChecklistFailure)
        assert result.reason == FailureReason.SOURCE_SOP_DELETED
        assert len(await checklist_store.list_all()) == count_before

    async def test_restart_leaves_original_untouched(
        self, controller, chk_1, sop_provider, make_sop, t0
    ):
        """Restart 不修改原 Checklist 的进度与备注"""
        await chk_1.toggle_step(0, True)
        await chk_1.update_step_note(1, "mine")
        await chk_1.flush()
        before = await controller.get_checklist(chk_1.checklist_id)

        _edit_sop(sop_provider, make_sop, t0)
        await chk_1.handle_restart(lambda check: True)

        after = await controller.get_checklist(chk_1.checklist_id)
        assert after == before
