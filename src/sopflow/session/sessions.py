"""Checklist 会话 -- InteractiveSession / ReadOnlySession

两种会话共享同一数据模型，但能力集合互不相交：
ReadOnlySession 只能查看进度和返回，没有任何修改方法；
InteractiveSession 提供勾选、备注、重置、全部完成、放弃与 Restart。

写入策略：
- 勾选 / 备注：防抖写入（窗口内合并为一次）
- 达到全部完成、reset_all、mark_all_complete、abandon：立即写入
- back / save_and_exit：先 flush（含等待进行中的写入），再发出 NavigatedBack
"""

import inspect
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

import structlog

from sopflow.core.exceptions import StepIndexError
from sopflow.core.models import (
    Checklist,
    ChecklistCompleted,
    ChecklistFailure,
    ChecklistStatus,
    ChecklistStep,
    FailureReason,
    NavigatedBack,
    Progress,
    RestartCheck,
    Sop,
    StepChanged,
    validate_transition,
)
from sopflow.core.progress import calculate, recompute
from sopflow.core.snapshot import check_staleness
from sopflow.core.store.protocols import ChecklistStore, SopProvider

from .autosave import DebouncedSaver
from .config import SessionConfig
from .event_hub import SessionEventHub

log = structlog.get_logger()

Clock = Callable[[], datetime]
RestartConfirm = Callable[[RestartCheck], Awaitable[bool] | bool]
RestartStarter = Callable[[str], Awaitable["InteractiveSession | ChecklistFailure"]]


class ReadOnlySession:
    """只读会话 -- 已完成 Checklist 是历史记录，不允许修改"""

    read_only = True

    def __init__(self, checklist: Checklist, hub: SessionEventHub) -> None:
        self._checklist = checklist
        self._hub = hub

    @property
    def checklist(self) -> Checklist:
        """当前 Checklist 的副本"""
        return self._checklist.model_copy(deep=True)

    @property
    def checklist_id(self) -> str:
        return self._checklist.id

    def progress(self) -> Progress:
        """计算当前进度"""
        return calculate(self._checklist.steps)

    async def flush(self) -> bool:
        """只读会话没有挂起写入"""
        return False

    async def back(self) -> None:
        """返回上一页面"""
        await self._hub.publish(NavigatedBack())


class InteractiveSession:
    """可交互会话 -- 新建或恢复的 Checklist"""

    read_only = False

    def __init__(
        self,
        checklist: Checklist,
        *,
        store: ChecklistStore,
        sop_provider: SopProvider,
        hub: SessionEventHub,
        config: SessionConfig,
        clock: Clock,
        restart: RestartStarter,
        source_sop: Sop | None = None,
    ) -> None:
        self._checklist = checklist
        self._store = store
        self._sop_provider = sop_provider
        self._hub = hub
        self._config = config
        self._clock = clock
        self._restart = restart
        # 缓存的来源 SOP（可能已被删除，为 None 时不影响执行）
        self._source_sop = source_sop
        self._saver = DebouncedSaver(
            self._persist,
            config.auto_save_delay_s,
            name=checklist.id,
        )

    @property
    def checklist(self) -> Checklist:
        """当前 Checklist 的副本"""
        return self._checklist.model_copy(deep=True)

    @property
    def checklist_id(self) -> str:
        return self._checklist.id

    @property
    def source_sop(self) -> Sop | None:
        return self._source_sop

    @property
    def has_pending_save(self) -> bool:
        return self._saver.pending

    def progress(self) -> Progress:
        """计算当前进度"""
        return calculate(self._checklist.steps)

    async def toggle_step(self, index: int, completed: bool) -> ChecklistStep:
        """勾选或取消勾选一个步骤

        全部完成时立即写入并发出 ChecklistCompleted；
        每次调用都会发出 StepChanged。

        Raises:
            StepIndexError: index 越界
        """
        step = self._step_at(index)
        now = self._clock()
        step.completed = completed
        step.completed_at = now if completed else None

        transition = recompute(self._checklist, now)
        if transition == ChecklistStatus.COMPLETED:
            await self._persist_now()
            await self._notify_completed()
        else:
            self._schedule_save()

        await self._hub.publish(
            StepChanged(
                step=step.model_copy(deep=True),
                index=index,
                checklist=self.checklist,
            )
        )
        return step.model_copy(deep=True)

    async def update_step_note(self, index: int, text: str) -> None:
        """更新执行者备注（不影响完成状态）

        Raises:
            StepIndexError: index 越界
        """
        step = self._step_at(index)
        step.user_note = text
        self._checklist.updated_at = self._clock()
        self._schedule_save()

    async def reset_all(self) -> None:
        """清空全部进度和备注，立即写入

        破坏性操作，调用方需先取得用户确认。
        """
        for step in self._checklist.steps:
            step.completed = False
            step.completed_at = None
            step.user_note = ""
        self._checklist.status = ChecklistStatus.IN_PROGRESS
        self._checklist.completed_at = None
        recompute(self._checklist, self._clock())
        await self._persist_now()
        log.info("checklist_reset", checklist_id=self._checklist.id)

    async def mark_all_complete(self) -> None:
        """把所有未完成步骤标记为完成（共享同一时间戳），立即写入"""
        now = self._clock()
        changed = False
        for step in self._checklist.steps:
            if not step.completed:
                step.completed = True
                step.completed_at = now
                changed = True
        if not changed:
            return

        transition = recompute(self._checklist, now)
        await self._persist_now()
        if transition == ChecklistStatus.COMPLETED:
            await self._notify_completed()

    async def abandon(self) -> bool:
        """放弃执行：状态置为 abandoned，立即写入并返回上一页面

        Returns:
            False 如果当前状态不允许放弃（如已完成）
        """
        current = self._checklist.status
        if not validate_transition(current, ChecklistStatus.ABANDONED):
            log.warning(
                "checklist_abandon_rejected",
                checklist_id=self._checklist.id,
                status=current.value,
            )
            return False

        self._checklist.status = ChecklistStatus.ABANDONED
        self._checklist.updated_at = self._clock()
        await self._persist_now()
        log.info("checklist_abandoned", checklist_id=self._checklist.id)
        await self._hub.publish(NavigatedBack())
        return True

    async def check_restart(self) -> RestartCheck | ChecklistFailure:
        """检测来源 SOP 是否存在以及是否在快照后被编辑（无副作用）"""
        sop_id = self._checklist.sop_id or (
            self._source_sop.id if self._source_sop else None
        )
        sop = await self._sop_provider.get_sop(sop_id) if sop_id else None
        if sop is None:
            return ChecklistFailure.of(FailureReason.SOURCE_SOP_DELETED)
        self._source_sop = sop
        return check_staleness(self._checklist, sop)

    async def handle_restart(
        self,
        confirm: RestartConfirm | None = None,
    ) -> "InteractiveSession | ChecklistFailure | None":
        """从当前 SOP 新建一个 Checklist，原 Checklist 保持不变

        Args:
            confirm: SOP 已更新时调用的确认回调（同步或异步）；
                     为 None 或返回假值时放弃 Restart

        Returns:
            新会话；来源 SOP 已删除时返回 ChecklistFailure；用户拒绝时返回 None
        """
        check = await self.check_restart()
        if isinstance(check, ChecklistFailure):
            log.warning(
                "checklist_restart_source_missing",
                checklist_id=self._checklist.id,
                sop_id=self._checklist.sop_id,
            )
            return check

        if check.is_stale:
            log.info(
                "checklist_restart_stale",
                checklist_id=self._checklist.id,
                snapshot_at=check.snapshot_at.isoformat(),
                live_modified_at=check.live_modified_at.isoformat(),
            )
            if not await self._ask(confirm, check):
                return None

        return await self._restart(check.sop_id)

    async def flush(self) -> bool:
        """立即执行挂起的防抖写入"""
        return await self._saver.flush()

    async def discard_pending(self) -> None:
        """丢弃挂起的防抖写入并等待进行中的写入结束（Checklist 被删除时使用）"""
        self._saver.cancel()
        await self._saver.wait_idle()

    async def save_and_exit(self) -> None:
        """保存并返回上一页面"""
        await self.flush()
        await self._hub.publish(NavigatedBack())

    async def back(self) -> None:
        """返回上一页面（等同 save_and_exit，不丢失任何编辑）"""
        await self.save_and_exit()

    def _step_at(self, index: int) -> ChecklistStep:
        steps = self._checklist.steps
        if not 0 <= index < len(steps):
            raise StepIndexError(index, len(steps))
        return steps[index]

    def _schedule_save(self) -> None:
        if self._config.auto_save:
            self._saver.schedule()

    async def _persist(self) -> None:
        await self._store.upsert(self._checklist)

    async def _persist_now(self) -> None:
        """绕过防抖立即写入"""
        await self._saver.save_now()

    async def _notify_completed(self) -> None:
        log.info(
            "checklist_completed",
            checklist_id=self._checklist.id,
            total_steps=self._checklist.total_steps,
        )
        await self._hub.publish(ChecklistCompleted(checklist=self.checklist))

    @staticmethod
    async def _ask(confirm: RestartConfirm | None, check: RestartCheck) -> bool:
        if confirm is None:
            return False
        answer: Any = confirm(check)
        if inspect.isawaitable(answer):
            answer = await answer
        return bool(answer)
