"""ChecklistController -- Checklist 执行引擎入口

负责 Checklist 的完整生命周期：
1. create_from_sop：从 SOP 拍快照创建 Checklist 并持久化
2. start_from_sop / resume_checklist：进入可交互会话
3. view_completed：进入只读会话
4. delete_checklist 与各类查询

所有失败都以 ChecklistFailure 返回，由调用方决定提示与导航；
入口失败时同时发出 NavigatedBack(error=...)。
"""

from collections.abc import Callable
from datetime import UTC, datetime

import structlog

from sopflow.core.config import get_recent_checklists_limit
from sopflow.core.exceptions import CorruptChecklistError
from sopflow.core.models import (
    Checklist,
    ChecklistFailure,
    ChecklistStatus,
    FailureReason,
    NavigatedBack,
    SessionEventType,
    Sop,
)
from sopflow.core.progress import sync_counts
from sopflow.core.snapshot import build_checklist
from sopflow.core.store.protocols import ChecklistStore, SopProvider

from .config import SessionConfig, load_session_config
from .event_hub import EventHandler, SessionEventHub
from .sessions import InteractiveSession, ReadOnlySession

log = structlog.get_logger()


def _utc_now() -> datetime:
    return datetime.now(UTC)


class ChecklistController:
    """Checklist 会话控制器"""

    def __init__(
        self,
        checklist_store: ChecklistStore,
        sop_provider: SopProvider,
        hub: SessionEventHub | None = None,
        config: SessionConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = checklist_store
        self._sop_provider = sop_provider
        self._hub = hub or SessionEventHub()
        self._config = config or load_session_config()
        self._clock = clock or _utc_now
        self._current: InteractiveSession | ReadOnlySession | None = None

    @property
    def hub(self) -> SessionEventHub:
        return self._hub

    @property
    def current(self) -> InteractiveSession | ReadOnlySession | None:
        """当前会话"""
        return self._current

    def on(self, event_type: SessionEventType, handler: EventHandler) -> None:
        """注册事件回调"""
        self._hub.subscribe(event_type, handler)

    async def create_from_sop(self, sop_id: str) -> Checklist | ChecklistFailure:
        """从 SOP 创建 Checklist 快照并持久化

        不发出任何会话事件；失败时不写入任何记录。
        """
        sop = await self._sop_provider.get_sop(sop_id)
        if sop is None:
            log.warning("checklist_create_sop_not_found", sop_id=sop_id)
            return ChecklistFailure.of(FailureReason.SOP_NOT_FOUND)
        return await self._create_from(sop)

    async def start_from_sop(self, sop_id: str) -> InteractiveSession | ChecklistFailure:
        """新建 Checklist 并进入可交互会话"""
        sop = await self._sop_provider.get_sop(sop_id)
        if sop is None:
            log.warning("checklist_create_sop_not_found", sop_id=sop_id)
            return await self._fail(ChecklistFailure.of(FailureReason.SOP_NOT_FOUND))

        created = await self._create_from(sop)
        if isinstance(created, ChecklistFailure):
            return await self._fail(created)

        return await self._open_interactive(created, sop)

    async def resume_checklist(
        self, checklist_id: str
    ) -> InteractiveSession | ChecklistFailure:
        """恢复已有 Checklist，进入可交互会话

        来源 SOP 仅为 Restart 检测而获取，不存在也不影响恢复。
        """
        loaded = await self._load(checklist_id)
        if isinstance(loaded, ChecklistFailure):
            return await self._fail(loaded)

        if loaded.status == ChecklistStatus.ABANDONED:
            loaded.status = ChecklistStatus.IN_PROGRESS
            loaded.updated_at = self._clock()
            await self._store.upsert(loaded)
            log.info("checklist_revived", checklist_id=checklist_id)

        sop = await self._sop_provider.get_sop(loaded.sop_id)
        return await self._open_interactive(loaded, sop)

    async def view_completed(self, checklist_id: str) -> ReadOnlySession | ChecklistFailure:
        """以只读模式查看 Checklist"""
        loaded = await self._load(checklist_id)
        if isinstance(loaded, ChecklistFailure):
            return await self._fail(loaded)

        await self._close_current()
        session = ReadOnlySession(loaded, self._hub)
        self._current = session
        return session

    async def delete_checklist(self, checklist_id: str) -> None:
        """删除 Checklist，不影响来源 SOP"""
        current = self._current
        if current is not None and current.checklist_id == checklist_id:
            if isinstance(current, InteractiveSession):
                # 丢弃挂起写入并等待进行中的写入，避免删除后被重新写回
                await current.discard_pending()
            self._current = None
        await self._store.delete_by_id(checklist_id)
        log.info("checklist_deleted", checklist_id=checklist_id)

    async def get_checklist(self, checklist_id: str) -> Checklist | None:
        """按 ID 查询（记录损坏时返回 None）"""
        try:
            return await self._store.get_checklist(checklist_id)
        except CorruptChecklistError:
            log.warning("corrupt_checklist_skipped", checklist_id=checklist_id)
            return None

    async def list_checklists(
        self,
        status: ChecklistStatus | None = None,
        sop_id: str | None = None,
    ) -> list[Checklist]:
        """按 updated_at 倒序列出，可按状态与来源 SOP 过滤"""
        checklists = await self._store.list_all()
        if status is not None:
            checklists = [c for c in checklists if c.status == status]
        if sop_id is not None:
            checklists = [c for c in checklists if c.sop_id == sop_id]
        checklists.sort(key=lambda c: c.updated_at, reverse=True)
        return checklists

    async def get_recent_checklists(self, limit: int | None = None) -> list[Checklist]:
        """最近更新的 Checklist"""
        checklists = await self.list_checklists()
        return checklists[: limit if limit is not None else get_recent_checklists_limit()]

    async def get_in_progress_checklists(self) -> list[Checklist]:
        """进行中的 Checklist，按 updated_at 倒序"""
        return await self.list_checklists(status=ChecklistStatus.IN_PROGRESS)

    async def close(self) -> None:
        """关闭当前会话（flush 挂起写入）"""
        await self._close_current()

    async def _create_from(self, sop: Sop) -> Checklist | ChecklistFailure:
        if not sop.steps:
            log.warning("checklist_create_sop_has_no_steps", sop_id=sop.id)
            return ChecklistFailure.of(FailureReason.SOP_HAS_NO_STEPS)

        checklist = build_checklist(sop, self._clock())
        await self._store.upsert(checklist)
        log.info(
            "checklist_created",
            checklist_id=checklist.id,
            sop_id=sop.id,
            total_steps=checklist.total_steps,
        )
        return checklist

    async def _load(self, checklist_id: str) -> Checklist | ChecklistFailure:
        """加载并校验 Checklist"""
        try:
            checklist = await self._store.get_checklist(checklist_id)
        except CorruptChecklistError as e:
            log.warning(
                "checklist_load_corrupt",
                checklist_id=checklist_id,
                error_type=type(e.original_error).__name__,
            )
            return ChecklistFailure.of(FailureReason.CHECKLIST_INVALID)

        if checklist is None:
            log.warning("checklist_not_found", checklist_id=checklist_id)
            return ChecklistFailure.of(FailureReason.CHECKLIST_NOT_FOUND)

        if not checklist.is_runnable:
            log.warning("checklist_invalid", checklist_id=checklist_id)
            return ChecklistFailure.of(FailureReason.CHECKLIST_INVALID)

        sync_counts(checklist)
        return checklist

    async def _open_interactive(
        self, checklist: Checklist, sop: Sop | None
    ) -> InteractiveSession:
        await self._close_current()
        session = InteractiveSession(
            checklist,
            store=self._store,
            sop_provider=self._sop_provider,
            hub=self._hub,
            config=self._config,
            clock=self._clock,
            restart=self.start_from_sop,
            source_sop=sop,
        )
        self._current = session
        return session

    async def _close_current(self) -> None:
        if self._current is not None:
            await self._current.flush()
            self._current = None

    async def _fail(self, failure: ChecklistFailure) -> ChecklistFailure:
        await self._hub.publish(
            NavigatedBack(error=failure.reason, message=failure.message)
        )
        return failure
