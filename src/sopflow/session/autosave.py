"""DebouncedSaver -- 防抖自动保存

schedule() 在 delay 之后执行一次写入；窗口内再次 schedule() 会取消并重新计时，
把连续操作合并为一次写入。

所有写入（防抖、flush、save_now）经同一把锁串行执行：
- 计时结束后写入开始，此时 cancel() 无法打断，只能等待其完成（wait_idle）
- flush() 等待进行中的写入，若其后仍有未写入的变更则再写一次
"""

import asyncio
from collections.abc import Awaitable, Callable

import structlog

log = structlog.get_logger()


class DebouncedSaver:
    """基于 asyncio.Task 的防抖写入器"""

    def __init__(
        self,
        save: Callable[[], Awaitable[None]],
        delay_s: float,
        name: str = "",
    ) -> None:
        """
        Args:
            save: 实际写入函数，执行时读取最新状态
            delay_s: 防抖窗口（秒）
            name: 日志标识（通常为 checklist_id）
        """
        self._save = save
        self._delay_s = delay_s
        self._name = name
        # 计时中的任务（尚未开始写入）
        self._timer: asyncio.Task | None = None
        # 有尚未交给 save 的变更
        self._dirty = False
        self._lock = asyncio.Lock()

    @property
    def pending(self) -> bool:
        """是否有尚未落盘的写入（计时中、写入中或写入后又有变更）"""
        return self._dirty or self._lock.locked()

    @property
    def writing(self) -> bool:
        """是否有写入正在进行"""
        return self._lock.locked()

    def schedule(self) -> None:
        """标记变更并安排一次延迟写入，取消之前的计时"""
        self._dirty = True
        self._cancel_timer()
        self._timer = asyncio.get_running_loop().create_task(self._run())

    def cancel(self) -> None:
        """丢弃尚未开始的写入；进行中的写入不受影响，需 wait_idle()"""
        self._cancel_timer()
        self._dirty = False

    async def wait_idle(self) -> None:
        """等待进行中的写入结束"""
        async with self._lock:
            pass

    async def flush(self) -> bool:
        """立即落盘：等待进行中的写入，再写入其后的变更

        Returns:
            True 如果本次调用执行了写入
        """
        self._cancel_timer()
        async with self._lock:
            if not self._dirty:
                return False
            await self._write_locked()
        log.debug("autosave_flushed", name=self._name)
        return True

    async def save_now(self) -> None:
        """绕过防抖立即写入（排在进行中的写入之后）"""
        self._cancel_timer()
        async with self._lock:
            await self._write_locked()

    async def _write_locked(self) -> None:
        # 先清标记：写入期间的新变更会重新置位
        self._dirty = False
        try:
            await self._save()
        except Exception:
            self._dirty = True
            raise

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def _run(self) -> None:
        """等待防抖窗口后写入"""
        try:
            await asyncio.sleep(self._delay_s)
        except asyncio.CancelledError:
            return
        self._timer = None
        async with self._lock:
            if not self._dirty:
                return
            try:
                await self._write_locked()
            except Exception as e:
                # 后台写入失败只记录；变更仍标记为未写入，等待 flush 重试
                log.error(
                    "autosave_failed",
                    name=self._name,
                    error_type=type(e).__name__,
                )
