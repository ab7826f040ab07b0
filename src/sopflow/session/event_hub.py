"""SessionEventHub -- 内存中会话事件分发器

订阅按 SessionEventType 分组，支持 subscribe/unsubscribe/publish。
未注册任何 handler 的事件直接忽略；handler 可以是同步函数或协程函数。
handler 抛出的异常只记录日志，不会传回控制器。
"""

import inspect
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from sopflow.core.models import SessionEvent, SessionEventType

log = structlog.get_logger()

EventHandler = Callable[[SessionEvent], Awaitable[Any] | Any]


class SessionEventHub:
    """会话事件分发器 -- 观察者模式"""

    def __init__(self) -> None:
        # event_type -> handlers（保持注册顺序）
        self._subscribers: dict[SessionEventType, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: SessionEventType, handler: EventHandler) -> None:
        """订阅指定类型的事件

        Args:
            event_type: 事件类型
            handler: 回调，接收事件模型
        """
        event_type = SessionEventType(event_type)
        if handler not in self._subscribers[event_type]:
            self._subscribers[event_type].append(handler)

    def unsubscribe(self, event_type: SessionEventType, handler: EventHandler) -> None:
        """取消订阅（未订阅时静默）"""
        handlers = self._subscribers.get(event_type)
        if not handlers:
            return
        if handler in handlers:
            handlers.remove(handler)
        if not handlers:
            del self._subscribers[event_type]

    async def publish(self, event: SessionEvent) -> None:
        """向该类型的所有订阅者分发事件

        Args:
            event: 要分发的事件
        """
        for handler in list(self._subscribers.get(event.type, [])):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                log.error(
                    "session_event_handler_failed",
                    event_type=event.type.value,
                    error_type=type(e).__name__,
                )
