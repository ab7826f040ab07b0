"""全局 pytest 配置 -- async 测试支持 + 临时 SQLite 数据库 + 测试替身"""

import asyncio
import logging
from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

import aiosqlite
import pytest
import pytest_asyncio
import structlog
from sopflow.core.models import Checklist, Sop, SopStep
from sopflow.core.store import InMemoryChecklistStore, InMemorySopProvider
from sopflow.session.config import SessionConfig
from sopflow.session.controller import ChecklistController
from sopflow.session.event_hub import SessionEventHub

T0 = datetime(2026, 1, 1, 9, 0, tzinfo=UTC)


class FakeClock:
    """可手动推进的时钟"""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 1) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class CountingChecklistStore(InMemoryChecklistStore):
    """记录每次写入的内存 Store"""

    def __init__(self) -> None:
        super().__init__()
        self.writes: list[Checklist] = []

    async def upsert(self, checklist: Checklist) -> None:
        self.writes.append(checklist.model_copy(deep=True))
        await super().upsert(checklist)


class SlowChecklistStore(InMemoryChecklistStore):
    """upsert 先取快照再等待，模拟真实 I/O 耗时"""

    def __init__(self, delay_s: float = 0.2) -> None:
        super().__init__()
        self.delay_s = delay_s

    async def upsert(self, checklist: Checklist) -> None:
        snapshot = checklist.model_copy(deep=True)
        await asyncio.sleep(self.delay_s)
        await super().upsert(snapshot)


def _build_sop(
    sop_id: str = "sop_1",
    steps: list[str] | None = None,
    updated_at: datetime | None = T0,
    created_at: datetime = T0,
) -> Sop:
    """构造测试 SOP"""
    texts = ["A", "B"] if steps is None else steps
    return Sop(
        id=sop_id,
        title=f"SOP {sop_id}",
        folder_id="folder_ops",
        steps=[
            SopStep(id=f"s{i}", text=text, note=f"note {text}")
            for i, text in enumerate(texts)
        ],
        created_at=created_at,
        updated_at=updated_at,
    )


@pytest_asyncio.fixture
async def tmp_db_path(tmp_path: Path) -> Path:
    """提供临时 SQLite 数据库路径"""
    return tmp_path / "test.db"


@pytest_asyncio.fixture
async def db_conn(tmp_db_path: Path) -> AsyncGenerator[aiosqlite.Connection, None]:
    """提供已初始化的临时 SQLite 数据库连接"""
    from sopflow.core.store.sqlite_init import init_db

    conn = await aiosqlite.connect(str(tmp_db_path))
    await init_db(conn)
    yield conn
    await conn.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def checklist_store() -> CountingChecklistStore:
    return CountingChecklistStore()


@pytest.fixture
def sop_provider() -> InMemorySopProvider:
    return InMemorySopProvider([_build_sop()])


@pytest.fixture
def session_config() -> SessionConfig:
    """短防抖窗口，便于测试合并写入"""
    return SessionConfig(auto_save=True, auto_save_delay_ms=50)


@pytest.fixture
def hub() -> SessionEventHub:
    return SessionEventHub()


@pytest.fixture
def make_controller(
    checklist_store: CountingChecklistStore,
    sop_provider: InMemorySopProvider,
    hub: SessionEventHub,
    session_config: SessionConfig,
    clock: FakeClock,
) -> Callable[..., ChecklistController]:
    """按需覆盖依赖构造控制器"""

    def factory(**overrides) -> ChecklistController:
        kwargs = {
            "checklist_store": checklist_store,
            "sop_provider": sop_provider,
            "hub": hub,
            "config": session_config,
            "clock": clock,
        }
        kwargs.update(overrides)
        return ChecklistController(**kwargs)

    return factory


@pytest.fixture
def controller(make_controller) -> ChecklistController:
    return make_controller()


@pytest.fixture
def slow_store() -> SlowChecklistStore:
    return SlowChecklistStore()


@pytest.fixture
def slow_controller(make_controller, slow_store) -> ChecklistController:
    """写入耗时 200ms、防抖窗口 10ms 的控制器"""
    return make_controller(
        checklist_store=slow_store,
        config=SessionConfig(auto_save=True, auto_save_delay_ms=10),
    )


@pytest.fixture
def make_sop() -> Callable[..., Sop]:
    """SOP 构造函数（默认 sop_1，步骤 A/B，updated_at=T0）"""
    return _build_sop


@pytest.fixture
def t0() -> datetime:
    return T0


@pytest.fixture
def restore_logging():
    """还原 setup_logging 修改的全局日志配置"""
    root_logger = logging.getLogger()
    level = root_logger.level
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    for handler in list(root_logger.handlers):
        if isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter):
            root_logger.removeHandler(handler)
    root_logger.setLevel(level)
