"""Store Protocol 接口定义

定义 ChecklistStore、SopProvider 的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
"""

from typing import Protocol

from ..models.checklist import Checklist
from ..models.sop import Sop


class ChecklistStore(Protocol):
    """Checklist 存储接口

    按 key last-write-wins，无事务保证；
    list_all 不保证顺序，由调用方排序。
    """

    async def list_all(self) -> list[Checklist]:
        """查询全部 Checklist（跳过无法解析的记录）"""
        ...

    async def get_checklist(self, checklist_id: str) -> Checklist | None:
        """根据 ID 查询，记录损坏时抛出 CorruptChecklistError"""
        ...

    async def upsert(self, checklist: Checklist) -> None:
        """新增或整体覆盖"""
        ...

    async def delete_by_id(self, checklist_id: str) -> None:
        """删除（不存在时静默）"""
        ...


class SopProvider(Protocol):
    """SOP 只读接口（SOP 由外部系统维护）"""

    async def get_sop(self, sop_id: str) -> Sop | None:
        """根据 ID 查询 SOP"""
        ...
