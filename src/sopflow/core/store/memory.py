"""内存 Store 实现 -- 嵌入式使用与测试替身

读写均深拷贝，调用方持有的对象不会与存储状态共享引用。
"""

from ..models.checklist import Checklist
from ..models.sop import Sop


class InMemoryChecklistStore:
    """ChecklistStore 的内存实现，新记录插入到最前"""

    def __init__(self) -> None:
        self._items: list[Checklist] = []

    async def list_all(self) -> list[Checklist]:
        return [item.model_copy(deep=True) for item in self._items]

    async def get_checklist(self, checklist_id: str) -> Checklist | None:
        for item in self._items:
            if item.id == checklist_id:
                return item.model_copy(deep=True)
        return None

    async def upsert(self, checklist: Checklist) -> None:
        stored = checklist.model_copy(deep=True)
        for i, item in enumerate(self._items):
            if item.id == checklist.id:
                self._items[i] = stored
                return
        self._items.insert(0, stored)

    async def delete_by_id(self, checklist_id: str) -> None:
        self._items = [item for item in self._items if item.id != checklist_id]


class InMemorySopProvider:
    """SopProvider 的内存实现"""

    def __init__(self, sops: list[Sop] | None = None) -> None:
        self._sops: dict[str, Sop] = {}
        for sop in sops or []:
            self.put_sop(sop)

    async def get_sop(self, sop_id: str) -> Sop | None:
        sop = self._sops.get(sop_id)
        return sop.model_copy(deep=True) if sop else None

    def put_sop(self, sop: Sop) -> None:
        """写入或覆盖 SOP"""
        self._sops[sop.id] = sop.model_copy(deep=True)

    def delete_sop(self, sop_id: str) -> None:
        """删除 SOP"""
        self._sops.pop(sop_id, None)
