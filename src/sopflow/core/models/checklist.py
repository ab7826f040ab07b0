"""Checklist Domain Model

Checklist 是 SOP 在创建时刻的不可变快照 + 执行状态。
快照字段（步骤 text/note、sop_title 等）声明为 frozen，
创建后任何赋值都会抛出 ValidationError；
每个步骤只有 completed / completed_at / user_note 可变。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import ChecklistStatus


class ChecklistStep(BaseModel):
    """Checklist 步骤 -- SOP 步骤快照 + 执行状态"""

    id: str = Field(frozen=True, description="步骤 ID（来自 SOP）")
    text: str = Field(frozen=True, description="步骤说明快照")
    note: str = Field(default="", frozen=True, description="作者备注快照")
    order: int = Field(frozen=True, ge=1, description="1 起始的位置序号")
    user_note: str = Field(default="", description="执行者备注")
    completed: bool = Field(default=False, description="是否完成")
    completed_at: datetime | None = Field(default=None, description="完成时间")


class Checklist(BaseModel):
    """Checklist 数据模型

    completed_steps / total_steps 是派生字段，
    只能由 progress.recompute() 在每次变更后重新计算。
    """

    id: str = Field(frozen=True, description="唯一标识，ULID 格式")
    sop_id: str = Field(frozen=True, description="来源 SOP（弱引用，SOP 可能已删除）")
    sop_title: str = Field(frozen=True, description="创建时复制的 SOP 标题")
    sop_snapshot_at: datetime = Field(
        frozen=True,
        description="创建时观察到的 SOP updated_at/created_at",
    )
    folder_id: str | None = Field(default=None, frozen=True, description="所属文件夹")
    steps: list[ChecklistStep] = Field(frozen=True, description="步骤快照")
    status: ChecklistStatus = Field(
        default=ChecklistStatus.IN_PROGRESS,
        description="当前状态",
    )
    completed_steps: int = Field(default=0, ge=0, description="已完成步骤数（派生）")
    total_steps: int = Field(default=0, ge=0, description="步骤总数（派生）")
    created_at: datetime = Field(frozen=True, description="创建时间")
    updated_at: datetime = Field(description="更新时间")
    completed_at: datetime | None = Field(default=None, description="完成时间")

    @property
    def is_runnable(self) -> bool:
        """是否可执行：步骤非空且 total_steps 为正"""
        return bool(self.steps) and self.total_steps > 0
