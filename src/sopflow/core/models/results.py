"""返回值类型 -- 失败以值的形式返回，不跨模块抛出异常"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import FailureReason

# 默认面向用户的提示文案
FAILURE_MESSAGES: dict[FailureReason, str] = {
    FailureReason.SOP_NOT_FOUND: "SOP not found",
    FailureReason.SOP_HAS_NO_STEPS: "Cannot create checklist - SOP has no steps",
    FailureReason.CHECKLIST_NOT_FOUND: "Checklist not found",
    FailureReason.CHECKLIST_INVALID: "Checklist data is invalid",
    FailureReason.SOURCE_SOP_DELETED: "Cannot restart - SOP has been deleted",
}


class ChecklistFailure(BaseModel):
    """可恢复失败"""

    reason: FailureReason
    message: str = Field(default="", description="面向用户的提示")

    @classmethod
    def of(cls, reason: FailureReason) -> "ChecklistFailure":
        """使用默认文案构造"""
        return cls(reason=reason, message=FAILURE_MESSAGES[reason])


class Progress(BaseModel):
    """进度计算结果"""

    completed: int = Field(ge=0)
    total: int = Field(ge=0)
    percentage: int = Field(ge=0, le=100)
    is_fully_complete: bool


class RestartCheck(BaseModel):
    """Restart 前的过期检测结果"""

    sop_id: str
    snapshot_at: datetime = Field(description="Checklist 创建时的 SOP 版本时间")
    live_modified_at: datetime = Field(description="当前 SOP 的最后修改时间")
    is_stale: bool = Field(description="SOP 是否在快照之后被编辑过")
