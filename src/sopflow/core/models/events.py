"""Session Event 模型

会话事件是封闭的 tagged union：ChecklistCompleted | NavigatedBack | StepChanged。
事件仅供观察（UI 刷新、统计），订阅者不能反向影响控制器。
携带的 Checklist 均为深拷贝。
"""

from typing import Literal

from pydantic import BaseModel, Field

from .checklist import Checklist, ChecklistStep
from .enums import FailureReason, SessionEventType


class ChecklistCompleted(BaseModel):
    """全部步骤完成"""

    type: Literal[SessionEventType.COMPLETED] = SessionEventType.COMPLETED
    checklist: Checklist


class NavigatedBack(BaseModel):
    """调用方应返回上一页面

    error 非空表示因失败返回（如 SOP 不存在），message 为面向用户的提示。
    """

    type: Literal[SessionEventType.BACK] = SessionEventType.BACK
    error: FailureReason | None = Field(default=None)
    message: str = Field(default="")


class StepChanged(BaseModel):
    """单个步骤被勾选或取消勾选"""

    type: Literal[SessionEventType.STEP_CHANGED] = SessionEventType.STEP_CHANGED
    step: ChecklistStep
    index: int = Field(ge=0)
    checklist: Checklist


SessionEvent = ChecklistCompleted | NavigatedBack | StepChanged
