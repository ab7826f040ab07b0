"""sopflow Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .checklist import Checklist, ChecklistStep
from .enums import (
    VALID_TRANSITIONS,
    ChecklistStatus,
    FailureReason,
    SessionEventType,
    validate_transition,
)
from .events import ChecklistCompleted, NavigatedBack, SessionEvent, StepChanged
from .results import FAILURE_MESSAGES, ChecklistFailure, Progress, RestartCheck
from .sop import Sop, SopStep

__all__ = [
    # 枚举
    "ChecklistStatus",
    "SessionEventType",
    "FailureReason",
    # 状态机
    "VALID_TRANSITIONS",
    "validate_transition",
    # SOP
    "Sop",
    "SopStep",
    # Checklist
    "Checklist",
    "ChecklistStep",
    # 会话事件
    "SessionEvent",
    "ChecklistCompleted",
    "NavigatedBack",
    "StepChanged",
    # 返回值
    "ChecklistFailure",
    "FAILURE_MESSAGES",
    "Progress",
    "RestartCheck",
]
