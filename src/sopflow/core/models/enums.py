"""枚举定义

包含 ChecklistStatus 状态机、SessionEventType、FailureReason 枚举，
以及 VALID_TRANSITIONS 合法流转映射。
"""

from enum import StrEnum


class ChecklistStatus(StrEnum):
    """Checklist 状态机"""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


# 合法状态流转
# completed -> in_progress：取消勾选或 reset_all
# abandoned -> in_progress：resume 恢复执行
VALID_TRANSITIONS: dict[ChecklistStatus, set[ChecklistStatus]] = {
    ChecklistStatus.IN_PROGRESS: {
        ChecklistStatus.COMPLETED,
        ChecklistStatus.ABANDONED,
    },
    ChecklistStatus.COMPLETED: {ChecklistStatus.IN_PROGRESS},
    ChecklistStatus.ABANDONED: {
        ChecklistStatus.IN_PROGRESS,
        ChecklistStatus.COMPLETED,
    },
}


class SessionEventType(StrEnum):
    """会话事件类型（封闭集合）"""

    COMPLETED = "completed"
    BACK = "back"
    STEP_CHANGED = "step_changed"


class FailureReason(StrEnum):
    """可恢复失败原因 -- 以返回值形式交给调用方"""

    SOP_NOT_FOUND = "sop_not_found"
    SOP_HAS_NO_STEPS = "sop_has_no_steps"
    CHECKLIST_NOT_FOUND = "checklist_not_found"
    CHECKLIST_INVALID = "checklist_invalid"
    SOURCE_SOP_DELETED = "source_sop_deleted"


def validate_transition(
    from_status: ChecklistStatus, to_status: ChecklistStatus
) -> bool:
    """验证状态流转是否合法

    Args:
        from_status: 当前状态
        to_status: 目标状态

    Returns:
        True 如果流转合法，否则 False
    """
    allowed = VALID_TRANSITIONS.get(from_status, set())
    return to_status in allowed
