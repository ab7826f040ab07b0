"""sopflow 异常体系

Store 层内部使用；控制器边界上统一转换为 ChecklistFailure。
"""


class SopflowError(Exception):
    """sopflow 基础异常"""

    def __init__(self, message: str, recoverable: bool = True) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 调用方能否在不中断会话的情况下恢复
        """
        super().__init__(message)
        self.recoverable = recoverable


class CorruptChecklistError(SopflowError):
    """持久化的 Checklist 记录无法解析（缺少 steps、JSON 损坏等）"""

    def __init__(self, checklist_id: str, original_error: Exception) -> None:
        """
        Args:
            checklist_id: 损坏记录的 ID
            original_error: 原始解析异常
        """
        super().__init__(
            f"Checklist 记录损坏: {checklist_id} -- {original_error}",
            recoverable=True,
        )
        self.checklist_id = checklist_id
        self.original_error = original_error


class StepIndexError(SopflowError, IndexError):
    """步骤下标越界（调用方编程错误）"""

    def __init__(self, index: int, total: int) -> None:
        super().__init__(
            f"步骤下标越界: {index}（共 {total} 步）",
            recoverable=False,
        )
        self.index = index
        self.total = total
