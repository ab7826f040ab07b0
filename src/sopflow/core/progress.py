"""Progress 计算与状态派生

calculate() 是纯函数；recompute() 在每次步骤变更后就地刷新
completed_steps / total_steps / status / completed_at。

状态规则：
- 全部步骤完成且 total > 0 -> completed，并记录 completed_at
- 已 completed 但出现未完成步骤 -> in_progress，清空 completed_at
- abandoned 仅在全部完成时改变
"""

import math
from collections.abc import Sequence
from datetime import datetime

import structlog

from .models.checklist import Checklist, ChecklistStep
from .models.enums import ChecklistStatus, validate_transition
from .models.results import Progress

log = structlog.get_logger()


def calculate(steps: Sequence[ChecklistStep]) -> Progress:
    """根据步骤列表计算进度

    total 为 0 时按 1 计算百分比，避免除零；0.5 向上取整（1/8 -> 13）。
    """
    total = len(steps)
    completed = sum(1 for step in steps if step.completed)
    percentage = math.floor(completed * 100 / (total or 1) + 0.5)
    return Progress(
        completed=completed,
        total=total,
        percentage=percentage,
        is_fully_complete=total > 0 and completed == total,
    )


def sync_counts(checklist: Checklist) -> Progress:
    """按步骤重新计算 completed_steps / total_steps，不改动状态与时间"""
    progress = calculate(checklist.steps)
    checklist.completed_steps = progress.completed
    checklist.total_steps = progress.total
    return progress


def recompute(checklist: Checklist, now: datetime) -> ChecklistStatus | None:
    """重新计算派生字段并推导状态

    Args:
        checklist: 要刷新的 Checklist（就地修改）
        now: 当前时间，用于 updated_at / completed_at

    Returns:
        发生流转时返回新状态，否则 None
    """
    progress = sync_counts(checklist)
    checklist.updated_at = now

    previous = checklist.status
    if progress.is_fully_complete:
        target = ChecklistStatus.COMPLETED
    elif previous == ChecklistStatus.COMPLETED:
        target = ChecklistStatus.IN_PROGRESS
    else:
        target = previous

    if target == previous:
        return None

    if not validate_transition(previous, target):
        log.warning(
            "unexpected_status_transition",
            checklist_id=checklist.id,
            from_status=previous.value,
            to_status=target.value,
        )

    checklist.status = target
    checklist.completed_at = now if target == ChecklistStatus.COMPLETED else None
    return target
