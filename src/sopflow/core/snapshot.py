"""SOP -> Checklist 快照构建 + 过期检测

快照规则：
- Checklist 在创建时深拷贝 SOP 的标题与步骤
- 之后 SOP 的编辑不会影响已有 Checklist
- sop_snapshot_at 记录当时观察到的 SOP 版本时间
- Restart 时比较 SOP 当前版本与 sop_snapshot_at，判断是否需要确认
"""

from datetime import datetime

from ulid import ULID

from .config import STEP_ID_PREFIX
from .models.checklist import Checklist, ChecklistStep
from .models.enums import ChecklistStatus
from .models.results import RestartCheck
from .models.sop import Sop


def build_checklist(sop: Sop, now: datetime) -> Checklist:
    """从 SOP 构建新的 Checklist 快照

    调用方需保证 sop.steps 非空。
    """
    steps = [
        ChecklistStep(
            id=step.id or f"{STEP_ID_PREFIX}{i}",
            text=step.text,
            note=step.note,
            order=i + 1,
        )
        for i, step in enumerate(sop.steps)
    ]
    return Checklist(
        id=str(ULID()),
        sop_id=sop.id,
        sop_title=sop.title,
        sop_snapshot_at=sop.last_modified,
        folder_id=sop.folder_id,
        steps=steps,
        status=ChecklistStatus.IN_PROGRESS,
        completed_steps=0,
        total_steps=len(steps),
        created_at=now,
        updated_at=now,
    )


def check_staleness(checklist: Checklist, sop: Sop) -> RestartCheck:
    """比较 SOP 当前版本与 Checklist 快照版本

    仅当 SOP 最后修改时间严格晚于快照时间时视为过期。
    """
    live_modified_at = sop.last_modified
    return RestartCheck(
        sop_id=sop.id,
        snapshot_at=checklist.sop_snapshot_at,
        live_modified_at=live_modified_at,
        is_stale=live_modified_at > checklist.sop_snapshot_at,
    )
