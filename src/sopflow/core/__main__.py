"""CLI 入口模块 -- python -m sopflow.core <command>

支持的命令：
  import-sops <file.json>     从 JSON 数组导入 SOP
  list-checklists [status]    列出最近的 Checklist 及进度
"""

import asyncio
import json
import sys
from pathlib import Path

from .config import get_db_path
from .logging_config import setup_logging

_USAGE = """用法: python -m sopflow.core <command>
命令:
  import-sops <file.json>     从 JSON 数组导入 SOP
  list-checklists [status]    列出最近的 Checklist 及进度"""


def main() -> None:
    """CLI 主入口"""
    setup_logging(component="cli")
    if len(sys.argv) < 2:
        print(_USAGE)
        sys.exit(1)

    command = sys.argv[1]

    if command == "import-sops":
        if len(sys.argv) < 3:
            print("缺少参数: <file.json>")
            sys.exit(1)
        asyncio.run(import_sops_from_file(Path(sys.argv[2])))
    elif command == "list-checklists":
        status = sys.argv[2] if len(sys.argv) > 2 else None
        asyncio.run(list_checklists(status))
    else:
        print(f"未知命令: {command}")
        print("可用命令: import-sops, list-checklists")
        sys.exit(1)


async def import_sops_from_file(path: Path) -> None:
    """执行 SOP 导入"""
    from .models.sop import Sop
    from .store import create_store_group, import_sops

    data = json.loads(path.read_text(encoding="utf-8"))
    sops = [Sop.model_validate(item) for item in data]

    store_group = await create_store_group(get_db_path())
    try:
        count = await import_sops(store_group.conn, store_group.sop_store, sops)
        print(f"导入完成，共 {count} 个 SOP")
    finally:
        await store_group.conn.close()


async def list_checklists(status: str | None) -> None:
    """按 updated_at 倒序打印 Checklist"""
    from .progress import calculate
    from .store import create_store_group

    store_group = await create_store_group(get_db_path())
    try:
        checklists = await store_group.checklist_store.list_all()
    finally:
        await store_group.conn.close()

    if status:
        checklists = [c for c in checklists if c.status == status]
    checklists.sort(key=lambda c: c.updated_at, reverse=True)

    if not checklists:
        print("没有 Checklist")
        return
    for checklist in checklists:
        progress = calculate(checklist.steps)
        print(
            f"{checklist.id}  {checklist.status.value:<12} "
            f"{progress.completed}/{progress.total} ({progress.percentage}%)  "
            f"{checklist.sop_title}"
        )


if __name__ == "__main__":
    main()
