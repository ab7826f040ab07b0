"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、自动保存延迟、最近列表条数等可配置常量。
环境变量的值无法解析时记录告警并回退到默认值，不阻塞启动。
"""

import os
from pathlib import Path

import structlog

log = structlog.get_logger()


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("SOPFLOW_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "SOPFLOW_DB_PATH",
        str(_get_base_dir() / "sqlite" / "sopflow.db"),
    )


def read_int_env(name: str, default: int, minimum: int = 0) -> int:
    """读取整数环境变量

    未设置时返回 default；非整数或小于 minimum 时记录
    invalid_int_config 告警并返回 default。
    """
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        value = None
    if value is None or value < minimum:
        log.warning(
            "invalid_int_config",
            env_var=name,
            value=raw,
            fallback=default,
        )
        return default
    return value


# 自动保存防抖窗口（毫秒）
AUTOSAVE_DELAY_MS: int = 1000

# get_recent_checklists 默认条数
DEFAULT_RECENT_LIMIT: int = 10


def get_recent_checklists_limit() -> int:
    """get_recent_checklists 默认条数（SOPFLOW_RECENT_LIMIT，至少 1）"""
    return read_int_env("SOPFLOW_RECENT_LIMIT", DEFAULT_RECENT_LIMIT, minimum=1)


# 缺省步骤 ID 前缀（SOP 步骤没有 id 时按位置生成）
STEP_ID_PREFIX: str = "step_"
