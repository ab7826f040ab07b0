"""SessionConfig -- 会话控制器配置加载

从环境变量加载配置。
"""

import os

from pydantic import BaseModel, Field

from sopflow.core.config import AUTOSAVE_DELAY_MS, read_int_env


class SessionConfig(BaseModel):
    """会话控制器配置 -- 从环境变量加载

    环境变量:
        SOPFLOW_AUTOSAVE: 是否启用防抖自动保存（默认 true）
        SOPFLOW_AUTOSAVE_DELAY_MS: 防抖窗口（毫秒，默认 1000）
    """

    auto_save: bool = Field(default=True, description="是否启用防抖自动保存")
    auto_save_delay_ms: int = Field(
        default=AUTOSAVE_DELAY_MS,
        ge=0,
        description="防抖窗口（毫秒）",
    )

    @property
    def auto_save_delay_s(self) -> float:
        return self.auto_save_delay_ms / 1000


def load_session_config() -> SessionConfig:
    """从环境变量加载会话配置

    环境变量映射:
        SOPFLOW_AUTOSAVE -> auto_save (默认 true)
        SOPFLOW_AUTOSAVE_DELAY_MS -> auto_save_delay_ms (默认 1000)

    Returns:
        SessionConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("SOPFLOW_AUTOSAVE"):
        kwargs["auto_save"] = val.lower() not in ("0", "false", "no", "off")

    kwargs["auto_save_delay_ms"] = read_int_env(
        "SOPFLOW_AUTOSAVE_DELAY_MS", AUTOSAVE_DELAY_MS, minimum=0
    )

    return SessionConfig(**kwargs)
