"""sopflow 日志配置

进程入口（CLI 或嵌入方）调用一次 setup_logging()；库代码只使用
structlog.get_logger()，不自行配置。

- 渲染：dev（控制台可读）或 json（每行一个 JSON 对象）
- 级别：标准 logging 级别名
- 上下文：component 通过 contextvars 绑定到之后的每条日志
环境变量取值非法时回退到默认值，并在配置完成后记录 invalid_log_config。
"""

import logging
import os

import structlog

LOG_FORMATS = ("dev", "json")
DEFAULT_LOG_FORMAT = "dev"
DEFAULT_LOG_LEVEL = "INFO"


def _resolve(
    explicit: str | None,
    env_var: str,
    default: str,
    valid: set[str],
    invalid: list[dict],
) -> str:
    raw = explicit or os.environ.get(env_var) or default
    value = raw.lower() if default.islower() else raw.upper()
    if value in valid:
        return value
    invalid.append({"env_var": env_var, "value": raw, "fallback": default})
    return default


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer()


def setup_logging(
    log_format: str | None = None,
    log_level: str | None = None,
    component: str = "sopflow",
) -> None:
    """配置 structlog 与标准库 logging

    Args:
        log_format: "dev" / "json"，缺省读取 SOPFLOW_LOG_FORMAT
        log_level: 级别名，缺省读取 SOPFLOW_LOG_LEVEL
        component: 绑定到每条日志的组件名（如 "cli"）
    """
    invalid: list[dict] = []
    log_format = _resolve(
        log_format, "SOPFLOW_LOG_FORMAT", DEFAULT_LOG_FORMAT, set(LOG_FORMATS), invalid
    )
    level_name = _resolve(
        log_level,
        "SOPFLOW_LOG_LEVEL",
        DEFAULT_LOG_LEVEL,
        set(logging.getLevelNamesMapping()),
        invalid,
    )

    # structlog 与标准库日志共用的前置处理
    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if log_format == "json":
        pre_chain.append(structlog.processors.format_exc_info)

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        # 不缓存：允许重复调用 setup_logging 切换配置
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=_renderer(log_format),
            foreign_pre_chain=pre_chain,
        )
    )
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.getLevelNamesMapping()[level_name])

    structlog.contextvars.bind_contextvars(component=component)

    log = structlog.get_logger(__name__)
    for item in invalid:
        log.warning("invalid_log_config", **item)
