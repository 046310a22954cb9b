# src/review_relay/observability/logging_config.py
"""
集中配置日志系统：structlog ⇄ 标准 logging，并与 Rich 集成。

两种输出：
- console：开发环境的面板式输出（本地时间）。
- json   ：生产环境的结构化日志（ISO-8601，UTC），便于日志平台聚合。

structlog 通过 ProcessorFormatter 桥接到标准 logging，因此 httpx、
google-cloud 等第三方库的日志也走同一套渲染。
"""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from typing import TYPE_CHECKING, Any, Literal

import structlog
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from structlog.typing import Processor

if TYPE_CHECKING:
    from review_relay.config import RelayConfig

# 这些库在 INFO 级别下输出过多
NOISY_LOGGERS = (
    "asyncio",
    "httpx",
    "httpcore",
    "urllib3",
    "google",
    "grpc",
)

_LEVEL_STYLES: dict[str, tuple[str, str]] = {
    "debug": ("cyan", "DEBUG   "),
    "info": ("green", "INFO    "),
    "warning": ("yellow", "WARNING "),
    "error": ("bold red", "ERROR   "),
    "critical": ("magenta", "CRITICAL"),
}


class HybridPanelRenderer:
    """
    structlog 处理器：将一条日志渲染为 Rich 面板。

    标题为等宽级别标签加 logger 名称，正文为事件消息，
    附加的键值对以两列表格展示，超长值去引号后折行。
    """

    def __init__(
        self,
        *,
        kv_truncate_at: int = 256,
        show_timestamp: bool = True,
        show_logger_name: bool = True,
        kv_key_width: int = 15,
    ) -> None:
        self._console = Console()
        self._kv_truncate_at = kv_truncate_at
        self._show_timestamp = show_timestamp
        self._show_logger_name = show_logger_name
        self._kv_key_width = kv_key_width
        self._is_first_render = True

    def __call__(
        self, logger: Any, name: str, event_dict: MutableMapping[str, Any]
    ) -> str:
        message = str(event_dict.pop("event", "")).strip()
        if not message:
            return ""

        timestamp = event_dict.pop("timestamp", "")
        level = str(event_dict.pop("level", "info")).lower()
        logger_name = event_dict.pop("logger", "unknown")
        event_dict.pop("_record", None)
        event_dict.pop("_from_structlog", None)

        style, label = _LEVEL_STYLES.get(level, ("dim", level.upper()))
        title = f"[{style}]{label}[/]"
        if self._show_logger_name:
            title += f" [cyan dim]({logger_name})[/]"

        body: list[Any] = [Text(message)]
        if event_dict:
            body.append(self._kv_table(event_dict))

        with self._console.capture() as capture:
            self._console.print(
                Panel(
                    Group(*body),
                    title=Text.from_markup(title),
                    title_align="left",
                    subtitle=(
                        Text(str(timestamp), style="dim")
                        if self._show_timestamp and timestamp
                        else None
                    ),
                    subtitle_align="right",
                    border_style=style,
                    expand=False,
                )
            )
        rendered = capture.get().rstrip()

        # 首条日志前空一行，避免与命令行输出粘连
        if self._is_first_render and rendered:
            self._is_first_render = False
            return f"\n{rendered}"
        return rendered

    def _kv_table(self, kv: MutableMapping[str, Any]) -> Table:
        table = Table(show_header=False, show_edge=False, box=None, padding=(0, 1))
        table.add_column(style="dim", justify="right", width=self._kv_key_width)
        table.add_column(style="bright_white", overflow="fold")
        for key, value in sorted(kv.items()):
            value_repr = repr(value)
            if len(value_repr) > self._kv_truncate_at and value_repr[:1] in "'\"":
                value_repr = value_repr[1:-1]
            table.add_row(f"{key} :", Text(value_repr))
        return table


def setup_logging(
    *,
    log_level: str = "INFO",
    log_format: Literal["json", "console"] = "console",
    root_level: str | None = None,
    service: str | None = None,
    silence_noisy_libs: bool = True,
) -> None:
    """
    配置全局 structlog 日志系统。

    Args:
        log_level: `review_relay` 命名空间下 logger 的最低级别。
        log_format: 'console'（开发）或 'json'（生产）。
        root_level: 根 logger 级别，默认 WARNING。
        service: 通过 contextvars 绑定到每条日志的服务名。
        silence_noisy_libs: 是否下调第三方噪声 logger 的级别。
    """
    timestamper = (
        structlog.processors.TimeStamper(fmt="iso", utc=True)
        if log_format == "json"
        else structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False)
    )
    shared: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        timestamper,
    ]

    structlog.configure(
        processors=[
            *shared,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer: Processor = (
        structlog.processors.JSONRenderer()
        if log_format == "json"
        else HybridPanelRenderer()
    )
    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel((root_level or "WARNING").upper())

    logging.getLogger("review_relay").setLevel(log_level.upper())

    structlog.contextvars.clear_contextvars()
    if service:
        structlog.contextvars.bind_contextvars(service=service)

    if silence_noisy_libs:
        for noisy in NOISY_LOGGERS:
            logging.getLogger(noisy).setLevel(logging.WARNING)

    structlog.get_logger("review_relay.logging_config").info(
        "日志系统已配置完成。",
        log_format=log_format,
        app_log_level=log_level.upper(),
        service=service,
    )


def setup_logging_from_config(
    cfg: "RelayConfig", *, service: str = "review-relay"
) -> None:
    """根据 RelayConfig 一键初始化日志系统。"""
    setup_logging(
        log_level=cfg.logging.level,
        log_format=cfg.logging.format,
        service=service,
    )
