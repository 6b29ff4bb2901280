"""统一日志系统

提供项目统一的日志配置，支持 Rich 格式化输出。
另外提供会话事件日志器：核心只负责发出 {message, data, session_id} 事件，
事件的存储与展示由外部日志子系统通过 sink 接管。
"""

from __future__ import annotations

import json
import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from rich.console import Console
from rich.logging import RichHandler

# 全局控制台实例
console = Console()

# 日志级别映射
LOG_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

_EVENT_WRITE_LOCK = threading.Lock()

EventSink = Callable[[dict[str, Any]], None]


def get_log_level() -> int:
    """从环境变量获取日志级别

    Returns:
        日志级别常量
    """
    level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    return LOG_LEVEL_MAP.get(level_str, logging.INFO)


def get_logger(name: str) -> logging.Logger:
    """获取统一配置的日志器

    所有模块应使用此函数获取日志器，以确保统一的格式和输出。

    Args:
        name: 日志器名称，通常使用 __name__

    Returns:
        配置好的日志器实例

    Example:
        >>> from adaptspider.common.logger import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("这是一条日志")
    """
    logger = logging.getLogger(name)

    # 避免重复配置
    if logger.handlers:
        return logger

    log_level = get_log_level()
    logger.setLevel(log_level)

    rich_handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
        rich_tracebacks=True,
        tracebacks_show_locals=os.getenv("LOG_SHOW_LOCALS", "false").lower() == "true",
        markup=False,
    )
    rich_handler.setLevel(log_level)
    rich_handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    logger.addHandler(rich_handler)

    # 阻止日志传播到父级
    logger.propagate = False

    return logger


class SessionEventLogger:
    """会话事件日志器

    每条事件同时写入项目日志器，并转发给可选的 sink 与事件文件。

    Example:
        >>> events = SessionEventLogger("adaptspider.extractor", session_id="abc123")
        >>> events.step("开始提取", {"data_type": "email"})
    """

    def __init__(
        self,
        name: str,
        session_id: str | None = None,
        sink: EventSink | None = None,
        event_file: str | None = None,
        max_chars: int = 2000,
    ):
        self.logger = get_logger(name)
        self.session_id = session_id
        self.sink = sink
        self.event_file = event_file
        self.max_chars = max_chars

    def bind(self, session_id: str | None) -> "SessionEventLogger":
        """返回绑定到另一个会话的日志器（共享 sink 与事件文件）"""
        return SessionEventLogger(
            self.logger.name,
            session_id=session_id,
            sink=self.sink,
            event_file=self.event_file,
            max_chars=self.max_chars,
        )

    def step(self, message: str, data: dict[str, Any] | None = None) -> None:
        self._emit("step", logging.INFO, message, data)

    def debug(self, message: str, data: dict[str, Any] | None = None) -> None:
        self._emit("debug", logging.DEBUG, message, data)

    def warn(self, message: str, data: dict[str, Any] | None = None) -> None:
        self._emit("warn", logging.WARNING, message, data)

    def error(self, message: str, data: dict[str, Any] | None = None) -> None:
        self._emit("error", logging.ERROR, message, data)

    def _emit(self, kind: str, level: int, message: str, data: dict[str, Any] | None) -> None:
        prefix = f"[{self.session_id}] " if self.session_id else ""
        suffix = f" {data}" if data else ""
        self.logger.log(level, f"{prefix}{message}{suffix}")

        event = {
            "timestamp": datetime.now().isoformat(),
            "kind": kind,
            "message": message,
            "data": _truncate(data or {}, self.max_chars),
            "session_id": self.session_id,
        }

        if self.sink is not None:
            try:
                self.sink(event)
            except Exception as exc:  # noqa: BLE001
                self.logger.debug(f"[SessionEvent] sink 处理失败（忽略）: {exc}")

        if self.event_file:
            self._append_event(event)

    def _append_event(self, event: dict[str, Any]) -> None:
        path = Path(self.event_file)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with _EVENT_WRITE_LOCK:
                with open(path, "a", encoding="utf-8") as f:
                    f.write(json.dumps(event, ensure_ascii=False, default=str) + "\n")
        except OSError as exc:
            self.logger.debug(f"[SessionEvent] 写入失败（忽略）: {exc}")


def _truncate(value: Any, max_chars: int) -> Any:
    """递归截断，防止事件爆量。"""
    if isinstance(value, str):
        if len(value) <= max_chars:
            return value
        return value[:max_chars] + f"...[truncated {len(value) - max_chars} chars]"
    if isinstance(value, dict):
        return {str(k): _truncate(v, max_chars) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_truncate(v, max_chars) for v in value]
    return value
