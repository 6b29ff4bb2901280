"""Common模块 - 公共工具和基础设施

该模块提供：
- 全局配置管理
- 浏览器能力边界
- 页面扫描与选择器合成
- 类型定义
- 日志系统
- 异常类
- 常量定义
- 输入验证
"""

from .config import config, Config
from .logger import get_logger, console, SessionEventLogger
from .exceptions import (
    AdaptSpiderError,
    BrowserError,
    DomEvaluationError,
    SessionClosedError,
    StorageError,
    StoreIOError,
    ValidationError,
    URLValidationError,
    ConfigError,
)
from .constants import (
    MAX_RESULT_LENGTH,
    UNKNOWN_HOST,
)

__all__ = [
    # 配置
    "config",
    "Config",
    # 日志
    "get_logger",
    "console",
    "SessionEventLogger",
    # 异常
    "AdaptSpiderError",
    "BrowserError",
    "DomEvaluationError",
    "SessionClosedError",
    "StorageError",
    "StoreIOError",
    "ValidationError",
    "URLValidationError",
    "ConfigError",
    # 常量
    "MAX_RESULT_LENGTH",
    "UNKNOWN_HOST",
]
