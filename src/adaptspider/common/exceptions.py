"""自定义异常类

定义项目中使用的所有自定义异常，用于更精细的错误处理。

注意：提取未命中（返回 None）与导航未命中（返回 False）属于预期结果，
不以异常形式出现在调用方面前。
"""

from __future__ import annotations


class AdaptSpiderError(Exception):
    """AdaptSpider 基础异常类

    所有自定义异常的基类。
    """
    pass


class BrowserError(AdaptSpiderError):
    """浏览器相关错误的基类"""
    pass


class DomEvaluationError(BrowserError):
    """页面内脚本执行失败

    页面端脚本抛错，或目标元素在操作过程中被重新渲染而消失时抛出。
    在使用点被捕获，视为当前策略/选择器失败。
    """
    def __init__(self, operation: str, message: str = "页面操作失败", selector: str | None = None):
        detail = f"{message}: {operation}"
        if selector:
            detail += f" ({selector})"
        super().__init__(detail)
        self.operation = operation
        self.selector = selector


class SessionClosedError(BrowserError):
    """会话已被调用方放弃

    会话关闭后不再允许发起任何 DOM 操作。
    """
    def __init__(self, session_id: str):
        super().__init__(f"会话已关闭: {session_id}")
        self.session_id = session_id


class StorageError(AdaptSpiderError):
    """存储相关错误的基类"""
    pass


class StoreIOError(StorageError):
    """持久化读写失败

    仅在存储层内部抛出，提交边界处记录日志后吞掉，不影响提取流程。
    """
    def __init__(self, path: str, operation: str = "写入"):
        super().__init__(f"知识库{operation}失败: {path}")
        self.path = path
        self.operation = operation


class ValidationError(AdaptSpiderError):
    """验证失败错误"""
    pass


class URLValidationError(ValidationError):
    """URL 验证失败"""
    def __init__(self, url: str, reason: str = "格式无效"):
        super().__init__(f"URL 验证失败: {url}, 原因: {reason}")
        self.url = url
        self.reason = reason


class ConfigError(AdaptSpiderError):
    """配置相关错误"""
    pass
