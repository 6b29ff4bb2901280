"""异常类单元测试"""

import pytest
from adaptspider.common.exceptions import (
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


class TestExceptionHierarchy:
    """异常类层次结构测试"""

    def test_base_exception(self):
        """测试基础异常"""
        with pytest.raises(AdaptSpiderError):
            raise AdaptSpiderError("基础错误")

    def test_dom_evaluation_error(self):
        """页面脚本错误属于浏览器错误"""
        error = DomEvaluationError("query_selector", "元素已移除", selector="#email")
        assert isinstance(error, BrowserError)
        assert isinstance(error, AdaptSpiderError)
        assert error.operation == "query_selector"
        assert error.selector == "#email"
        assert "#email" in str(error)

    def test_session_closed_error(self):
        """会话关闭错误携带会话 ID"""
        error = SessionClosedError("abc123")
        assert isinstance(error, BrowserError)
        assert error.session_id == "abc123"
        assert "abc123" in str(error)

    def test_store_io_error(self):
        """持久化错误属于存储错误"""
        error = StoreIOError("/tmp/learning.json", "读取")
        assert isinstance(error, StorageError)
        assert error.path == "/tmp/learning.json"
        assert error.operation == "读取"
        assert "读取失败" in str(error)

    def test_url_validation_error(self):
        """URL 验证错误属于验证错误"""
        error = URLValidationError("ftp://x", "不支持的协议")
        assert isinstance(error, ValidationError)
        assert error.url == "ftp://x"
        assert error.reason == "不支持的协议"

    def test_config_error(self):
        assert issubclass(ConfigError, AdaptSpiderError)
