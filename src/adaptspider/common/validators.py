"""输入与结果验证工具

提供 URL 验证，以及提取结果的有效性判定。
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlparse

from .constants import MAX_RESULT_LENGTH, MAX_URL_LENGTH, VALID_URL_SCHEMES
from .exceptions import URLValidationError


def validate_url(url: str, allow_empty: bool = False) -> str:
    """验证并清理 URL

    Args:
        url: 待验证的 URL 字符串
        allow_empty: 是否允许空 URL

    Returns:
        清理后的 URL

    Raises:
        URLValidationError: 当 URL 格式无效时
    """
    url = url.strip() if url else ""

    if not url:
        if allow_empty:
            return ""
        raise URLValidationError("", "URL 不能为空")

    if len(url) > MAX_URL_LENGTH:
        raise URLValidationError(url, f"URL 长度超过 {MAX_URL_LENGTH} 字符")

    try:
        result = urlparse(url)
    except ValueError as e:
        raise URLValidationError(url, f"URL 解析失败: {e}")

    if not result.scheme:
        raise URLValidationError(url, "缺少协议 (http/https)")

    if result.scheme.lower() not in VALID_URL_SCHEMES:
        raise URLValidationError(url, f"不支持的协议: {result.scheme}")

    if not result.netloc:
        raise URLValidationError(url, "缺少域名")

    return url


def is_valid_result(value: Any, max_length: int = MAX_RESULT_LENGTH) -> bool:
    """判定提取结果是否有效

    有效结果必须是字符串，去除首尾空白后非空且长度严格小于 max_length。
    """
    if not isinstance(value, str):
        return False
    stripped = value.strip()
    return 0 < len(stripped) < max_length


def clean_result(value: Any, max_length: int = MAX_RESULT_LENGTH) -> str | None:
    """返回去除空白后的有效结果，无效时返回 None"""
    if not is_valid_result(value, max_length):
        return None
    return value.strip()
