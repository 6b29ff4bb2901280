"""URL 归一化工具

知识库按 (数据类型, URL 模式) 分桶，陷阱库按 host 分桶，两者都从这里取键。
"""

from __future__ import annotations

import re
from urllib.parse import urlparse

from ..constants import NAVIGATION_TYPE_PREFIX, UNKNOWN_HOST

# 纯数字、长十六进制串、UUID 等路径段视为 ID
_ID_SEGMENT_RE = re.compile(
    r"^(?:\d+|[0-9a-f]{12,}|[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}|"
    r"(?=[a-z0-9_-]*\d{5,})[a-z0-9_-]+)$",
    re.IGNORECASE,
)
ID_PLACEHOLDER = "{id}"


def host_of(url: str | None) -> str:
    """返回 URL 的 host（小写），无法解析时返回 "unknown"。"""
    if not url:
        return UNKNOWN_HOST
    try:
        netloc = urlparse(url).netloc.lower()
    except ValueError:
        return UNKNOWN_HOST
    return netloc or UNKNOWN_HOST


def url_pattern(url: str | None, depth: int = 2) -> str:
    """将 URL 归一化为站点模式

    host + 前 depth 个路径段，数字/ID 形式的路径段折叠为 {id}。

    Example:
        >>> url_pattern("https://www.Example.com/pages/123456789/about?ref=x")
        'www.example.com/pages/{id}'
    """
    if not url:
        return UNKNOWN_HOST
    try:
        parsed = urlparse(url)
    except ValueError:
        return UNKNOWN_HOST

    host = parsed.netloc.lower()
    if not host:
        return UNKNOWN_HOST

    segments = [seg for seg in parsed.path.split("/") if seg][: max(depth, 0)]
    normalized = [ID_PLACEHOLDER if _ID_SEGMENT_RE.match(seg) else seg for seg in segments]
    return "/".join([host, *normalized])


def navigation_type(target_text: str) -> str:
    """导航目标对应的数据类型（每个目标独立分桶）"""
    return f"{NAVIGATION_TYPE_PREFIX}:{target_text.strip().lower()}"
