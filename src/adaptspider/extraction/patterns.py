"""默认正则与特征选择器

每种数据类型提供：
- 默认正则列表（学习到的正则优先，默认正则始终作为兜底）
- 默认特征选择器（发现阶段的候选来源）
- 取值形态校验（发现阶段用来排除明显不相关的元素）
"""

from __future__ import annotations

import re
from functools import lru_cache

from ..common.logger import get_logger
from ..common.types import DataType, type_key

logger = get_logger(__name__)


EMAIL_PATTERN = r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"
PHONE_PATTERN = r"\+?1?[-\s]?\(?\d{3}\)?[-\s.]?\d{3}[-\s.]?\d{4}"
ADDRESS_PATTERN = r"\d+[^\n]{0,80}?\b(?:street|road|avenue|way|blvd|drive|lane|court|place)\b"
ZIP_CODE_PATTERN = r"\b\d{5}(?:-\d{4})?\b"
LIKES_PATTERN = r"(\d[\d,.]*\s?[KMB]?)\s*(?:people\s+)?likes?\b"
FOLLOWERS_PATTERN = r"(\d[\d,.]*\s?[KMB]?)\s*(?:people\s+)?followers?\b"
BUSINESS_HOURS_PATTERN = (
    r"(?:mon|tue|wed|thu|fri|sat|sun)[a-z]*\s*:?\s*\d{1,2}:\d{2}(?:\s*[ap]m)?"
    r"(?:\s*[-–]\s*\d{1,2}:\d{2}(?:\s*[ap]m)?)?"
)
URL_PATTERN = r"https?://[^\s\"'<>]+"

DEFAULT_PATTERNS: dict[str, list[str]] = {
    DataType.EMAIL.value: [EMAIL_PATTERN],
    DataType.PHONE.value: [PHONE_PATTERN],
    DataType.ADDRESS.value: [ADDRESS_PATTERN],
    DataType.LIKES.value: [LIKES_PATTERN],
    DataType.FOLLOWERS.value: [FOLLOWERS_PATTERN],
    DataType.BUSINESS_HOURS.value: [BUSINESS_HOURS_PATTERN],
}

DEFAULT_SELECTORS: dict[str, list[str]] = {
    DataType.COMPANY_NAME.value: [
        'h1[data-testid="page-header-title"]',
        'h1[role="heading"]',
        "h1",
        '[data-testid="page_profile_name"] h1',
        'div[role="main"] h1',
    ],
    DataType.LIKES.value: [
        '[data-testid="page_social_context"] span',
        'a[href*="likes"] span',
        'div[aria-label*="like"] span',
        'span[title*="like"]',
    ],
    DataType.FOLLOWERS.value: [
        '[data-testid="page_followers"] span',
        'a[href*="followers"] span',
        'div[aria-label*="follow"] span',
        'span[title*="follow"]',
    ],
    DataType.EMAIL.value: ['a[href^="mailto:"]'],
    DataType.PHONE.value: ['a[href^="tel:"]'],
    DataType.WEBSITE.value: [
        'a[href^="http"]:not([href*="facebook.com"]):not([href*="instagram.com"])',
    ],
    DataType.PROFILE_IMAGE.value: [
        'img[data-testid="page_profile_pic"]',
        'image[data-testid="page_profile_pic"]',
        'div[data-testid="page_profile_pic"] img',
        'a[data-testid="page_profile_pic"] img',
        'img[alt*="profile"]',
        ".profilePicThumb img",
        'img[class*="profile"]',
    ],
    DataType.BANNER_IMAGE.value: [
        'img[data-testid="page_cover_photo"]',
        'image[data-testid="page_cover_photo"]',
        'div[data-testid="page_cover_photo"] img',
        'img[alt*="cover"]',
        'img[alt*="banner"]',
        ".coverPhotoImg img",
        'img[class*="cover"]',
        'div[class*="cover"] img',
    ],
}


def default_patterns(data_type: DataType | str) -> list[str]:
    return list(DEFAULT_PATTERNS.get(type_key(data_type), []))


def default_selectors(data_type: DataType | str) -> list[str]:
    return list(DEFAULT_SELECTORS.get(type_key(data_type), []))


def combine_patterns(learned: list[str], defaults: list[str]) -> list[str]:
    """学习到的正则在前，默认正则兜底（去重）"""
    combined: list[str] = []
    for pattern in [*learned, *defaults]:
        if pattern and pattern not in combined:
            combined.append(pattern)
    return combined


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> re.Pattern[str] | None:
    """编译正则（大小写不敏感），无效正则返回 None"""
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        logger.warning(f"[Patterns] 忽略无效正则 {pattern!r}: {e}")
        return None


def match_pattern(pattern: str, text: str) -> str | None:
    """在文本中匹配正则：有捕获组时取第一个捕获组，否则取整个匹配"""
    compiled = compile_pattern(pattern)
    if compiled is None or not text:
        return None
    match = compiled.search(text)
    if not match:
        return None
    value = match.group(1) if compiled.groups else match.group(0)
    return value.strip() if value else None


def looks_like(data_type: DataType | str, value: str | None) -> bool:
    """取值是否符合该数据类型的形态（未知类型一律视为符合）"""
    if not value or not value.strip():
        return False
    value = value.strip()
    key = type_key(data_type)

    if key == DataType.EMAIL.value:
        return match_pattern(EMAIL_PATTERN, value) is not None
    if key == DataType.PHONE.value:
        return match_pattern(PHONE_PATTERN, value) is not None
    if key in (DataType.LIKES.value, DataType.FOLLOWERS.value):
        return any(ch.isdigit() for ch in value) and len(value) < 100
    if key == DataType.WEBSITE.value:
        return value.lower().startswith(("http://", "https://"))
    if key in (DataType.PROFILE_IMAGE.value, DataType.BANNER_IMAGE.value):
        return not value.startswith("data:")
    if key == DataType.COMPANY_NAME.value:
        return 2 <= len(value) < 100
    if key == DataType.ADDRESS.value:
        return any(ch.isdigit() for ch in value) and any(ch.isalpha() for ch in value)
    if key == DataType.BUSINESS_HOURS.value:
        return match_pattern(BUSINESS_HOURS_PATTERN, value) is not None
    return True
