"""打分启发式

对页面上每个可见元素按数据类型打分，得分最高者胜出，同分取文档顺序靠前者。
打分是确定性的纯函数，可直接在合成的 DocumentSnapshot 上测试。
"""

from __future__ import annotations

import re

from ..common.dom.selectors import snapshot_value
from ..common.types import DataType, DocumentSnapshot, ElementSnapshot, type_key

# 标题文本长度区间 [min, max)
NAME_LENGTH_RANGE = (5, 100)
# 页面头部区域（像素）
HEADER_ZONE_PX = 300

_UPPERCASE_START_RE = re.compile(r"^[A-Z]")
_PHONE_SHAPE_RE = re.compile(r"\d{3}[-.\s]?\d{3}[-.\s]?\d{4}")
_STREET_SUFFIX_RE = re.compile(r"\d+.*(?:street|road|avenue|way)", re.IGNORECASE)
_FIVE_DIGIT_RE = re.compile(r"\b\d{5}\b")


def _type_score(el: ElementSnapshot, key: str) -> int:
    text = el.text
    href = (el.href or "").lower()
    score = 0

    if key == DataType.COMPANY_NAME.value:
        if el.tag == "h1":
            score += 20
        if NAME_LENGTH_RANGE[0] <= len(text) < NAME_LENGTH_RANGE[1]:
            score += 10
        if _UPPERCASE_START_RE.match(text):
            score += 5
        if el.bbox.y < HEADER_ZONE_PX:
            score += 10

    elif key == DataType.EMAIL.value:
        if "@" in text:
            score += 30
        if el.tag == "a" and href.startswith("mailto:"):
            score += 25

    elif key == DataType.PHONE.value:
        if _PHONE_SHAPE_RE.search(text):
            score += 25
        if el.tag == "a" and href.startswith("tel:"):
            score += 20

    elif key == DataType.ADDRESS.value:
        if _STREET_SUFFIX_RE.search(text):
            score += 20
        if _FIVE_DIGIT_RE.search(text):
            score += 15

    return score


def _general_score(el: ElementSnapshot, key: str) -> int:
    score = 0
    if el.test_id:
        score += 15
    if el.aria_label:
        score += 10
    if key and key.lower() in el.class_name.lower():
        score += 10
    return score


def score_element(el: ElementSnapshot, data_type: DataType | str) -> int:
    """元素对该数据类型的得分"""
    key = type_key(data_type)
    return _type_score(el, key) + _general_score(el, key)


def scored_candidates(
    snapshot: DocumentSnapshot,
    data_type: DataType | str,
) -> list[tuple[int, ElementSnapshot]]:
    """可见、有面积、有取值且得分大于 0 的元素，按得分降序（同分保持文档顺序）"""
    candidates = []
    for el in snapshot.visible_elements():
        if snapshot_value(data_type, el) is None:
            continue
        score = score_element(el, data_type)
        if score > 0:
            candidates.append((score, el))
    candidates.sort(key=lambda item: -item[0])
    return candidates


def best_scored(snapshot: DocumentSnapshot, data_type: DataType | str) -> ElementSnapshot | None:
    """得分最高的元素"""
    candidates = scored_candidates(snapshot, data_type)
    return candidates[0][1] if candidates else None
