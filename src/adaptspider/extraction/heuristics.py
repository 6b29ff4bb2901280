"""常用字段的命名启发式

每个启发式在 DocumentSnapshot 上工作，返回取值以及取值来源元素（没有来源元素时为 None，
例如从页面标题或 og:image 取得的值）。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from ..common.dom.selectors import IMAGE_TAGS
from ..common.types import DataType, DocumentSnapshot, ElementSnapshot, type_key
from .patterns import FOLLOWERS_PATTERN, LIKES_PATTERN, match_pattern

# 方形头像：宽高差小于该值且宽度大于 PROFILE_MIN_WIDTH
PROFILE_SQUARE_TOLERANCE = 10
PROFILE_MIN_WIDTH = 50
# 横幅：宽度大于高度的 BANNER_MIN_RATIO 倍且宽度大于 BANNER_MIN_WIDTH
BANNER_MIN_RATIO = 1.5
BANNER_MIN_WIDTH = 200


@dataclass
class HeuristicResult:
    value: str
    element: ElementSnapshot | None = None


Heuristic = Callable[[DocumentSnapshot], "HeuristicResult | None"]


def company_name(snapshot: DocumentSnapshot) -> HeuristicResult | None:
    """页面标题（取 '|' 之前的部分），否则取面积最大的 h1-h3"""
    title = snapshot.title.split("|")[0].strip()
    if 2 < len(title) < 100:
        return HeuristicResult(title)

    headings = [el for el in snapshot.visible_elements() if el.tag in ("h1", "h2", "h3") and el.text.strip()]
    if not headings:
        return None
    largest = max(headings, key=lambda el: el.bbox.area)
    return HeuristicResult(largest.text.strip(), largest)


def _labeled_count(pattern: str) -> Heuristic:
    def heuristic(snapshot: DocumentSnapshot) -> HeuristicResult | None:
        value = match_pattern(pattern, snapshot.body_text)
        return HeuristicResult(value) if value else None

    return heuristic


def _visible_images(snapshot: DocumentSnapshot) -> list[ElementSnapshot]:
    return [el for el in snapshot.visible_elements() if el.tag in IMAGE_TAGS and el.src]


def profile_image(snapshot: DocumentSnapshot) -> HeuristicResult | None:
    """近似方形的图片，否则取 og:image"""
    for el in _visible_images(snapshot):
        width, height = el.bbox.width, el.bbox.height
        if abs(width - height) < PROFILE_SQUARE_TOLERANCE and width > PROFILE_MIN_WIDTH:
            return HeuristicResult(el.src, el)
    if snapshot.og_image:
        return HeuristicResult(snapshot.og_image)
    return None


def banner_image(snapshot: DocumentSnapshot) -> HeuristicResult | None:
    """明显横向的宽图"""
    for el in _visible_images(snapshot):
        width, height = el.bbox.width, el.bbox.height
        if width > height * BANNER_MIN_RATIO and width > BANNER_MIN_WIDTH:
            return HeuristicResult(el.src, el)
    return None


HEURISTICS: dict[str, Heuristic] = {
    DataType.COMPANY_NAME.value: company_name,
    DataType.LIKES.value: _labeled_count(LIKES_PATTERN),
    DataType.FOLLOWERS.value: _labeled_count(FOLLOWERS_PATTERN),
    DataType.PROFILE_IMAGE.value: profile_image,
    DataType.BANNER_IMAGE.value: banner_image,
}


def run_heuristic(snapshot: DocumentSnapshot, data_type: DataType | str) -> HeuristicResult | None:
    """执行该数据类型的命名启发式（没有对应启发式时返回 None）"""
    heuristic = HEURISTICS.get(type_key(data_type))
    if heuristic is None:
        return None
    return heuristic(snapshot)
