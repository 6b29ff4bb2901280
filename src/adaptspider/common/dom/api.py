"""页面扫描 Python API"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from ..constants import SNAPSHOT_TEXT_LIMIT
from ..exceptions import DomEvaluationError
from ..logger import get_logger
from ..types import BoundingBox, DocumentSnapshot, ElementSnapshot
from .scripts import ELEMENT_INFO_JS, REMOVE_TRAPS_JS, SNAPSHOT_JS

if TYPE_CHECKING:
    from ..browser.driver import PageDriver

logger = get_logger(__name__)


async def capture_snapshot(driver: "PageDriver", max_elements: int = 4000) -> DocumentSnapshot:
    """
    扫描页面并返回 DocumentSnapshot

    Raises:
        DomEvaluationError: 页面端脚本失败或返回格式不符
    """
    result = await driver.evaluate(
        SNAPSHOT_JS,
        {"maxElements": max_elements, "textLimit": SNAPSHOT_TEXT_LIMIT},
    )
    if not isinstance(result, dict):
        raise DomEvaluationError("snapshot", "页面扫描返回格式无效")

    elements = []
    for raw in result.get("elements", []) or []:
        element = _parse_element(raw)
        if element is not None:
            elements.append(element)

    return DocumentSnapshot(
        url=result.get("url") or "",
        title=result.get("title") or "",
        viewport_width=int(result.get("viewport_width") or 0),
        viewport_height=int(result.get("viewport_height") or 0),
        body_text=result.get("body_text") or "",
        og_image=result.get("og_image"),
        elements=elements,
        timestamp=time.time(),
    )


def _parse_element(raw: Any) -> ElementSnapshot | None:
    if not isinstance(raw, dict):
        return None
    data = dict(raw)
    bbox = data.pop("bbox", None) or {}
    try:
        return ElementSnapshot(
            **{k: v for k, v in data.items() if v is not None},
            bbox=BoundingBox(**bbox),
        )
    except (PydanticValidationError, TypeError) as e:
        logger.debug(f"[Snapshot] 跳过无法解析的元素: {e}")
        return None


async def remove_elements(
    driver: "PageDriver",
    selectors: list[str],
    suspicious_pattern: str | None = None,
    offscreen_px: float = 2000,
) -> int:
    """删除选择器命中的陷阱元素，返回删除数量"""
    if not selectors:
        return 0
    removed = await driver.evaluate(
        REMOVE_TRAPS_JS,
        {"selectors": list(selectors), "pattern": suspicious_pattern, "offscreen": offscreen_px},
    )
    try:
        return int(removed or 0)
    except (TypeError, ValueError):
        return 0


async def element_info(driver: "PageDriver", handle: Any) -> dict[str, Any] | None:
    """读取元素的 tag/文本/链接/尺寸"""
    info = await driver.evaluate(ELEMENT_INFO_JS, handle)
    return info if isinstance(info, dict) else None
