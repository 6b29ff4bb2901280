"""选择器发现

当知识库没有候选、或候选近期普遍失效时，在实时页面上重新寻找候选选择器：
1. 在快照上按打分与命名启发式挑出取值形态符合的元素，为每个元素生成稳定选择器
2. 追加该类型的默认特征选择器
3. 逐个在实时页面上验证（存在且面积非零），都不通过时退回默认选择器

发现的候选只用于本次调用，只有被确认成功后才会写入知识库。
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..common.dom import element_info, snapshot_value, stable_selector
from ..common.exceptions import DomEvaluationError
from ..common.logger import get_logger
from ..common.types import DataType, DocumentSnapshot
from .heuristics import run_heuristic
from .patterns import default_selectors, looks_like
from .scoring import scored_candidates

if TYPE_CHECKING:
    from ..common.browser.driver import PageDriver

logger = get_logger(__name__)


def rank_discovery_candidates(
    snapshot: DocumentSnapshot,
    data_type: DataType | str,
    limit: int = 20,
) -> list[str]:
    """在快照上生成候选选择器（纯函数）"""
    selectors: list[str] = []

    def add(selector: str) -> None:
        if selector and selector not in selectors:
            selectors.append(selector)

    for _, el in scored_candidates(snapshot, data_type):
        if looks_like(data_type, snapshot_value(data_type, el)):
            add(stable_selector(el, snapshot.elements))

    heuristic = run_heuristic(snapshot, data_type)
    if heuristic is not None and heuristic.element is not None:
        add(stable_selector(heuristic.element, snapshot.elements))

    for selector in default_selectors(data_type):
        add(selector)

    return selectors[: max(limit, 0)]


async def is_present(driver: "PageDriver", selector: str) -> bool:
    """选择器在实时页面上存在且渲染面积非零"""
    try:
        handle = await driver.query_selector(selector)
        if handle is None:
            return False
        info = await element_info(driver, handle)
    except DomEvaluationError as e:
        logger.debug(f"[Discovery] 验证失败 {selector}: {e}")
        return False
    if not info:
        return False
    return float(info.get("width") or 0) * float(info.get("height") or 0) > 0


async def discover_selectors(
    driver: "PageDriver",
    snapshot: DocumentSnapshot,
    data_type: DataType | str,
    limit: int = 20,
) -> list[str]:
    """发现并验证候选选择器"""
    candidates = rank_discovery_candidates(snapshot, data_type, limit)
    validated = [selector for selector in candidates if await is_present(driver, selector)]
    if validated:
        return validated
    return default_selectors(data_type)
