"""提取策略

四种策略按固定优先级执行，每种策略一个处理函数，由 StrategyType 分派：
SELECTOR → PATTERN → HEURISTIC → SCORED
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Awaitable, Callable

from ..common.config import ExtractionConfig
from ..common.dom import capture_snapshot, element_info, info_value, snapshot_value, stable_selector
from ..common.exceptions import DomEvaluationError
from ..common.logger import get_logger
from ..common.types import DocumentSnapshot, StrategyType
from ..common.validators import clean_result
from .heuristics import run_heuristic
from .patterns import combine_patterns, default_patterns, match_pattern
from .scoring import best_scored

if TYPE_CHECKING:
    from ..session import ExtractionSession

logger = get_logger(__name__)


@dataclass
class StrategyContext:
    """一次提取调用内各策略共享的上下文"""

    data_type: str
    url_pattern: str
    session: "ExtractionSession"
    settings: ExtractionConfig
    candidates: list[str] = field(default_factory=list)
    learned_patterns: list[str] = field(default_factory=list)
    _snapshot: DocumentSnapshot | None = None

    async def snapshot(self) -> DocumentSnapshot:
        """页面快照（每次调用最多采集一次）"""
        if self._snapshot is None:
            self._snapshot = await capture_snapshot(self.session, self.settings.snapshot_max_elements)
        return self._snapshot


@dataclass
class StrategyResult:
    """策略执行结果

    - used: 产出结果的选择器（记录成功）
    - missed: 在胜出者之前尝试失败的选择器（记录失败）
    - tried: 本策略尝试过的全部选择器（策略整体失败时记录失败）
    """

    value: str | None = None
    used: list[str] = field(default_factory=list)
    missed: list[str] = field(default_factory=list)
    tried: list[str] = field(default_factory=list)
    pattern: str | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.value is not None


StrategyHandler = Callable[[StrategyContext], Awaitable[StrategyResult]]


async def extract_by_selectors(ctx: StrategyContext) -> StrategyResult:
    """按顺序尝试候选选择器，取元素的语义值"""
    result = StrategyResult()
    for selector in ctx.candidates:
        result.tried.append(selector)
        try:
            if ctx.settings.selector_wait_ms > 0:
                await ctx.session.wait_for_selector(selector, ctx.settings.selector_wait_ms)
            handle = await ctx.session.query_selector(selector)
            info = await element_info(ctx.session, handle) if handle is not None else None
        except DomEvaluationError as e:
            logger.debug(f"[Strategy] 选择器执行失败 {selector}: {e}")
            result.error = str(e)
            info = None

        if info and float(info.get("width") or 0) * float(info.get("height") or 0) > 0:
            value = clean_result(info_value(ctx.data_type, info))
            if value is not None:
                result.value = value
                result.used = [selector]
                result.missed = result.tried[:-1]
                return result

    if not result.error:
        result.error = "选择器均未命中" if result.tried else "没有候选选择器"
    return result


async def extract_by_pattern(ctx: StrategyContext) -> StrategyResult:
    """在页面可见文本上匹配正则（学习到的正则优先）"""
    patterns = combine_patterns(ctx.learned_patterns, default_patterns(ctx.data_type))
    if not patterns:
        return StrategyResult(error="没有可用正则")

    snapshot = await ctx.snapshot()
    for pattern in patterns:
        value = clean_result(match_pattern(pattern, snapshot.body_text))
        if value is not None:
            return StrategyResult(value=value, pattern=pattern)
    return StrategyResult(error="正则均未匹配")


async def extract_by_heuristics(ctx: StrategyContext) -> StrategyResult:
    """常用字段的命名启发式"""
    snapshot = await ctx.snapshot()
    found = run_heuristic(snapshot, ctx.data_type)
    if found is None:
        return StrategyResult(error="启发式未命中")

    value = clean_result(found.value)
    if value is None:
        return StrategyResult(error="启发式结果无效")
    used = [stable_selector(found.element, snapshot.elements)] if found.element is not None else []
    return StrategyResult(value=value, used=used)


async def extract_by_scoring(ctx: StrategyContext) -> StrategyResult:
    """对所有可见元素打分，取得分最高者"""
    snapshot = await ctx.snapshot()
    winner = best_scored(snapshot, ctx.data_type)
    if winner is None:
        return StrategyResult(error="没有得分大于 0 的元素")

    value = clean_result(snapshot_value(ctx.data_type, winner))
    if value is None:
        return StrategyResult(error="得分最高的元素取值无效")
    return StrategyResult(value=value, used=[stable_selector(winner, snapshot.elements)])


STRATEGY_ORDER: tuple[StrategyType, ...] = (
    StrategyType.SELECTOR,
    StrategyType.PATTERN,
    StrategyType.HEURISTIC,
    StrategyType.SCORED,
)

STRATEGY_HANDLERS: dict[StrategyType, StrategyHandler] = {
    StrategyType.SELECTOR: extract_by_selectors,
    StrategyType.PATTERN: extract_by_pattern,
    StrategyType.HEURISTIC: extract_by_heuristics,
    StrategyType.SCORED: extract_by_scoring,
}
