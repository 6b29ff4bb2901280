"""级联提取器

对请求的数据类型：
1. 从知识库取候选选择器（按 URL 模式分桶）
2. 没有候选或需要重新发现时，在实时页面上发现候选（仅用于本次调用）
3. 按固定优先级依次执行策略，第一个有效结果胜出
4. 成功记录到胜出策略实际使用的选择器；每个失败策略在进入下一策略前记录失败

全部策略失败返回 None，这是预期结果而不是错误；策略内部的任何失败都不会越过本边界。
"""

from __future__ import annotations

from ..common.config import ExtractionConfig, config
from ..common.constants import UNKNOWN_HOST
from ..common.exceptions import DomEvaluationError, SessionClosedError
from ..common.logger import get_logger
from ..common.types import (
    DataType,
    ExtractionAttempt,
    ExtractionOutcome,
    StrategyType,
    type_key,
)
from ..knowledge.store import KnowledgeStore
from ..session import ExtractionSession
from .discovery import discover_selectors
from .patterns import default_selectors
from .strategies import STRATEGY_HANDLERS, STRATEGY_ORDER, StrategyContext, StrategyResult

logger = get_logger(__name__)


class CascadingExtractor:
    """级联多策略提取器

    Example:
        >>> extractor = CascadingExtractor(KnowledgeStore())
        >>> await extractor.extract(DataType.EMAIL, session)
        'contact@acme.test'
    """

    def __init__(self, store: KnowledgeStore | None = None, settings: ExtractionConfig | None = None):
        self.store = store or KnowledgeStore()
        self.settings = settings or config.extraction

    async def extract(self, data_type: DataType | str, session: ExtractionSession) -> str | None:
        """提取单个字段，未命中返回 None"""
        outcome = await self.extract_detailed(data_type, session)
        return outcome.value

    async def extract_detailed(self, data_type: DataType | str, session: ExtractionSession) -> ExtractionOutcome:
        """提取单个字段并返回每个策略的尝试记录"""
        key = type_key(data_type)
        events = session.events

        try:
            url = await session.url()
        except (DomEvaluationError, SessionClosedError) as e:
            events.error("无法获取页面 URL，跳过提取", {"data_type": key, "error": str(e)})
            return ExtractionOutcome(data_type=key, url_pattern=UNKNOWN_HOST)

        url_pattern = self.store.url_pattern(url)
        outcome = ExtractionOutcome(data_type=key, url_pattern=url_pattern)
        ctx = StrategyContext(
            data_type=key,
            url_pattern=url_pattern,
            session=session,
            settings=self.settings,
            learned_patterns=await self.store.get_patterns(key, url_pattern),
        )

        try:
            ctx.candidates = await self._resolve_candidates(ctx, outcome)
        except SessionClosedError:
            events.warn("会话已关闭，停止提取", {"data_type": key})
            return outcome
        except Exception:  # noqa: BLE001
            logger.exception(f"[Extractor] 解析 {key} 候选选择器出现未预期错误")
            ctx.candidates = default_selectors(key)

        for strategy in STRATEGY_ORDER:
            try:
                result = await STRATEGY_HANDLERS[strategy](ctx)
            except SessionClosedError:
                events.warn("会话已关闭，停止提取", {"data_type": key, "strategy": strategy.value})
                break
            except DomEvaluationError as e:
                result = StrategyResult(error=str(e))
            except Exception as e:  # noqa: BLE001
                logger.exception(f"[Extractor] 策略 {strategy.value} 出现未预期错误")
                result = StrategyResult(error=f"{type(e).__name__}: {e}")

            attempt = ExtractionAttempt(
                data_type=key,
                selectors_tried=list(result.tried),
                strategy_used=strategy,
                result=result.value,
                succeeded=result.succeeded,
                error=result.error,
            )
            outcome.attempts.append(attempt)

            if result.succeeded:
                await self._record_win(ctx, strategy, result)
                outcome.value = result.value
                events.step(
                    "提取成功",
                    {"data_type": key, "strategy": strategy.value, "selectors": result.used},
                )
                return outcome

            if result.tried:
                await self.store.record_failure(key, result.tried, result.error, url_pattern)
            events.debug(
                "策略未命中",
                {"data_type": key, "strategy": strategy.value, "error": result.error},
            )

        events.warn("提取未命中", {"data_type": key, "url_pattern": url_pattern})
        return outcome

    async def optimize_extraction(self) -> int:
        """剪枝低质量的选择器记录，返回删除数量"""
        return await self.store.optimize()

    async def _resolve_candidates(self, ctx: StrategyContext, outcome: ExtractionOutcome) -> list[str]:
        candidates = await self.store.get_adaptive_selectors(ctx.data_type, ctx.url_pattern)
        if candidates and not await self.store.should_rediscover(ctx.data_type, ctx.url_pattern):
            return candidates

        ctx.session.events.step("重新发现选择器", {"data_type": ctx.data_type, "learned": len(candidates)})
        outcome.rediscovered = True
        try:
            snapshot = await ctx.snapshot()
            return await discover_selectors(ctx.session, snapshot, ctx.data_type, self.settings.discovery_limit)
        except DomEvaluationError as e:
            ctx.session.events.error("选择器发现失败", {"data_type": ctx.data_type, "error": str(e)})
            return candidates or default_selectors(ctx.data_type)

    async def _record_win(self, ctx: StrategyContext, strategy: StrategyType, result: StrategyResult) -> None:
        if result.missed:
            await self.store.record_failure(ctx.data_type, result.missed, "未命中", ctx.url_pattern)
        if result.used:
            await self.store.record_success(ctx.data_type, result.used, ctx.url_pattern)
        if strategy is StrategyType.PATTERN and result.pattern:
            await self.store.learn_pattern(ctx.data_type, ctx.url_pattern, result.pattern)
