"""导航控制器

状态机：IDLE → ATTEMPTING → VERIFYING → {SUCCEEDED, RETRYING, FAILED}

候选选择器的解析方式与提取器相同（知识库优先，置信度低时重新发现），
数据类型按目标分桶（navigation:<target>），不同标签页学到的选择器互不干扰。
最多尝试 max_attempts 轮；两轮之间重新发现候选并线性退避。导航失败返回 False，不抛异常。
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Union

from ..common.config import ExtractionConfig, NavigationConfig, config
from ..common.dom import capture_snapshot, element_info, quote_attr, selector_options
from ..common.exceptions import DomEvaluationError, SessionClosedError
from ..common.logger import get_logger
from ..common.types import DocumentSnapshot, ElementSnapshot, NavigationState
from ..common.utils.delay import get_backoff_delay, get_random_delay
from ..common.utils.url_pattern import navigation_type
from ..knowledge.store import KnowledgeStore
from ..session import ExtractionSession

logger = get_logger(__name__)

Verifier = Callable[[], Union[bool, Awaitable[bool]]]

NAVIGATION_TAGS = ("a", "button", "div", "span", "li")
NAVIGATION_ROLES = ("tab", "button", "link", "menuitem")


@dataclass
class NavigationRun:
    """单次导航的状态记录"""

    target: str
    data_type: str
    url_pattern: str = ""
    state: NavigationState = NavigationState.IDLE
    history: list[NavigationState] = field(default_factory=lambda: [NavigationState.IDLE])
    attempts: int = 0
    selector: str | None = None

    def transition(self, state: NavigationState) -> None:
        self.state = state
        self.history.append(state)


def default_navigation_selectors(target_text: str) -> list[str]:
    """目标标签页的默认特征选择器"""
    target = target_text.strip()
    lowered = target.lower()
    if not lowered:
        return []
    return [
        f'a[href*="/{quote_attr(lowered)}"]',
        f'[data-testid="{quote_attr(lowered)}_tab"]',
        f'[aria-label="{quote_attr(target)}"]',
        f'a[aria-label*="{quote_attr(target)}"]',
    ]


def _is_navigation_element(el: ElementSnapshot) -> bool:
    return el.tag in NAVIGATION_TAGS or (el.role or "").lower() in NAVIGATION_ROLES


def _navigation_selector(el: ElementSnapshot, elements: list[ElementSnapshot]) -> str:
    """优先 testid/id/aria-label/href，其次 class 与标签，最后退回唯一路径"""
    options = selector_options(el)
    if el.tag == "a" and el.href:
        href = el.href
        options.insert(
            len([o for o in options if o[0].startswith(("[data-testid", "#"))]),
            (f'a[href="{quote_attr(href)}"]', lambda o: o.tag == "a" and o.href == href),
        )
    for selector, predicate in options:
        first = next((o for o in elements if predicate(o)), None)
        if first is not None and first.index == el.index:
            return selector
    return el.path or options[-1][0]


def rank_navigation_candidates(
    snapshot: DocumentSnapshot,
    target_text: str,
    limit: int = 20,
) -> list[str]:
    """在快照上寻找指向目标的可点击元素（纯函数）

    文本、aria-label 或 href 包含目标即为候选；文本完全相同的排在最前，
    同等条件下文本越短（越接近实际可点击节点）越靠前。
    """
    target = target_text.strip().lower()
    if not target:
        return []

    matches: list[tuple[int, int, ElementSnapshot]] = []
    for el in snapshot.visible_elements():
        if not _is_navigation_element(el):
            continue
        text = el.text.strip().lower()
        aria = (el.aria_label or "").lower()
        href = (el.href or "").lower()
        if target not in text and target not in aria and target not in href:
            continue
        exact = 0 if (text == target or aria == target) else 1
        matches.append((exact, len(text), el))

    matches.sort(key=lambda item: (item[0], item[1]))

    selectors: list[str] = []
    for _, _, el in matches:
        selector = _navigation_selector(el, snapshot.elements)
        if selector not in selectors:
            selectors.append(selector)
    for selector in default_navigation_selectors(target_text):
        if selector not in selectors:
            selectors.append(selector)
    return selectors[: max(limit, 0)]


class NavigationController:
    """带重试与自适应重新发现的导航控制器

    Example:
        >>> nav = NavigationController(store)
        >>> ok = await nav.navigate("About", session, verify=lambda: True)
    """

    def __init__(
        self,
        store: KnowledgeStore | None = None,
        settings: NavigationConfig | None = None,
        extraction_settings: ExtractionConfig | None = None,
    ):
        self.store = store or KnowledgeStore()
        self.settings = settings or config.navigation
        self.extraction_settings = extraction_settings or config.extraction
        self.last_run: NavigationRun | None = None

    async def navigate(
        self,
        target_text: str,
        session: ExtractionSession,
        verify: Verifier | None = None,
    ) -> bool:
        """点击导航到目标区域，成功返回 True，重试耗尽返回 False"""
        run = NavigationRun(target=target_text, data_type=navigation_type(target_text))
        self.last_run = run
        events = session.events

        try:
            return await self._navigate(run, session, verify)
        except SessionClosedError:
            events.warn("会话已关闭，停止导航", {"target": target_text})
        except DomEvaluationError as e:
            events.error("导航失败", {"target": target_text, "error": str(e)})
        except Exception as e:  # noqa: BLE001
            logger.exception(f"[Navigation] 导航到 {target_text} 出现未预期错误")
            events.error("导航失败", {"target": target_text, "error": f"{type(e).__name__}: {e}"})

        if run.state is not NavigationState.FAILED:
            run.transition(NavigationState.FAILED)
        return False

    async def _navigate(self, run: NavigationRun, session: ExtractionSession, verify: Verifier | None) -> bool:
        events = session.events
        run.url_pattern = self.store.url_pattern(await session.url())

        candidates = await self.store.get_adaptive_selectors(run.data_type, run.url_pattern)
        if not candidates or await self.store.should_rediscover(run.data_type, run.url_pattern):
            events.step("发现导航选择器", {"target": run.target, "learned": len(candidates)})
            candidates = await self._discover(session, run.target)

        max_attempts = max(self.settings.max_attempts, 1)
        for attempt in range(1, max_attempts + 1):
            run.attempts = attempt
            run.transition(NavigationState.ATTEMPTING)

            for selector in candidates:
                ok, reason = await self._attempt(run, session, selector, verify)
                if ok:
                    run.selector = selector
                    run.transition(NavigationState.SUCCEEDED)
                    await self.store.record_success(run.data_type, [selector], run.url_pattern)
                    events.step("导航成功", {"target": run.target, "selector": selector, "attempt": attempt})
                    return True
                await self.store.record_failure(run.data_type, [selector], reason, run.url_pattern)
                if run.state is NavigationState.VERIFYING:
                    run.transition(NavigationState.ATTEMPTING)

            if attempt < max_attempts:
                run.transition(NavigationState.RETRYING)
                events.debug("导航重试", {"target": run.target, "attempt": attempt})
                candidates = await self._discover(session, run.target)
                await session.wait(get_backoff_delay(self.settings.base_delay_ms, attempt))

        run.transition(NavigationState.FAILED)
        events.warn("导航未成功", {"target": run.target, "attempts": max_attempts})
        return False

    async def _discover(self, session: ExtractionSession, target_text: str) -> list[str]:
        try:
            snapshot = await capture_snapshot(session, self.extraction_settings.snapshot_max_elements)
        except DomEvaluationError as e:
            session.events.error("导航选择器发现失败", {"target": target_text, "error": str(e)})
            return default_navigation_selectors(target_text)
        return rank_navigation_candidates(snapshot, target_text, self.extraction_settings.discovery_limit)

    async def _attempt(
        self,
        run: NavigationRun,
        session: ExtractionSession,
        selector: str,
        verify: Verifier | None,
    ) -> tuple[bool, str]:
        """等待出现 → 确认可见 → 点击 → 等待稳定 → 验证"""
        try:
            if not await session.wait_for_selector(selector, self.settings.presence_timeout_ms):
                return False, "元素未出现"
            handle = await session.query_selector(selector)
            if handle is None:
                return False, "元素未出现"
            info = await element_info(session, handle)
            if not info or float(info.get("width") or 0) * float(info.get("height") or 0) <= 0:
                return False, "元素不可见"
            await session.click(handle)
            await session.wait(get_random_delay(self.settings.settle_ms, self.settings.settle_jitter_ms))
        except DomEvaluationError as e:
            logger.debug(f"[Navigation] {selector} 失败: {e}")
            return False, str(e)

        if verify is None:
            return True, ""

        run.transition(NavigationState.VERIFYING)
        if await self._run_verify(verify):
            return True, ""
        return False, "验证未通过"

    @staticmethod
    async def _run_verify(verify: Verifier) -> bool:
        try:
            result: Any = verify()
            if inspect.isawaitable(result):
                result = await result
            return bool(result)
        except Exception as e:  # noqa: BLE001
            logger.debug(f"[Navigation] 验证函数出错，视为未通过: {e}")
            return False
