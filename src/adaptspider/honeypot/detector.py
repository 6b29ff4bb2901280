"""蜜罐检测器

页面上故意放置的隐藏诱饵元素（蜜罐）会污染朴素的抓取结果。检测分两部分：
1. 分类（纯函数）：在 DocumentSnapshot 上判断元素是否不可见或命名可疑
2. 清理：已知陷阱 → 删除 → 实时检测 → 删除 → 持久化并集

任何提取都必须在该 host 的已知陷阱被清理之后进行。
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Iterable

from ..common.config import HoneypotConfig, config
from ..common.constants import OPACITY_EPSILON, SHORT_TOKEN_MAX_LENGTH, TRAP_CANDIDATE_TAGS
from ..common.dom import capture_snapshot, remove_elements, trap_selector
from ..common.exceptions import DomEvaluationError, SessionClosedError
from ..common.logger import get_logger
from ..common.types import DocumentSnapshot, ElementSnapshot, StripReport
from ..common.utils.url_pattern import host_of
from ..knowledge.traps import TrapRegistry

if TYPE_CHECKING:
    from ..session import ExtractionSession

logger = get_logger(__name__)


def suspicious_pattern(tokens: Iterable[str], short_token_max_length: int = SHORT_TOKEN_MAX_LENGTH) -> str:
    """构造可疑命名的正则（Python 与页面端 JS 通用，不依赖 flag）

    关键字一律大小写不敏感：
    - 较长的关键字（honeypot、do-not-fill 等）按子串匹配，"contacthoneypot" 也会命中
    - 短关键字（bot、trap）必须位于"单词"边界：前面不是字母（或驼峰大写开头），
      后面不是小写字母。这样 "bottom"、"robot"、"bootstrap" 不会被误判。
    """
    bounded: list[str] = []
    contained: list[str] = []
    for token in tokens:
        token = token.strip().lower()
        if not token:
            continue
        if len(token) > short_token_max_length:
            contained.append("".join(_ci_char(ch) for ch in token))
            continue
        body = "".join(_ci_char(ch) for ch in token[1:])
        first = token[0]
        if first.isalpha():
            bounded.append(f"(?<![A-Za-z]){_ci_char(first)}{body}")
            bounded.append(f"(?<=[a-z]){re.escape(first.upper())}{body}")
        else:
            bounded.append(f"{re.escape(first)}{body}")

    parts = []
    if bounded:
        parts.append(f"(?:{'|'.join(bounded)})[sS]?(?![a-z])")
    if contained:
        parts.append(f"(?:{'|'.join(contained)})")
    return "|".join(parts)


def _ci_char(ch: str) -> str:
    if ch.isalpha():
        return f"[{ch.lower()}{ch.upper()}]"
    if ch.isalnum():
        return ch
    return "\\" + ch if ch in r"\^$.|?*+()[]{}-/" else ch


def is_effectively_hidden(el: ElementSnapshot, viewport_width: float, offscreen_px: float) -> bool:
    """元素是否对真实用户不可见"""
    bbox = el.bbox
    return (
        bbox.width * bbox.height == 0
        or el.display == "none"
        or el.visibility == "hidden"
        or el.opacity < OPACITY_EPSILON
        or el.hidden
        or el.aria_hidden
        or bbox.x < -offscreen_px
        # 纵向只判断上方，页面下方的内容可以滚动到
        or bbox.y < -offscreen_px
        or bbox.x > viewport_width + offscreen_px
    )


def is_suspiciously_named(el: ElementSnapshot, pattern: re.Pattern[str] | None) -> bool:
    """id/name/class 是否包含可疑关键字"""
    if pattern is None:
        return False
    return any(pattern.search(value) for value in (el.id or "", el.name or "", el.class_name or ""))


def classify_traps(snapshot: DocumentSnapshot, settings: HoneypotConfig | None = None) -> list[str]:
    """在页面快照上识别陷阱，返回去重后的选择器（数量受 max_detect 限制）"""
    settings = settings or config.honeypot
    source = suspicious_pattern(settings.suspicious_tokens)
    pattern = re.compile(source) if source else None

    selectors: list[str] = []
    seen: set[str] = set()
    for el in snapshot.elements:
        if len(selectors) >= settings.max_detect:
            break
        if el.tag not in TRAP_CANDIDATE_TAGS:
            continue
        if not (
            is_effectively_hidden(el, snapshot.viewport_width, settings.offscreen_px)
            or is_suspiciously_named(el, pattern)
        ):
            continue
        selector = trap_selector(el)
        if selector not in seen:
            seen.add(selector)
            selectors.append(selector)
    return selectors


class HoneypotDetector:
    """蜜罐检测与清理

    Example:
        >>> detector = HoneypotDetector(TrapRegistry("output/honeypots.json"))
        >>> report = await detector.strip(session)
        >>> report.removed_count
        3
    """

    def __init__(
        self,
        registry: TrapRegistry | None = None,
        settings: HoneypotConfig | None = None,
        snapshot_max_elements: int | None = None,
    ):
        self.settings = settings or config.honeypot
        self.registry = registry or TrapRegistry(settings=self.settings)
        self.snapshot_max_elements = snapshot_max_elements or config.extraction.snapshot_max_elements
        self._pattern_source = suspicious_pattern(self.settings.suspicious_tokens)

    async def detect(self, session: "ExtractionSession") -> list[str]:
        """扫描页面并返回陷阱选择器"""
        snapshot = await capture_snapshot(session, self.snapshot_max_elements)
        return classify_traps(snapshot, self.settings)

    async def get_known_traps_for(self, url: str) -> list[str]:
        """该 URL 所在 host 的已知陷阱"""
        return await self.registry.get(url)

    async def add_traps(self, url: str, traps: Iterable[str]) -> list[str]:
        """合并新陷阱到注册表，返回新增的选择器"""
        return await self.registry.add(url, traps)

    async def remove(self, session: "ExtractionSession", selectors: list[str]) -> int:
        """从页面中删除陷阱元素"""
        session.ensure_open()
        return await remove_elements(
            session,
            selectors,
            suspicious_pattern=self._pattern_source or None,
            offscreen_px=self.settings.offscreen_px,
        )

    async def strip(self, session: "ExtractionSession", url: str | None = None) -> StripReport:
        """提取前的陷阱清理：已知 → 删除 → 检测 → 删除 → 持久化并集

        页面端失败只记录日志，已完成的部分仍会返回。
        """
        events = session.events
        if url is None:
            try:
                url = await session.url()
            except (DomEvaluationError, SessionClosedError) as e:
                events.error("陷阱清理失败", {"error": str(e)})
                return StripReport(host=host_of(None))
        report = StripReport(host=host_of(url))

        try:
            report.known = await self.get_known_traps_for(url)
            if report.known:
                report.removed_count += await self.remove(session, report.known)

            report.detected = await self.detect(session)
            known = set(report.known)
            fresh = [s for s in report.detected if s not in known]
            if fresh:
                report.removed_count += await self.remove(session, fresh)
        except (DomEvaluationError, SessionClosedError) as e:
            events.error("陷阱清理失败", {"host": report.host, "error": str(e)})
            return report

        if report.detected:
            report.persisted = await self.add_traps(url, report.detected)

        events.step(
            "陷阱清理完成",
            {
                "host": report.host,
                "known": len(report.known),
                "detected": len(report.detected),
                "removed": report.removed_count,
                "persisted": len(report.persisted),
            },
        )
        return report
