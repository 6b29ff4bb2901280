"""主页抓取流程

调用方流程的参考实现：
1. 打开页面（可选）
2. 清理已知与新出现的陷阱
3. 在主页提取全部字段
4. 依次导航到各区域（如 About），每次导航后重新清理陷阱，再补全缺失字段

导航失败只跳过该区域；字段未命中记为 None。
"""

from __future__ import annotations

from typing import Iterable

from pydantic import BaseModel, Field

from ..common.exceptions import DomEvaluationError
from ..common.logger import get_logger
from ..common.types import DataType, StripReport, type_key
from ..common.validators import validate_url
from ..extraction.extractor import CascadingExtractor
from ..honeypot.detector import HoneypotDetector
from ..knowledge.store import KnowledgeStore
from ..knowledge.traps import TrapRegistry
from ..navigation.controller import NavigationController
from ..session import ExtractionSession

logger = get_logger(__name__)

DEFAULT_FIELDS: tuple[DataType, ...] = (
    DataType.COMPANY_NAME,
    DataType.EMAIL,
    DataType.PHONE,
    DataType.ADDRESS,
    DataType.WEBSITE,
    DataType.LIKES,
    DataType.FOLLOWERS,
    DataType.BUSINESS_HOURS,
    DataType.PROFILE_IMAGE,
    DataType.BANNER_IMAGE,
)


class ProfileResult(BaseModel):
    """一次主页抓取的结果"""

    url: str = ""
    session_id: str = ""
    data: dict[str, str | None] = Field(default_factory=dict)
    strategies: dict[str, str] = Field(default_factory=dict)
    sections: dict[str, bool] = Field(default_factory=dict)
    traps: list[StripReport] = Field(default_factory=list)

    @property
    def found(self) -> int:
        return sum(1 for value in self.data.values() if value is not None)


class ProfileScraper:
    """陷阱清理 → 导航 → 提取 的编排器

    知识库与陷阱库可在多个会话间共享，每个会话同一时刻只由一个协程操作。
    """

    def __init__(
        self,
        store: KnowledgeStore | None = None,
        registry: TrapRegistry | None = None,
        extractor: CascadingExtractor | None = None,
        navigator: NavigationController | None = None,
        detector: HoneypotDetector | None = None,
    ):
        self.store = store or KnowledgeStore()
        self.detector = detector or HoneypotDetector(registry or TrapRegistry())
        self.extractor = extractor or CascadingExtractor(self.store)
        self.navigator = navigator or NavigationController(self.store)

    async def scrape(
        self,
        session: ExtractionSession,
        url: str | None = None,
        fields: Iterable[DataType | str] = DEFAULT_FIELDS,
        sections: Iterable[str] = (),
    ) -> ProfileResult:
        """
        抓取主页字段

        Args:
            session: 提取会话
            url: 要打开的页面（为空时使用当前页面）
            fields: 要提取的字段
            sections: 需要依次导航的区域文本，例如 ["About"]

        Raises:
            URLValidationError: url 格式无效
        """
        keys = [type_key(f) for f in fields]
        result = ProfileResult(session_id=session.session_id, data={key: None for key in keys})

        if url:
            url = validate_url(url)
            try:
                await session.navigate_to(url)
            except DomEvaluationError as e:
                session.events.error("页面打开失败", {"url": url, "error": str(e)})
                result.url = url
                return result

        result.url = url or await session.url()
        session.events.step("开始抓取", {"url": result.url, "fields": keys})

        result.traps.append(await self.detector.strip(session))
        await self._extract_missing(session, result)

        for section in sections:
            if session.closed:
                break
            ok = await self.navigator.navigate(section, session)
            result.sections[section] = ok
            if not ok:
                logger.info(f"[Scraper] 未能进入区域 {section}，跳过")
                continue
            result.traps.append(await self.detector.strip(session))
            await self._extract_missing(session, result)

        session.events.step("抓取完成", {"url": result.url, "found": result.found, "total": len(keys)})
        return result

    async def _extract_missing(self, session: ExtractionSession, result: ProfileResult) -> None:
        for key, value in result.data.items():
            if value is not None or session.closed:
                continue
            outcome = await self.extractor.extract_detailed(key, session)
            if outcome.value is not None:
                result.data[key] = outcome.value
                if outcome.strategy is not None:
                    result.strategies[key] = outcome.strategy.value
