"""提取会话

一个会话对应一个页面，同一时刻只有一条控制流操作它。会话包装调用方提供的
PageDriver，并在被放弃（close）后拒绝任何新的 DOM 操作。
"""

from __future__ import annotations

import uuid
from typing import Any

from .common.config import config
from .common.exceptions import SessionClosedError
from .common.logger import SessionEventLogger, EventSink
from .common.browser.driver import PageDriver


class ExtractionSession:
    """单页面提取会话

    Example:
        >>> session = ExtractionSession(PlaywrightDriver(page))
        >>> value = await extractor.extract("email", session)
        >>> session.close()
    """

    def __init__(
        self,
        driver: PageDriver,
        session_id: str | None = None,
        events: SessionEventLogger | None = None,
        sink: EventSink | None = None,
    ):
        self.driver = driver
        self.session_id = session_id or uuid.uuid4().hex[:12]
        if events is None:
            events = SessionEventLogger(
                "adaptspider.session",
                sink=sink,
                event_file=config.logging.event_file or None,
                max_chars=config.logging.event_max_chars,
            )
        self.events = events.bind(self.session_id)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """放弃会话：之后的 DOM 操作都会抛出 SessionClosedError"""
        if not self._closed:
            self._closed = True
            self.events.debug("会话已关闭")

    def ensure_open(self) -> None:
        if self._closed:
            raise SessionClosedError(self.session_id)

    async def url(self) -> str:
        """当前页面 URL"""
        return await self.current_url()

    # ========== PageDriver 协议 ==========

    async def navigate_to(self, url: str) -> None:
        self.ensure_open()
        await self.driver.navigate_to(url)

    async def current_url(self) -> str:
        self.ensure_open()
        return await self.driver.current_url()

    async def query_selector(self, selector: str) -> Any | None:
        self.ensure_open()
        return await self.driver.query_selector(selector)

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> bool:
        self.ensure_open()
        return await self.driver.wait_for_selector(selector, timeout_ms)

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        self.ensure_open()
        return await self.driver.evaluate(script, arg)

    async def click(self, handle: Any) -> None:
        self.ensure_open()
        await self.driver.click(handle)

    async def wait(self, ms: float) -> None:
        self.ensure_open()
        await self.driver.wait(ms)
