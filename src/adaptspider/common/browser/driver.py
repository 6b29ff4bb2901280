"""浏览器能力边界

核心只依赖 PageDriver 协议；PlaywrightDriver 将 Playwright 的 Page 适配到该协议，
并把页面端异常统一转换为 DomEvaluationError。
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..exceptions import DomEvaluationError


@runtime_checkable
class PageDriver(Protocol):
    """浏览器自动化协作方需要提供的能力"""

    async def navigate_to(self, url: str) -> None: ...

    async def current_url(self) -> str: ...

    async def query_selector(self, selector: str) -> Any | None: ...

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> bool: ...

    async def evaluate(self, script: str, arg: Any = None) -> Any: ...

    async def click(self, handle: Any) -> None: ...

    async def wait(self, ms: float) -> None: ...


class PlaywrightDriver:
    """Playwright Page 适配器"""

    def __init__(self, page: Page, navigation_timeout_ms: int = 30000):
        self.page = page
        self.navigation_timeout_ms = navigation_timeout_ms

    async def navigate_to(self, url: str) -> None:
        try:
            await self.page.goto(url, wait_until="domcontentloaded", timeout=self.navigation_timeout_ms)
        except PlaywrightError as e:
            raise DomEvaluationError("navigate", str(e)) from e

    async def current_url(self) -> str:
        return self.page.url

    async def query_selector(self, selector: str) -> Any | None:
        try:
            return await self.page.query_selector(selector)
        except PlaywrightError as e:
            raise DomEvaluationError("query_selector", str(e), selector=selector) from e

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> bool:
        try:
            handle = await self.page.wait_for_selector(selector, state="attached", timeout=timeout_ms)
            return handle is not None
        except PlaywrightTimeoutError:
            return False
        except PlaywrightError as e:
            raise DomEvaluationError("wait_for_selector", str(e), selector=selector) from e

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        try:
            return await self.page.evaluate(script, arg)
        except PlaywrightError as e:
            raise DomEvaluationError("evaluate", str(e)) from e

    async def click(self, handle: Any) -> None:
        try:
            await handle.click(timeout=self.navigation_timeout_ms)
        except PlaywrightError as e:
            raise DomEvaluationError("click", str(e)) from e

    async def wait(self, ms: float) -> None:
        await self.page.wait_for_timeout(ms)
