"""浏览器会话管理

仅供 CLI 使用：核心不负责浏览器进程的生命周期、网络拦截或 UA/stealth 配置，
这些由调用方在创建会话时决定。
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from ..config import config
from ..logger import get_logger
from .driver import PlaywrightDriver

logger = get_logger(__name__)


class BrowserSession:
    """浏览器会话管理器"""

    def __init__(
        self,
        headless: bool | None = None,
        viewport_width: int | None = None,
        viewport_height: int | None = None,
    ):
        self.headless = headless if headless is not None else config.browser.headless
        self.viewport_width = viewport_width or config.browser.viewport_width
        self.viewport_height = viewport_height or config.browser.viewport_height

        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

    async def start(self) -> Page:
        """启动浏览器并返回 Page"""
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=self.headless)
        self._context = await self._browser.new_context(
            viewport={"width": self.viewport_width, "height": self.viewport_height},
        )
        self._context.set_default_timeout(config.browser.timeout_ms)
        self._page = await self._context.new_page()
        logger.info(f"[Browser] 浏览器已启动 (headless={self.headless})")
        return self._page

    async def stop(self) -> None:
        """关闭浏览器会话"""
        for closer in (self._context, self._browser):
            if closer is None:
                continue
            try:
                await closer.close()
            except Exception as e:  # noqa: BLE001
                logger.debug(f"[Browser] 关闭时出错（忽略）: {e}")
        if self._playwright is not None:
            await self._playwright.stop()

        self._page = None
        self._context = None
        self._browser = None
        self._playwright = None

    @property
    def page(self) -> Page | None:
        return self._page

    def driver(self) -> PlaywrightDriver:
        """返回当前页面的 PageDriver"""
        if not self._page:
            raise RuntimeError("Browser session not started")
        return PlaywrightDriver(self._page, navigation_timeout_ms=config.browser.timeout_ms)


@asynccontextmanager
async def create_browser_session(
    headless: bool | None = None,
    viewport_width: int | None = None,
    viewport_height: int | None = None,
) -> AsyncGenerator[BrowserSession, None]:
    """创建浏览器会话的上下文管理器"""
    session = BrowserSession(
        headless=headless,
        viewport_width=viewport_width,
        viewport_height=viewport_height,
    )
    try:
        await session.start()
        yield session
    finally:
        await session.stop()
