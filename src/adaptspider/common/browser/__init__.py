"""浏览器模块"""

from .driver import PageDriver, PlaywrightDriver
from .session import BrowserSession, create_browser_session

__all__ = [
    "PageDriver",
    "PlaywrightDriver",
    "BrowserSession",
    "create_browser_session",
]
